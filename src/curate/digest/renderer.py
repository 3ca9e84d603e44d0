"""Markdown and standalone HTML rendering for digests.

Output depends only on the document passed in, so the same document
always renders to the same text.
"""

from __future__ import annotations

import html
import json
import re
from typing import TYPE_CHECKING

from curate.records.models import TAG_MARKER, Record
from curate.rules.services import url_domain

if TYPE_CHECKING:
    from curate.digest.models import DigestDocument

SEPARATOR = " — "
NO_TAGS_LINE = "(No tags in range)"

# one level of balanced parentheses is allowed inside the URL
_LINK_RE = re.compile(r"\[([^\]]+)\]\(((?:[^()\s]|\([^()\s]*\))+)\)")
_EM_RE = re.compile(r"\*([^*]+)\*")

HTML_STYLE = (
    "body{max-width:820px;margin:2rem auto;padding:0 1rem;"
    "font:16px/1.5 system-ui,Segoe UI,Roboto,Helvetica,Arial,sans-serif}"
    "code,pre{font:13px ui-monospace,Consolas,Menlo,monospace}"
    "h1,h2,h3{line-height:1.2}ul{padding-left:1.2rem}"
)


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------


def _is_all_caps(word: str) -> bool:
    letters = [c for c in word if c.isalpha()]
    return bool(letters) and all(c.isupper() for c in letters)


def display_tag(tag: str) -> str:
    """Tag as shown in digests.

    All-uppercase tags are unchanged; otherwise the first character after
    the marker is capitalized.  Stored tags are never modified.
    """
    tag = tag.strip()
    if not tag:
        return ""
    marker = ""
    body = tag
    if body.startswith(TAG_MARKER):
        marker, body = TAG_MARKER, body[len(TAG_MARKER) :]
    if not body or _is_all_caps(body):
        return marker + body
    return marker + body[0].upper() + body[1:]


def format_record_line(record: Record) -> str:
    """``- [domain](url) — *category* — title — #Tag1 #Tag2``.

    The title and tag segments are omitted, separator included, when
    empty.
    """
    parts = [f"- [{url_domain(record.url) or record.url}]({record.url})", f"*{record.category}*"]
    title = record.title.strip()
    if title:
        parts.append(title)
    tags = [display_tag(t) for t in record.tags]
    tags = [t for t in tags if t]
    if tags:
        parts.append(" ".join(tags))
    return SEPARATOR.join(parts)


def _yaml_quote(value: str) -> str:
    """Double-quoted YAML scalar; JSON string escaping is valid YAML."""
    return json.dumps(value, ensure_ascii=False)


def _render_front_matter(doc: DigestDocument) -> list[str]:
    fm = doc.front_matter
    if fm is None:
        return []
    lines = [
        "---",
        f"title: {_yaml_quote(fm.title)}",
        f'date: "{fm.date.isoformat()}"',
        f"draft: {'true' if fm.draft else 'false'}",
        f"type: {fm.type}",
    ]
    if fm.section:
        lines.append(f"section: {_yaml_quote(fm.section)}")
    lines += ["---", ""]
    return lines


def render_markdown(doc: DigestDocument) -> str:
    """Render a compiled digest to Markdown text."""
    out: list[str] = []
    fm_lines = _render_front_matter(doc)
    if fm_lines:
        out.append("\n".join(fm_lines) + "\n")

    if doc.header:
        header = doc.header if doc.header.endswith("\n") else doc.header + "\n"
        out.append(header + "\n")

    if doc.show_flat:
        out.append(f"# {doc.title}\n\n")
        for record in doc.records:
            out.append(format_record_line(record) + "\n")
        out.append("\n")

    if doc.show_tags:
        out.append("## By Tag\n\n")
        for section in doc.tag_sections:
            out.append(f"### {section.tag}\n")
            for record in section.records:
                out.append(format_record_line(record) + "\n")
            out.append("\n")
        if not doc.tag_sections:
            out.append(NO_TAGS_LINE + "\n")

    return "".join(out)


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------


def _emphasis(text: str) -> str:
    return _EM_RE.sub(r"<em>\1</em>", html.escape(text))


def _inline(text: str) -> str:
    """Escape *text* and convert links and emphasis.

    Emphasis is only converted outside links so ``*`` in a URL survives.
    """
    out: list[str] = []
    pos = 0
    for m in _LINK_RE.finditer(text):
        out.append(_emphasis(text[pos : m.start()]))
        label, href = html.escape(m.group(1)), html.escape(m.group(2))
        out.append(f'<a href="{href}" target="_blank">{label}</a>')
        pos = m.end()
    out.append(_emphasis(text[pos:]))
    return "".join(out)


def markdown_to_html(markdown: str, title: str = "Digest") -> str:
    """Convert digest Markdown to a self-contained HTML page.

    Handles the subset digests use: ``#``/``##``/``###`` headings,
    ``- `` list items, ``[text](url)`` links and ``*emphasis*``.  Any
    other non-blank line becomes a paragraph.  No external stylesheet
    or script is referenced.
    """
    out: list[str] = [
        "<!doctype html>",
        '<html><head><meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width,initial-scale=1">',
        f"<title>{html.escape(title)}</title>",
        f"<style>{HTML_STYLE}</style>",
        "</head><body>",
    ]
    in_list = False

    def close_list() -> None:
        nonlocal in_list
        if in_list:
            out.append("</ul>")
            in_list = False

    for line in markdown.splitlines():
        s = line.strip()
        heading = re.match(r"^(#{1,3})\s+(.*)$", s)
        if heading:
            close_list()
            level = len(heading.group(1))
            out.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
        elif s.startswith("- "):
            if not in_list:
                out.append("<ul>")
                in_list = True
            out.append(f"<li>{_inline(s[2:])}</li>")
        elif not s:
            close_list()
        else:
            close_list()
            out.append(f"<p>{_inline(s)}</p>")
    close_list()
    out.append("</body></html>")
    return "\n".join(out) + "\n"
