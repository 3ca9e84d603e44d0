"""Rule table I/O and URL classification.

The rule table is loaded once per command and handed to
:class:`RuleResolver` explicitly; nothing here keeps module-level state.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from urllib.parse import urlsplit

from curate.core import _atomic_write
from curate.errors import IOFailure
from curate.records.models import DEFAULT_CATEGORY, Category, normalize_tags, sanitize_field
from curate.rules.models import (
    Classification,
    MatchSource,
    Rule,
    RuleLoadResult,
    RuleParseWarning,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DELIMITER = "\t"
COMMENT_MARKER = "#"

_WWW_PREFIX = re.compile(r"^www\d*\.", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")

HEURISTIC_DOMAINS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (
        Category.VIDEO,
        ("youtube.com", "youtu.be", "vimeo.com", "rumble.com", "odysee.com", "tiktok.com"),
    ),
    (
        Category.BLOG,
        (
            "substack.com",
            "medium.com",
            "ghost.org",
            "wordpress.com",
            "write.as",
            "bearblog.dev",
            "blogspot.com",
            "hashnode.dev",
            "dev.to",
        ),
    ),
    (
        Category.NEWS,
        (
            "reuters.com",
            "apnews.com",
            "ap.news",
            "bloomberg.com",
            "wsj.com",
            "nytimes.com",
            "washingtonpost.com",
            "ft.com",
            "axios.com",
            "npr.org",
            "bbc.com",
            "theguardian.com",
            "aljazeera.com",
        ),
    ),
)

DEFAULT_RULES_TEXT = """\
# curate classification rules
# Format: <pattern>\\t<category>\\t<tags>
# A plain domain (letters, digits, dots, hyphens) matches whole labels of the
# URL host, so x.com matches x.com and mobile.x.com but not netflix.com.
# Anything else is a case-insensitive regular expression searched in the URL.
# The longest matching pattern wins. Lines beginning with # are comments.
# `curate rules add` replaces an existing line with the same pattern.

youtube.com\tvideo
youtu.be\tvideo
twitter.com\ttweet
x.com\ttweet
substack.com\tpost
reddit.com\tthread
news.ycombinator.com\thn
github.com\tcode
\\.pdf(?:$|[?#])\tpdf
"""


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def has_scheme(url: str) -> bool:
    """True when *url* starts with an explicit ``scheme://``."""
    return bool(_SCHEME_RE.match(url.strip()))


def url_host(url: str) -> str:
    """Return the lowercased host of *url*, tolerating a missing scheme."""
    raw = url.strip()
    if not has_scheme(raw):
        raw = "//" + raw.lstrip("/")
    try:
        netloc = urlsplit(raw).netloc
    except ValueError:
        netloc = raw.lstrip("/").split("/", 1)[0]
    host = netloc.rsplit("@", 1)[-1]
    if host.startswith("["):
        host = host.split("]", 1)[0] + "]"
    else:
        host = host.split(":", 1)[0]
    return host.lower()


def url_domain(url: str) -> str:
    """Host with a leading ``www.``/``wwwN.`` removed."""
    return _WWW_PREFIX.sub("", url_host(url))


def _domain_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def merge_tags(user_tags: list[str], rule_tags: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """User tags first, then rule defaults; marker-prefixed and de-duplicated."""
    return normalize_tags(user_tags, rule_tags)


def heuristic_category(url: str) -> Category:
    """Classify by a fixed table of well-known platforms, else ``link``."""
    host = url_domain(url)
    for category, domains in HEURISTIC_DOMAINS:
        if any(_domain_matches(host, d) for d in domains):
            return category
    return Category(DEFAULT_CATEGORY)


# ---------------------------------------------------------------------------
# Rule table I/O
# ---------------------------------------------------------------------------


def parse_rules(text: str) -> RuleLoadResult:
    """Parse rule table text into rules plus skip warnings.

    Blank lines and comment lines are ignored.  A line without a
    pattern, or whose pattern is not a valid regular expression, is
    skipped and reported; it never stops the rest of the table loading.
    """
    result = RuleLoadResult()
    for line_no, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_MARKER):
            continue
        cols = [c.strip() for c in line.rstrip("\r\n").split(DELIMITER)]
        pattern = cols[0]
        if not pattern:
            result.warnings.append(
                RuleParseWarning(line_no=line_no, pattern=stripped, message="empty pattern")
            )
            continue
        rule = Rule(
            pattern=pattern,
            category=cols[1] if len(cols) > 1 else "",
            default_tags=normalize_tags(cols[2:]),
            line_no=line_no,
        )
        error = _compile_error(rule)
        if error is not None:
            result.warnings.append(RuleParseWarning(line_no=line_no, pattern=pattern, message=error))
            continue
        result.rules.append(rule)
    return result


def load_rules(path: Path) -> RuleLoadResult:
    """Load the rule table at *path*. A missing table has no rules."""
    if not path.exists():
        return RuleLoadResult()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise IOFailure(f"cannot read {path}: {exc}") from exc
    result = parse_rules(text)
    for warning in result.warnings:
        logger.info("%s: %s", path, warning)
    return result


def ensure_default_rules(path: Path) -> bool:
    """Write the starter rule table if none exists yet.

    Returns:
        True if the file was created.
    """
    if path.exists():
        return False
    try:
        _atomic_write(path, DEFAULT_RULES_TEXT)
    except OSError as exc:
        raise IOFailure(f"cannot create {path}: {exc}") from exc
    logger.info("Created default rules at %s", path)
    return True


def add_rule(path: Path, pattern: str, category: str = "", tags: list[str] | None = None) -> Rule:
    """Validate and write a rule to the table at *path*.

    A line with the same pattern is replaced in place, so re-adding a
    starter rule updates it instead of leaving an equally long rule
    ahead of it.  Otherwise the rule is appended.

    Raises:
        ValueError: If the pattern is empty or not a valid expression.
    """
    pattern = sanitize_field(pattern)
    rule = Rule(
        pattern=pattern,
        category=sanitize_field(category),
        default_tags=normalize_tags(tags or []),
    )
    if not pattern:
        raise ValueError("rule pattern must not be empty")
    error = _compile_error(rule)
    if error is not None:
        raise ValueError(f"invalid pattern {pattern!r}: {error}")

    existing = ""
    if path.exists():
        try:
            existing = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IOFailure(f"cannot read {path}: {exc}") from exc

    line = DELIMITER.join([rule.pattern, rule.category, " ".join(rule.default_tags)])
    lines: list[str] = []
    replaced = False
    for current in existing.splitlines():
        if _same_pattern(current, rule):
            if not replaced:
                lines.append(line)
                replaced = True
            continue
        lines.append(current)
    if not replaced:
        lines.append(line)
    try:
        _atomic_write(path, "\n".join(lines) + "\n")
    except OSError as exc:
        raise IOFailure(f"cannot write {path}: {exc}") from exc
    if replaced:
        logger.info("Replaced rule %r in %s", rule.pattern, path)
    return rule


def _same_pattern(line: str, rule: Rule) -> bool:
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_MARKER):
        return False
    pattern = line.split(DELIMITER, 1)[0].strip()
    if rule.domain_scoped:
        return pattern.lower() == rule.pattern.lower()
    return pattern == rule.pattern


def _domain_regex(pattern: str) -> re.Pattern[str]:
    """Match *pattern* as whole labels of a host (``x.com`` is not ``netflix.com``)."""
    needle = _WWW_PREFIX.sub("", pattern.lower()).strip(".")
    if not needle:
        return re.compile(r"(?!)")
    return re.compile(r"(?:^|\.)" + re.escape(needle) + r"(?:\.|$)")


def _compile_error(rule: Rule) -> str | None:
    if rule.domain_scoped:
        return None
    try:
        re.compile(rule.pattern, re.IGNORECASE)
    except re.error as exc:
        return str(exc)
    return None


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class RuleResolver:
    """Classify URLs against an explicit rule table.

    Precedence: the matching rule with the longest pattern wins; equal
    lengths go to the rule declared first.  Without a matching rule the
    heuristic platform table decides, and failing that the category is
    ``link``.
    """

    def __init__(self, rules: list[Rule]) -> None:
        self._compiled: list[tuple[Rule, re.Pattern[str]]] = []
        self.warnings: list[RuleParseWarning] = []
        for rule in rules:
            if rule.domain_scoped:
                self._compiled.append((rule, _domain_regex(rule.pattern)))
                continue
            try:
                self._compiled.append((rule, re.compile(rule.pattern, re.IGNORECASE)))
            except re.error as exc:
                self.warnings.append(
                    RuleParseWarning(line_no=rule.line_no, pattern=rule.pattern, message=str(exc))
                )

    @property
    def rules(self) -> list[Rule]:
        return [rule for rule, _ in self._compiled]

    def matching_rules(self, url: str) -> list[Rule]:
        """Every rule that matches *url*, in declaration order."""
        domain = url_domain(url)
        matches: list[Rule] = []
        for rule, regex in self._compiled:
            if regex.search(domain if rule.domain_scoped else url):
                matches.append(rule)
        return matches

    def best_rule(self, url: str) -> Rule | None:
        best: Rule | None = None
        for rule in self.matching_rules(url):
            # strict > keeps the first-declared rule on ties
            if best is None or rule.specificity > best.specificity:
                best = rule
        return best

    def resolve(self, url: str, user_tags: list[str] | None = None) -> Classification:
        """Classify *url* and merge *user_tags* ahead of the rule's tags."""
        rule = self.best_rule(url)
        tags = merge_tags(user_tags or [], rule.default_tags if rule else ())

        if rule is not None and rule.category:
            return Classification(category=rule.category, tags=tags, source=MatchSource.RULE, rule=rule)

        category = heuristic_category(url)
        source = MatchSource.DEFAULT if category == DEFAULT_CATEGORY else MatchSource.HEURISTIC
        return Classification(category=str(category), tags=tags, source=source, rule=rule)
