"""CLI interface for curate."""

import csv
import io
import json
import logging
import re
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from curate.calendar import month as month_range
from curate.calendar import parse_date, resolve_range, safe_label
from curate.config import CurateConfig, load_config, merge_cli_overrides
from curate.core import _atomic_write
from curate.digest import (
    DigestOptions,
    GroupingMode,
    compile_digest,
    markdown_to_html,
    render_markdown,
)
from curate.errors import CurateError, InvalidDate, IOFailure
from curate.records import Record, RecordStore
from curate.records.store import ARCHIVE_FILENAME, format_row
from curate.rules import (
    RuleResolver,
    add_rule,
    ensure_default_rules,
    heuristic_category,
    load_rules,
    url_domain,
)
from curate.titles import fetch_title

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="curate",
    help="Capture links to a plain-text inbox and compile them into digests.",
    no_args_is_help=True,
)
rules_app = typer.Typer(help="List, add and test classification rules.", no_args_is_help=True)
app.add_typer(rules_app, name="rules")

console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)

DEFAULT_HEADER = """\
<!-- Digest header: edit templates/header.md or pass --no-header -->

Each entry was hand-picked and tagged for easy searching later.

---
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fail(message: str, code: int = 2) -> typer.Exit:
    """Print a one-line diagnostic and return the Exit to raise."""
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(code)


def _config(ctx: typer.Context) -> CurateConfig:
    if isinstance(ctx.obj, CurateConfig):
        return ctx.obj
    return load_config()


def _today() -> date:
    return datetime.now(tz=UTC).date()


def _parse_optional_date(value: str | None, flag: str) -> date | None:
    if value is None:
        return None
    try:
        return parse_date(value)
    except InvalidDate as exc:
        raise _fail(f"{flag}: {exc}") from exc


def _load_resolver(config: CurateConfig) -> RuleResolver:
    """Load the rule table once and report skipped rules."""
    ensure_default_rules(config.rules_path)
    result = load_rules(config.rules_path)
    resolver = RuleResolver(result.rules)
    for warning in [*result.warnings, *resolver.warnings]:
        err_console.print(f"[yellow]Warning:[/yellow] {escape(str(warning))}")
    return resolver


def _read_header(path: Path) -> str:
    """Header template contents; unreadable or missing means no header."""
    if not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read header template %s: %s", path, exc)
        return ""


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from curate import __version__

        console.print(f"curate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    home: Annotated[
        Optional[Path],
        typer.Option(
            "--home",
            help="Root folder for inbox.tsv, rules.tsv, templates/ and digests/. "
            "Defaults to $CURATE_HOME or the current directory.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """curate - plain-text link curation."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = load_config(home)


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


@app.command(name="add")
def add_cmd(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="URL to capture.")],
    tags: Annotated[
        Optional[list[str]],
        typer.Argument(help="Tags; the # marker is added when missing."),
    ] = None,
    title: Annotated[
        str,
        typer.Option("--title", help="Title to store with the link."),
    ] = "",
    when: Annotated[
        Optional[str],
        typer.Option("--date", help="Capture date (YYYY-MM-DD). Defaults to today (UTC)."),
    ] = None,
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-t", help="Set the category instead of detecting it."),
    ] = None,
    fetch: Annotated[
        Optional[bool],
        typer.Option(
            "--fetch-title/--no-fetch-title",
            help="Fetch the page title when --title is not given.",
        ),
    ] = None,
) -> None:
    """Classify a URL and append it to the inbox."""
    config = _config(ctx)
    if not url.strip():
        raise _fail("add: require <url>")
    record_date = _parse_optional_date(when, "--date") or _today()

    try:
        resolver = _load_resolver(config)
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    result = resolver.resolve(url, tags or [])

    if not title and (fetch if fetch is not None else config.titles.fetch_by_default):
        title = fetch_title(url, timeout=config.titles.timeout)

    record = Record(
        date=record_date,
        category=category or result.category,
        url=url,
        title=title,
        tags=result.tags,
    )
    try:
        RecordStore(config.inbox_path).append(record)
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    typer.echo(f"Added: {format_row(record)}")


# ---------------------------------------------------------------------------
# digest
# ---------------------------------------------------------------------------


@app.command(name="digest")
def digest_cmd(
    ctx: typer.Context,
    group_tags: Annotated[
        bool,
        typer.Option("--group-tags", "-gt", help="Add a 'By Tag' section."),
    ] = False,
    tags_only: Annotated[
        bool,
        typer.Option("--tags-only", help="Emit only the 'By Tag' section."),
    ] = False,
    as_html: Annotated[
        bool,
        typer.Option("--html", "-pd", help="Emit a self-contained HTML page."),
    ] = False,
    week: Annotated[
        Optional[str],
        typer.Option("--week", help="ISO week (YYYY-Www)."),
    ] = None,
    start: Annotated[
        Optional[str],
        typer.Option("--start", help="Range start (YYYY-MM-DD), used with --end."),
    ] = None,
    end: Annotated[
        Optional[str],
        typer.Option("--end", help="Range end (YYYY-MM-DD), used with --start."),
    ] = None,
    month: Annotated[
        Optional[str],
        typer.Option("--month", help="Calendar month (YYYY-MM)."),
    ] = None,
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-t", help="Only include records of this category."),
    ] = None,
    no_header: Annotated[
        bool,
        typer.Option("--no-header", help="Skip templates/header.md."),
    ] = False,
    front_matter: Annotated[
        bool,
        typer.Option("--front-matter", help="Prefix YAML front matter for static sites (Markdown only)."),
    ] = False,
    section: Annotated[
        Optional[str],
        typer.Option("--section", help="Front matter 'section' value."),
    ] = None,
    archive: Annotated[
        bool,
        typer.Option("--archive", help="Move the digested records to archive/archive.tsv."),
    ] = False,
    out: Annotated[
        Optional[str],
        typer.Option("--out", "-o", help="Output path, or '-' for stdout."),
    ] = None,
) -> None:
    """Compile records in a date range into a Markdown or HTML digest.

    Without a range option the current ISO week (UTC) is used.  The
    default output is digests/<range-label>.md (or .html).
    """
    config = merge_cli_overrides(
        _config(ctx),
        group_tags=True if group_tags else None,
        html=True if as_html else None,
        include_header=False if no_header else None,
        front_matter=True if front_matter else None,
        section=section,
    )

    try:
        date_range = resolve_range(week=week, start=start, end=end, month_value=month)
    except CurateError as exc:
        raise _fail(str(exc)) from exc

    try:
        records = RecordStore(config.inbox_path).load()
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc

    if config.digest.front_matter and config.digest.html:
        logger.info("Front matter is Markdown-only; skipping it for HTML output")
    options = DigestOptions(
        grouping=GroupingMode.from_flags(group_tags=config.digest.group_tags, tags_only=tags_only),
        include_header=config.digest.include_header,
        category=category,
        front_matter=config.digest.front_matter and not config.digest.html,
        section=config.digest.section,
    )
    header = _read_header(config.header_path) if options.include_header else ""
    doc = compile_digest(records, date_range, options, header=header)

    content = render_markdown(doc)
    if config.digest.html:
        content = markdown_to_html(content, title=doc.title)

    if out == "-":
        typer.echo(content, nl=False)
    else:
        suffix = ".html" if config.digest.html else ".md"
        out_path = Path(out) if out else config.digests_dir / f"{safe_label(date_range.label)}{suffix}"
        try:
            _atomic_write(out_path, content)
        except OSError as exc:
            raise _fail(f"Failed to write {out_path}: {exc}") from exc
        console.print(f"Wrote: {escape(str(out_path))} ({len(doc.records)} record(s))")

    if archive:
        try:
            moved = RecordStore(config.inbox_path).archive_range(
                date_range.start, date_range.end, config.archive_dir / ARCHIVE_FILENAME
            )
        except IOFailure as exc:
            raise _fail(str(exc), code=1) from exc
        err_console.print(f"Archived {moved} record(s) for {date_range.label}")


# ---------------------------------------------------------------------------
# list / search / export
# ---------------------------------------------------------------------------


@app.command(name="list")
def list_cmd(
    ctx: typer.Context,
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", min=0, help="Show at most N records."),
    ] = None,
    since: Annotated[
        Optional[str],
        typer.Option("--since", help="Only records on or after this date (YYYY-MM-DD)."),
    ] = None,
    until: Annotated[
        Optional[str],
        typer.Option("--until", help="Only records on or before this date (YYYY-MM-DD)."),
    ] = None,
) -> None:
    """Print records in log format."""
    config = _config(ctx)
    since_d = _parse_optional_date(since, "--since")
    until_d = _parse_optional_date(until, "--until")
    try:
        rows = RecordStore(config.inbox_path).list(since=since_d, until=until_d, limit=limit)
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    for record in rows:
        typer.echo(format_row(record))


@app.command(name="search")
def search_cmd(
    ctx: typer.Context,
    pattern: Annotated[str, typer.Argument(help="Case-insensitive regular expression.")],
) -> None:
    """Print log rows matching a pattern."""
    config = _config(ctx)
    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise _fail(f"invalid pattern {pattern!r}: {exc}") from exc
    try:
        records = RecordStore(config.inbox_path).load()
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    for record in records:
        row = format_row(record)
        if regex.search(row):
            typer.echo(row)


@app.command(name="export")
def export_cmd(
    ctx: typer.Context,
    month: Annotated[
        Optional[str],
        typer.Option("--month", help="Only export this month (YYYY-MM)."),
    ] = None,
) -> None:
    """Print records as a JSON array."""
    config = _config(ctx)
    try:
        records = RecordStore(config.inbox_path).load()
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    if month is not None:
        try:
            rng = month_range(month)
        except CurateError as exc:
            raise _fail(str(exc)) from exc
        records = [r for r in records if rng.contains(r.date)]
    payload = [
        {
            "date": r.date.isoformat(),
            "type": r.category,
            "url": r.url,
            "title": r.title,
            "tags": list(r.tags),
        }
        for r in records
    ]
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# import / clear-inbox
# ---------------------------------------------------------------------------


@app.command(name="import")
def import_cmd(
    ctx: typer.Context,
    file: Annotated[
        Path,
        typer.Argument(help="TSV or CSV file: date, category, url, title, tags."),
    ],
    fmt: Annotated[
        str,
        typer.Option("--format", help="auto, tsv or csv."),
    ] = "auto",
) -> None:
    """Classify and append rows from a TSV/CSV file."""
    config = _config(ctx)
    if fmt not in ("auto", "tsv", "csv"):
        raise _fail(f"unknown format {fmt!r} (use auto, tsv or csv)")
    if fmt == "auto":
        fmt = "tsv" if file.suffix.lower() == ".tsv" else "csv"
    try:
        text = file.read_text(encoding="utf-8")
    except OSError as exc:
        raise _fail(f"cannot read {file}: {exc}", code=1) from exc

    try:
        resolver = _load_resolver(config)
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc

    today = _today()
    imported: list[Record] = []
    reader = csv.reader(io.StringIO(text), delimiter="\t" if fmt == "tsv" else ",")
    for line_no, row in enumerate(reader, start=1):
        cols = [c.strip() for c in row] + [""] * 5
        raw_date, category, url, title, tags = cols[:5]
        if not url:
            continue
        if "url" in " ".join(row).lower() and not re.match(r"^https?://", url):
            continue  # header row
        try:
            record_date = parse_date(raw_date) if raw_date else today
        except InvalidDate:
            logger.warning("Skipping row %d of %s: bad date %r", line_no, file, raw_date)
            continue
        result = resolver.resolve(url, tags.split())
        imported.append(
            Record(
                date=record_date,
                category=category or result.category,
                url=url,
                title=title,
                tags=result.tags,
            )
        )

    try:
        RecordStore(config.inbox_path).extend(imported)
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    console.print(f"Imported {len(imported)} record(s) from {escape(str(file))}")


@app.command(name="clear-inbox")
def clear_inbox_cmd(
    ctx: typer.Context,
    archive_dir: Annotated[
        Optional[Path],
        typer.Option("--archive-dir", help="Where to move the current inbox."),
    ] = None,
) -> None:
    """Move the whole inbox to a timestamped archive file and start empty."""
    config = _config(ctx)
    store = RecordStore(config.inbox_path)
    try:
        dest = store.clear(archive_dir or config.archive_dir)
    except IOFailure as exc:
        raise _fail(str(exc)) from exc
    if dest is None:
        console.print(f"Initialized new {escape(config.inbox_path.name)}")
    else:
        console.print(f"Archived to {escape(str(dest))} and cleared {escape(config.inbox_path.name)}")


@app.command(name="init")
def init_cmd(ctx: typer.Context) -> None:
    """Create the inbox, rules table, header template and output folders."""
    config = _config(ctx)
    try:
        config.digests_dir.mkdir(parents=True, exist_ok=True)
        config.archive_dir.mkdir(parents=True, exist_ok=True)
        if not config.inbox_path.exists():
            _atomic_write(config.inbox_path, "")
        if not config.header_path.exists():
            _atomic_write(config.header_path, DEFAULT_HEADER)
        ensure_default_rules(config.rules_path)
    except (OSError, IOFailure) as exc:
        raise _fail(str(exc), code=1) from exc
    console.print(f"Initialized at {escape(str(config.home.resolve()))}")


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------


@rules_app.command(name="list")
def rules_list_cmd(ctx: typer.Context) -> None:
    """Print the rules that loaded, in precedence-independent file order."""
    config = _config(ctx)
    try:
        resolver = _load_resolver(config)
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    if not resolver.rules:
        console.print("(no rules)")
        return
    for rule in resolver.rules:
        typer.echo("\t".join([rule.pattern, rule.category, " ".join(rule.default_tags)]))


@rules_app.command(name="add")
def rules_add_cmd(
    ctx: typer.Context,
    pattern: Annotated[str, typer.Argument(help="Domain or regular expression.")],
    category: Annotated[Optional[str], typer.Argument(help="Category to assign.")] = None,
    tags: Annotated[Optional[list[str]], typer.Argument(help="Default tags.")] = None,
) -> None:
    """Append a rule to rules.tsv."""
    config = _config(ctx)
    try:
        rule = add_rule(config.rules_path, pattern, category or "", tags or [])
    except ValueError as exc:
        raise _fail(str(exc)) from exc
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    console.print(f"Rule added: {escape(rule.pattern)}")


@rules_app.command(name="test")
def rules_test_cmd(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="URL to classify.")],
) -> None:
    """Show how a URL would be classified."""
    config = _config(ctx)
    try:
        resolver = _load_resolver(config)
    except IOFailure as exc:
        raise _fail(str(exc), code=1) from exc
    result = resolver.resolve(url)
    console.print(f"Domain: {escape(url_domain(url))}")
    console.print(f"Category (heuristic): {heuristic_category(url)}")
    console.print(f"Category (after rules): {escape(result.category)}")
    console.print(f"Matched rule: {escape(result.rule.pattern) if result.rule else '(none)'}")
    console.print(f"Default tags (from rules): {escape(' '.join(result.tags))}")


if __name__ == "__main__":
    app()
