"""Filter and group records into a digest document.

No file I/O happens here: the caller loads records and the header
template, and hands the resulting document to the renderer.
"""

from __future__ import annotations

import logging

from curate.calendar import DateRange
from curate.digest.models import (
    DigestDocument,
    DigestOptions,
    FrontMatter,
    GroupingMode,
    TagSection,
)
from curate.digest.renderer import display_tag
from curate.records.models import Record, category_heading, parse_category

logger = logging.getLogger(__name__)


def filter_records(records: list[Record], date_range: DateRange) -> list[Record]:
    """Records inside *date_range*, sorted by date.

    ``sorted`` is stable, so same-day records keep their log order.
    """
    return sorted((r for r in records if date_range.contains(r.date)), key=lambda r: r.date)


def group_by_tag(records: list[Record]) -> list[TagSection]:
    """One section per display tag, sorted by tag name.

    Records keep the order they have in *records*; a record with several
    tags appears in each of their sections, but only once per section.
    """
    by_tag: dict[str, list[Record]] = {}
    for record in records:
        seen: set[str] = set()
        for tag in record.tags:
            shown = display_tag(tag)
            if not shown or shown in seen:
                continue
            seen.add(shown)
            by_tag.setdefault(shown, []).append(record)
    return [TagSection(tag=tag, records=by_tag[tag]) for tag in sorted(by_tag)]


def compile_digest(
    records: list[Record],
    date_range: DateRange,
    options: DigestOptions | None = None,
    header: str = "",
) -> DigestDocument:
    """Build the digest for *date_range*.

    Args:
        records: Every record from the log, in log order.
        date_range: Inclusive range to keep.
        options: Grouping, header and category filter settings.
        header: Header template contents, prefixed verbatim unless
            ``options.include_header`` is False.

    Returns:
        The compiled document.
    """
    options = options or DigestOptions()
    rows = filter_records(records, date_range)

    title = f"All Items {date_range.label}"
    if options.category:
        wanted = parse_category(options.category)
        rows = [r for r in rows if str(r.kind).casefold() == str(wanted).casefold()]
        title = f"{category_heading(wanted)} {date_range.label}"

    show_tags = options.grouping in (GroupingMode.BY_TAG, GroupingMode.TAGS_ONLY)
    front_matter = None
    if options.front_matter:
        front_matter = FrontMatter(title=title, date=date_range.end, section=options.section)

    logger.debug(
        "Compiled %d of %d record(s) for %s (%s)",
        len(rows),
        len(records),
        date_range.label,
        options.grouping,
    )
    return DigestDocument(
        title=title,
        label=date_range.label,
        header=header if options.include_header else "",
        records=rows,
        tag_sections=group_by_tag(rows) if show_tags else [],
        show_flat=options.grouping != GroupingMode.TAGS_ONLY,
        show_tags=show_tags,
        front_matter=front_matter,
    )
