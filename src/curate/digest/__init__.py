"""Digest domain: compile in-range records and render them."""

from curate.digest.compiler import compile_digest, filter_records, group_by_tag
from curate.digest.models import (
    DigestDocument,
    DigestOptions,
    FrontMatter,
    GroupingMode,
    TagSection,
)
from curate.digest.renderer import (
    display_tag,
    format_record_line,
    markdown_to_html,
    render_markdown,
)

__all__ = [
    "DigestDocument",
    "DigestOptions",
    "FrontMatter",
    "GroupingMode",
    "TagSection",
    "compile_digest",
    "display_tag",
    "filter_records",
    "format_record_line",
    "group_by_tag",
    "markdown_to_html",
    "render_markdown",
]
