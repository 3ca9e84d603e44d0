"""Record domain: captured links and the flat record log."""

from curate.records.models import (
    DEFAULT_CATEGORY,
    TAG_MARKER,
    Category,
    Record,
    normalize_tags,
    parse_category,
)
from curate.records.store import RecordStore

__all__ = [
    "DEFAULT_CATEGORY",
    "TAG_MARKER",
    "Category",
    "Record",
    "RecordStore",
    "normalize_tags",
    "parse_category",
]
