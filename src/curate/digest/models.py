"""Pure data models for compiled digests."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum

from pydantic import BaseModel, Field

from curate.records.models import Record


class GroupingMode(StrEnum):
    """How records are laid out in a digest."""

    FLAT = "flat"
    BY_TAG = "by-tag"
    TAGS_ONLY = "tags-only"

    @classmethod
    def from_flags(cls, group_tags: bool = False, tags_only: bool = False) -> GroupingMode:
        if tags_only:
            return cls.TAGS_ONLY
        if group_tags:
            return cls.BY_TAG
        return cls.FLAT


class DigestOptions(BaseModel):
    """Knobs for :func:`curate.digest.compiler.compile_digest`."""

    grouping: GroupingMode = GroupingMode.FLAT
    include_header: bool = True
    category: str | None = None
    front_matter: bool = False
    section: str = ""


class TagSection(BaseModel):
    """All in-range records carrying one tag."""

    tag: str
    records: list[Record] = Field(default_factory=list)


class FrontMatter(BaseModel):
    """YAML front matter for static-site generators."""

    title: str
    date: dt.date
    draft: bool = False
    type: str = "digest"
    section: str = ""


class DigestDocument(BaseModel):
    """A compiled digest, ready to render."""

    title: str
    label: str
    header: str = ""
    records: list[Record] = Field(default_factory=list)
    tag_sections: list[TagSection] = Field(default_factory=list)
    show_flat: bool = True
    show_tags: bool = False
    front_matter: FrontMatter | None = None
