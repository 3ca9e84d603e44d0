"""Pure data models for captured links.

No I/O here.  The record log format lives in ``curate.records.store``.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

TAG_MARKER = "#"
DEFAULT_CATEGORY = "link"


class Category(StrEnum):
    """Categories the tool knows how to label.

    Rule tables may introduce any other category; those stay plain
    strings (see :func:`parse_category`).
    """

    VIDEO = "video"
    BLOG = "blog"
    NEWS = "news"
    LINK = "link"
    ARTICLE = "article"
    TWEET = "tweet"
    POST = "post"
    THREAD = "thread"
    HN = "hn"
    CODE = "code"
    PDF = "pdf"

    @property
    def heading(self) -> str:
        """Plural heading used for per-category digests."""
        return _HEADINGS[self]


_HEADINGS: dict[Category, str] = {
    Category.VIDEO: "Videos",
    Category.BLOG: "Blogs",
    Category.NEWS: "News",
    Category.LINK: "Links",
    Category.ARTICLE: "Articles",
    Category.TWEET: "Tweets",
    Category.POST: "Posts",
    Category.THREAD: "Threads",
    Category.HN: "Hacker News",
    Category.CODE: "Code",
    Category.PDF: "PDFs",
}


def parse_category(raw: str) -> Category | str:
    """Return the known :class:`Category` for *raw*, or *raw* itself.

    Matching is case-insensitive; unknown categories are returned
    stripped but otherwise untouched so custom rule categories survive.
    """
    value = raw.strip()
    try:
        return Category(value.lower())
    except ValueError:
        return value


def category_heading(category: Category | str) -> str:
    """Heading for a category, known or custom."""
    if isinstance(category, Category):
        return category.heading
    return category[:1].upper() + category[1:]


def sanitize_field(value: str) -> str:
    """Collapse tabs and line breaks so a value fits in one log column."""
    for ch in ("\t", "\r", "\n"):
        value = value.replace(ch, " ")
    return value.strip()


def normalize_tag(raw: str) -> str:
    """Strip whitespace and ensure the marker prefix. Empty stays empty."""
    tag = raw.strip()
    if not tag or tag == TAG_MARKER:
        return ""
    if not tag.startswith(TAG_MARKER):
        tag = TAG_MARKER + tag
    return tag


def normalize_tags(*groups: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """Merge tag groups into one ordered, de-duplicated tuple.

    Every token is marker-prefixed; the first occurrence of a tag wins.
    Whitespace inside a group entry splits it into several tags.
    """
    seen: set[str] = set()
    out: list[str] = []
    for group in groups:
        for entry in group:
            for token in entry.split():
                tag = normalize_tag(token)
                if tag and tag not in seen:
                    seen.add(tag)
                    out.append(tag)
    return tuple(out)


class Record(BaseModel):
    """One captured link.

    Records are immutable once appended to the log.
    """

    model_config = ConfigDict(frozen=True)

    date: dt.date
    category: str = DEFAULT_CATEGORY
    url: str
    title: str = ""
    tags: tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("url")
    @classmethod
    def _url_not_empty(cls, value: str) -> str:
        value = sanitize_field(value)
        if not value:
            raise ValueError("url must not be empty")
        return value

    @field_validator("category")
    @classmethod
    def _category_default(cls, value: str) -> str:
        return sanitize_field(value) or DEFAULT_CATEGORY

    @field_validator("title")
    @classmethod
    def _title_single_line(cls, value: str) -> str:
        return sanitize_field(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_normalized(cls, value: object) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return normalize_tags([value])
        return normalize_tags(list(value))  # type: ignore[call-overload]

    @property
    def kind(self) -> Category | str:
        """The category as a known :class:`Category` when possible."""
        return parse_category(self.category)
