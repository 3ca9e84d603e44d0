"""Pure data models for URL classification rules."""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

_DOMAIN_PATTERN = re.compile(r"^[A-Za-z0-9.-]+$")


class Rule(BaseModel):
    """A pattern-to-category mapping with default tags.

    A pattern made only of letters, digits, dots and hyphens is a plain
    domain and is matched against whole labels of the URL host (a leading
    ``www.`` is ignored); anything else is a regular expression searched
    in the full URL.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str
    category: str = ""
    default_tags: tuple[str, ...] = Field(default_factory=tuple)
    line_no: int = 0

    @property
    def domain_scoped(self) -> bool:
        return bool(_DOMAIN_PATTERN.match(self.pattern))

    @property
    def specificity(self) -> int:
        """Length used for longest-match precedence."""
        return len(self.pattern)


class RuleParseWarning(BaseModel):
    """A rule that was skipped while loading or compiling the rule table."""

    line_no: int
    pattern: str
    message: str

    def __str__(self) -> str:
        where = f"line {self.line_no}" if self.line_no else "rule"
        return f"{where}: skipped {self.pattern!r} ({self.message})"


class RuleLoadResult(BaseModel):
    """Rules that loaded cleanly plus warnings for the ones that did not."""

    rules: list[Rule] = Field(default_factory=list)
    warnings: list[RuleParseWarning] = Field(default_factory=list)


class MatchSource(StrEnum):
    """Where a classification came from."""

    RULE = "rule"
    HEURISTIC = "heuristic"
    DEFAULT = "default"


class Classification(BaseModel):
    """Outcome of resolving one URL."""

    category: str
    tags: tuple[str, ...] = Field(default_factory=tuple)
    source: MatchSource = MatchSource.DEFAULT
    rule: Rule | None = None
