"""Date range resolution for digests.

Four ways to pick a range, all returning a :class:`DateRange` whose
``label`` is safe to use as a file name:

- the current ISO week (evaluated in UTC),
- an explicit ISO week ``YYYY-Www``,
- an explicit ``start``/``end`` pair,
- a calendar month ``YYYY-MM``.

Bad input always raises; nothing here falls back to "now".
"""

from __future__ import annotations

import calendar
import re
from datetime import UTC, date, datetime, timedelta

from pydantic import BaseModel, model_validator

from curate.errors import InvalidDate, InvalidRange, InvalidWeek, MissingRequiredArgument

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_WEEK_RE = re.compile(r"^(\d{4})-W(\d{2})$", re.IGNORECASE)
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")


class DateRange(BaseModel):
    """Inclusive date range with a filename-safe label.

    Build ranges through the functions in this module; they raise
    :class:`InvalidRange` / :class:`InvalidDate` / :class:`InvalidWeek`.
    Constructing ``DateRange`` directly with ``end < start`` is still
    rejected, but pydantic wraps the error in a ``ValidationError``.
    """

    start: date
    end: date
    label: str

    @model_validator(mode="after")
    def _ordered(self) -> DateRange:
        if self.end < self.start:
            raise ValueError(f"end {self.end} is before start {self.start}")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def safe_label(text: str) -> str:
    """Normalize *text* for use as a file name component."""
    label = text.strip().replace(" to ", "_to_")
    label = _UNSAFE_RE.sub("-", label)
    return label or "digest"


def week_label(year: int, week: int) -> str:
    return f"{year}-W{week:02d}"


def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` date.

    Raises:
        InvalidDate: If the string is malformed or not a real date.
    """
    text = value.strip()
    if not _DATE_RE.match(text):
        raise InvalidDate(f"invalid date {value!r} (use YYYY-MM-DD)")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidDate(f"invalid date {value!r}: {exc}") from exc


def _week_bounds(day: date) -> tuple[date, date]:
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def current_week(now: datetime | None = None) -> DateRange:
    """ISO week (Monday..Sunday) containing *now*, taken in UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if now is None:
        now = datetime.now(tz=UTC)
    elif now.tzinfo is not None:
        now = now.astimezone(UTC)
    today = now.date()
    start, end = _week_bounds(today)
    iso = today.isocalendar()
    return DateRange(start=start, end=end, label=week_label(iso.year, iso.week))


def week_containing(day: date) -> DateRange:
    """ISO week containing *day*."""
    start, end = _week_bounds(day)
    iso = day.isocalendar()
    return DateRange(start=start, end=end, label=week_label(iso.year, iso.week))


def iso_week(value: str) -> DateRange:
    """Resolve ``YYYY-Www`` to its Monday..Sunday range.

    Week 1 is the week containing January 4th.  Week 53 is only accepted
    for ISO years that have one; its Sunday may fall in the next
    calendar year.

    Raises:
        InvalidWeek: If the string is malformed or the week does not exist.
    """
    m = _WEEK_RE.match(value.strip())
    if not m:
        raise InvalidWeek(f"invalid week {value!r} (use YYYY-Www)")
    year, week = int(m.group(1)), int(m.group(2))
    if not 1 <= week <= 53:
        raise InvalidWeek(f"invalid week {value!r}: week must be 1-53")
    try:
        monday = date.fromisocalendar(year, week, 1)
    except ValueError as exc:
        raise InvalidWeek(f"invalid week {value!r}: {exc}") from exc
    return DateRange(start=monday, end=monday + timedelta(days=6), label=week_label(year, week))


def shift_weeks(week_range: DateRange, weeks: int) -> DateRange:
    """Move a week range by *weeks*, relabelled by ISO week."""
    return week_containing(week_range.start + timedelta(weeks=weeks))


def explicit_range(start: str | date, end: str | date) -> DateRange:
    """Range from explicit start/end dates (inclusive).

    Raises:
        InvalidDate: If either date string is malformed.
        InvalidRange: If ``end`` is before ``start``.
    """
    start_d = start if isinstance(start, date) else parse_date(start)
    end_d = end if isinstance(end, date) else parse_date(end)
    if end_d < start_d:
        raise InvalidRange(f"end {end_d} is before start {start_d}")
    label = safe_label(f"{start_d.isoformat()} to {end_d.isoformat()}")
    return DateRange(start=start_d, end=end_d, label=label)


def month(value: str) -> DateRange:
    """First through last day of ``YYYY-MM``.

    Raises:
        InvalidDate: If the string is malformed or the month is out of range.
    """
    m = _MONTH_RE.match(value.strip())
    if not m:
        raise InvalidDate(f"invalid month {value!r} (use YYYY-MM)")
    year, mon = int(m.group(1)), int(m.group(2))
    if not 1 <= mon <= 12 or year < 1:
        raise InvalidDate(f"invalid month {value!r}")
    last_day = calendar.monthrange(year, mon)[1]
    return DateRange(
        start=date(year, mon, 1),
        end=date(year, mon, last_day),
        label=f"{year:04d}-{mon:02d}",
    )


def resolve_range(
    week: str | None = None,
    start: str | None = None,
    end: str | None = None,
    month_value: str | None = None,
    now: datetime | None = None,
) -> DateRange:
    """Pick the range for a digest from mutually exclusive inputs.

    With no inputs the current UTC week is used.

    Raises:
        MissingRequiredArgument: If only one of ``start``/``end`` is given.
        InvalidRange: If more than one mode is requested.
    """
    explicit = start is not None or end is not None
    modes = sum([week is not None, explicit, month_value is not None])
    if modes > 1:
        raise InvalidRange("choose only one of --week, --start/--end, --month")
    if explicit:
        if start is None:
            raise MissingRequiredArgument("--end requires --start")
        if end is None:
            raise MissingRequiredArgument("--start requires --end")
        return explicit_range(start, end)
    if week is not None:
        return iso_week(week)
    if month_value is not None:
        return month(month_value)
    return current_week(now)
