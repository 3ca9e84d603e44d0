"""Flat, tab-separated record log.

One record per line with five columns::

    date<TAB>category<TAB>url<TAB>title<TAB>tags

The whole log is read into memory for every command.  Every write,
single appends included, rewrites the log through ``_atomic_write`` so
an interrupted run never truncates it or leaves a partial row.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path

from pydantic import ValidationError

from curate.core import _atomic_write
from curate.errors import IOFailure
from curate.records.models import Record

logger = logging.getLogger(__name__)

DELIMITER = "\t"
FIELD_COUNT = 5
ARCHIVE_FILENAME = "archive.tsv"

# Alias to avoid shadowing by RecordStore.list method
_list = list


def format_row(record: Record) -> str:
    """Serialize a record to one log line (no trailing newline)."""
    return DELIMITER.join(
        [
            record.date.isoformat(),
            record.category,
            record.url,
            record.title,
            " ".join(record.tags),
        ]
    )


def parse_row(line: str) -> Record | None:
    """Parse one log line.

    Missing trailing columns are treated as empty.  Returns None for
    blank lines and for rows without a valid date or URL.
    """
    if not line.strip():
        return None
    cols = line.rstrip("\r\n").split(DELIMITER)
    cols += [""] * (FIELD_COUNT - len(cols))
    raw_date, category, url, title, tags = cols[:FIELD_COUNT]
    try:
        return Record(
            date=date.fromisoformat(raw_date.strip()),
            category=category,
            url=url,
            title=title,
            tags=tags,
        )
    except (ValueError, ValidationError):
        return None


class RecordStore:
    """Append-only record log backed by a TSV file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    # ── Read operations ──────────────────────────────────────────

    def load(self) -> _list[Record]:
        """Read every valid record in file order.

        Malformed rows are skipped with a warning.  A missing log is an
        empty log.
        """
        if not self._path.exists():
            return []
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IOFailure(f"cannot read {self._path}: {exc}") from exc

        records: _list[Record] = []
        for line_no, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            record = parse_row(line)
            if record is None:
                logger.warning("Skipping malformed row %d in %s", line_no, self._path)
                continue
            records.append(record)
        return records

    def list(
        self,
        since: date | None = None,
        until: date | None = None,
        limit: int | None = None,
    ) -> _list[Record]:
        """Return records, optionally bounded by date and count.

        When a date bound is given the result is sorted by date (stable);
        otherwise file order is kept.
        """
        results = self.load()
        if since is not None or until is not None:
            lo = since or date.min
            hi = until or date.max
            results = sorted((r for r in results if lo <= r.date <= hi), key=lambda r: r.date)
        if limit is not None:
            results = results[: max(limit, 0)]
        return results

    # ── Write operations ─────────────────────────────────────────

    def append(self, record: Record) -> None:
        """Append one record, always writing all five columns.

        The log is rewritten through ``_atomic_write`` so an interrupted
        ``add`` never leaves a partial row behind.
        """
        self.extend([record])
        logger.debug("Appended %s to %s", record.url, self._path)

    def extend(self, records: _list[Record]) -> None:
        """Append several records with a single atomic rewrite."""
        if not records:
            return
        existing = self._read_raw()
        if existing and not existing.endswith("\n"):
            existing += "\n"
        content = existing + "".join(format_row(r) + "\n" for r in records)
        self._write(content)

    def archive_range(self, start: date, end: date, archive_path: Path) -> int:
        """Move records dated within ``start..end`` to *archive_path*.

        The archive is appended to; the log is rewritten atomically with
        the remaining lines (malformed lines are preserved as-is).

        Returns:
            Number of records archived.
        """
        text = self._read_raw()
        kept: _list[str] = []
        moved: _list[str] = []
        for line in text.splitlines():
            record = parse_row(line)
            if record is not None and start <= record.date <= end:
                moved.append(line)
            elif line.strip():
                kept.append(line)

        if not moved:
            return 0

        archived = ""
        if archive_path.exists():
            try:
                archived = archive_path.read_text(encoding="utf-8")
            except OSError as exc:
                raise IOFailure(f"cannot read {archive_path}: {exc}") from exc
            if archived and not archived.endswith("\n"):
                archived += "\n"
        try:
            _atomic_write(archive_path, archived + "".join(f"{ln}\n" for ln in moved))
        except OSError as exc:
            raise IOFailure(f"cannot write {archive_path}: {exc}") from exc
        self._write("".join(f"{ln}\n" for ln in kept))
        logger.info("Archived %d record(s) %s..%s to %s", len(moved), start, end, archive_path)
        return len(moved)

    def clear(self, archive_dir: Path, now: datetime | None = None) -> Path | None:
        """Move the whole log to a timestamped archive file and start fresh.

        Returns:
            Path of the archived log, or None when there was no log yet.
        """
        if not self._path.exists():
            self._write("")
            return None
        stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
        dest = archive_dir / f"inbox-{stamp}.tsv"
        try:
            archive_dir.mkdir(parents=True, exist_ok=True)
            self._path.replace(dest)
        except OSError as exc:
            raise IOFailure(f"cannot archive {self._path} to {dest}: {exc}") from exc
        self._write("")
        return dest

    # ── Private helpers ──────────────────────────────────────────

    def _read_raw(self) -> str:
        if not self._path.exists():
            return ""
        try:
            return self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IOFailure(f"cannot read {self._path}: {exc}") from exc

    def _write(self, content: str) -> None:
        try:
            _atomic_write(self._path, content)
        except OSError as exc:
            raise IOFailure(f"cannot write {self._path}: {exc}") from exc
