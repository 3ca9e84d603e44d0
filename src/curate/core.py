"""Shared file helpers."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def _atomic_write(path: Path, content: str) -> None:
    """Write *content* to *path* via a temp file in the same directory.

    The temp file is flushed and fsynced before ``os.replace`` so an
    interrupted write never leaves a truncated target behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            Path(tmp_name).unlink()
        raise
    logger.debug("Wrote %s (%d chars)", path, len(content))
