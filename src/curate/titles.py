"""Best-effort page title lookup for ``curate add --fetch-title``."""

from __future__ import annotations

import html
import logging
import re
from urllib.error import URLError
from urllib.request import Request, urlopen

from curate.rules.services import has_scheme

logger = logging.getLogger(__name__)

_USER_AGENT = "Mozilla/5.0 (compatible; curate/0.4; +https://example.invalid/curate)"
_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_MAX_BYTES = 512 * 1024


def extract_title(page: str) -> str:
    """Return the collapsed text of the first ``<title>`` element."""
    m = _TITLE_RE.search(page)
    if not m:
        return ""
    return " ".join(html.unescape(m.group(1)).split())


def fetch_title(url: str, timeout: int = 6) -> str:
    """Fetch *url* and return its page title, or ``""`` on any failure.

    Only the first 512 KiB of the response are read.
    """
    if not url:
        return ""
    target = url if has_scheme(url) else f"https://{url.lstrip('/')}"
    try:
        request = Request(target, headers={"User-Agent": _USER_AGENT})  # noqa: S310
        with urlopen(request, timeout=timeout) as response:  # noqa: S310
            charset = response.headers.get_content_charset() or "utf-8"
            page = response.read(_MAX_BYTES).decode(charset, errors="replace")
    except (URLError, TimeoutError, OSError, ValueError, LookupError) as exc:
        logger.debug("Failed to fetch title for %s: %s", url, exc)
        return ""
    return extract_title(page)
