"""Tests for page title lookup."""

from email.message import Message
from urllib.error import URLError

import pytest
from curate.titles import extract_title, fetch_title


class _FakeResponse:
    def __init__(self, body: bytes, content_type: str = "text/html; charset=utf-8") -> None:
        self._body = body
        self.headers = Message()
        self.headers["Content-Type"] = content_type

    def read(self, size: int = -1) -> bytes:
        return self._body if size < 0 else self._body[:size]

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc: object) -> None:
        return None


class TestExtractTitle:
    def test_collapses_whitespace_and_unescapes(self):
        page = "<html><head><TITLE>\n  Fish &amp; Chips\n  </TITLE></head></html>"
        assert extract_title(page) == "Fish & Chips"

    def test_attributes_on_title(self):
        assert extract_title('<title lang="en">Hello</title>') == "Hello"

    def test_missing(self):
        assert extract_title("<html></html>") == ""


class TestFetchTitle:
    def test_success(self, monkeypatch: pytest.MonkeyPatch):
        seen = {}

        def fake_urlopen(request, timeout):
            seen["url"] = request.full_url
            seen["timeout"] = timeout
            return _FakeResponse(b"<title>Example Page</title>")

        monkeypatch.setattr("curate.titles.urlopen", fake_urlopen)
        assert fetch_title("example.com/x", timeout=3) == "Example Page"
        assert seen == {"url": "https://example.com/x", "timeout": 3}

    def test_bare_url_with_embedded_scheme_gets_https(self, monkeypatch: pytest.MonkeyPatch):
        seen = {}

        def fake_urlopen(request, timeout):
            seen["url"] = request.full_url
            return _FakeResponse(b"<title>Video</title>")

        monkeypatch.setattr("curate.titles.urlopen", fake_urlopen)
        assert fetch_title("youtube.com/watch?v=abc&ref=https://t.co/x") == "Video"
        assert seen["url"] == "https://youtube.com/watch?v=abc&ref=https://t.co/x"

    def test_network_error_returns_empty(self, monkeypatch: pytest.MonkeyPatch):
        def fake_urlopen(request, timeout):
            raise URLError("offline")

        monkeypatch.setattr("curate.titles.urlopen", fake_urlopen)
        assert fetch_title("https://example.com") == ""

    def test_unknown_charset_returns_empty(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(
            "curate.titles.urlopen",
            lambda request, timeout: _FakeResponse(b"<title>x</title>", "text/html; charset=nope"),
        )
        assert fetch_title("https://example.com") == ""

    def test_empty_url(self):
        assert fetch_title("") == ""
