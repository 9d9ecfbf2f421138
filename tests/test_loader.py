import io
from pathlib import Path
from urllib.error import URLError

import pytest

from megakey import loader
from megakey.exceptions import PayloadError

PAGE = """<!DOCTYPE html>
<html>
<head><script src="/player.js"></script></head>
<body>
<script>var config = {autoplay: true};</script>
<script>eval(function(p,a,c,k,e,d){return p}('first'))</script>
<script>eval(function(p,a,c,k,e,d){return p}('second < 3'))</script>
</body>
</html>
"""


def test_extract_scripts_keeps_eval_blocks() -> None:
    scripts = loader.extract_scripts(PAGE)
    assert len(scripts) == 2
    assert all("eval" in script for script in scripts)
    assert len(loader.extract_scripts(PAGE, needle=None)) == 4


def test_select_payload_prefers_last_matching_script() -> None:
    assert "second < 3" in loader.select_payload(PAGE)


def test_select_payload_passes_scripts_through() -> None:
    script = "var a = 1;\nfunction b() { return 'x'; }"
    assert loader.select_payload(script) == script


def test_select_payload_without_packed_script() -> None:
    with pytest.raises(PayloadError):
        loader.select_payload("<html><script>var a = 1;</script></html>")


def test_read_payload(payload_file) -> None:
    path = payload_file("var k = 1;")
    assert loader.read_payload(path) == "var k = 1;"
    with pytest.raises(PayloadError):
        loader.read_payload(path.parent / "missing.js")


class _FakeResponse(io.BytesIO):
    def __init__(self, body: bytes) -> None:
        super().__init__(body)
        self.headers = self

    def get_content_charset(self):
        return "utf-8"


def test_fetch_payload_sends_headers(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def fake_urlopen(request, timeout):
        seen["url"] = request.full_url
        seen["referer"] = request.get_header("Referer")
        seen["agent"] = request.get_header("User-agent")
        seen["timeout"] = timeout
        return _FakeResponse(PAGE.encode("utf-8"))

    monkeypatch.setattr(loader, "urlopen", fake_urlopen)
    text = loader.load_payload("https://example.test/v/abc", headers={"Referer": "https://example.test/"}, timeout=3)
    assert "second < 3" in text
    assert seen["url"] == "https://example.test/v/abc"
    assert seen["referer"] == "https://example.test/"
    assert seen["agent"] == loader.DEFAULT_USER_AGENT
    assert seen["timeout"] == 3


def test_fetch_payload_wraps_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing(request, timeout):
        raise URLError("unreachable")

    monkeypatch.setattr(loader, "urlopen", failing)
    with pytest.raises(PayloadError):
        loader.fetch_payload("https://example.test/")
