"""Obtain payload text from disk or over HTTP.

Nothing here is used by the extraction core; callers load the text first and
hand the resulting string to :func:`megakey.extract`.
"""

from __future__ import annotations

import logging
from html.parser import HTMLParser
from pathlib import Path
from typing import Dict, List, Mapping, Optional
from urllib.error import URLError
from urllib.request import Request, urlopen

from .exceptions import PayloadError

LOG = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/89.0.142.86 Safari/537.36"
)
DEFAULT_TIMEOUT = 15
SCRIPT_NEEDLE = "eval"


class _ScriptCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self.scripts: List[str] = []
        self._buffer: Optional[List[str]] = None

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag == "script":
            self._buffer = []

    def handle_endtag(self, tag: str) -> None:
        if tag == "script" and self._buffer is not None:
            self.scripts.append("".join(self._buffer))
            self._buffer = None

    def handle_data(self, data: str) -> None:
        if self._buffer is not None:
            self._buffer.append(data)


def extract_scripts(html: str, needle: Optional[str] = SCRIPT_NEEDLE) -> List[str]:
    """Return inline ``<script>`` bodies, keeping only those containing ``needle``."""

    parser = _ScriptCollector()
    parser.feed(html)
    parser.close()
    if needle is None:
        return list(parser.scripts)
    return [script for script in parser.scripts if needle in script]


def looks_like_html(text: str) -> bool:
    head = text.lstrip()[:512].lower()
    return head.startswith("<!doctype html") or head.startswith("<html") or "<script" in head


def select_payload(text: str, needle: Optional[str] = SCRIPT_NEEDLE) -> str:
    """Reduce an HTML page to its packed script; plain scripts pass through.

    The last matching script wins, as later scripts on these pages carry the
    player code.
    """

    if not looks_like_html(text):
        return text
    scripts = extract_scripts(text, needle)
    if not scripts:
        raise PayloadError(f"no <script> block containing {needle!r} found")
    LOG.debug("page holds %d matching script(s); using the last", len(scripts))
    return scripts[-1]


def read_payload(path: str | Path, *, encoding: str = "utf-8") -> str:
    payload_path = Path(path)
    try:
        return payload_path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise PayloadError(f"cannot read payload {payload_path}: {exc}") from exc


def fetch_payload(
    url: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Download ``url`` and return the body decoded as text."""

    merged: Dict[str, str] = {"User-Agent": DEFAULT_USER_AGENT}
    merged.update(headers or {})
    request = Request(url, headers=merged)
    LOG.info("fetching %s", url)
    try:
        with urlopen(request, timeout=timeout) as response:
            charset = response.headers.get_content_charset() or "utf-8"
            body = response.read()
    except (URLError, OSError) as exc:
        raise PayloadError(f"request to {url} failed: {exc}") from exc
    return body.decode(charset, errors="replace")


def load_payload(
    source: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    needle: Optional[str] = SCRIPT_NEEDLE,
) -> str:
    """Load ``source`` (a URL or a file path) and reduce HTML pages to the packed script."""

    if source.startswith(("http://", "https://")):
        text = fetch_payload(source, headers=headers, timeout=timeout)
    else:
        text = read_payload(source)
    return select_payload(text, needle)


__all__ = [
    "extract_scripts",
    "fetch_payload",
    "load_payload",
    "looks_like_html",
    "read_payload",
    "select_payload",
]
