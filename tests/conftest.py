"""Test configuration ensuring the project package is importable."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
TESTS = ROOT / "tests"

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)
else:
    idx = sys.path.index(root_str)
    if idx != 0:
        sys.path.insert(0, sys.path.pop(idx))

if str(TESTS) in sys.path:
    sys.path.pop(sys.path.index(str(TESTS)))
sys.path.insert(1, str(TESTS))

from payloads import ARRAY_PAYLOAD, CHAIN_PAYLOAD, MINIFIED_PAYLOAD  # noqa: E402


@pytest.fixture
def chain_payload() -> str:
    return CHAIN_PAYLOAD


@pytest.fixture
def array_payload() -> str:
    return ARRAY_PAYLOAD


@pytest.fixture
def minified_payload() -> str:
    return MINIFIED_PAYLOAD


@pytest.fixture
def payload_file(tmp_path: Path):
    def _write(content: str, name: str = "payload.js") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
