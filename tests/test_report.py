import json
from datetime import datetime, timezone
from pathlib import Path

from megakey import extract
from megakey.report import build_document, mask_key, to_text, write_result

from payloads import CHAIN_KEY


def test_mask_key() -> None:
    assert mask_key("abcdefghijkl") == "abcdef... (len=12)"
    assert mask_key(None) is None
    assert mask_key("") is None


def test_document_for_success(chain_payload: str) -> None:
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    document = build_document(extract(chain_payload), source="player.js", timestamp=moment)
    assert document["timestamp"] == "2024-01-02T03:04:05+00:00"
    assert document["success"] is True
    assert document["decryptionKey"] == CHAIN_KEY
    assert document["strategy"] == "call_concatenation"
    assert document["confidence"] == "high"
    assert document["diagnostics"] == {"call_concatenation": "success"}
    assert document["source"] == "player.js"


def test_document_for_failure() -> None:
    document = build_document(extract("var x = 1;"))
    assert document["success"] is False
    assert document["decryptionKey"] is None
    assert document["strategy"] is None
    assert document["error"] == "all strategies exhausted"
    assert len(document["attempts"]) == 5


def test_write_result_is_atomic_json(tmp_path: Path, chain_payload: str) -> None:
    target = tmp_path / "out" / "extracted.json"
    write_result(target, extract(chain_payload), mask=True)
    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["decryptionKey"] == mask_key(CHAIN_KEY)
    assert [item.name for item in target.parent.iterdir()] == ["extracted.json"]


def test_text_summary(chain_payload: str) -> None:
    text = to_text(extract(chain_payload), mask=True)
    assert "aB3dE5... (len=32)" in text
    assert "call_concatenation" in text
    assert CHAIN_KEY not in text
