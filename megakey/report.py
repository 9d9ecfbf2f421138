"""Persist extraction results as JSON documents."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .models import ExtractionOutcome, mask_key


def _ensure_directory(path: str) -> str:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    return directory


def write_json(path: str | os.PathLike[str], obj: Any, *, encoding: str = "utf-8") -> None:
    """Serialise ``obj`` as pretty JSON at ``path``, replacing the file atomically."""

    target = os.fspath(path)
    directory = _ensure_directory(target)
    fd, temp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".partial", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as handle:
            json.dump(obj, handle, ensure_ascii=False, indent=2)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target)
    except Exception:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        raise


def build_document(
    outcome: ExtractionOutcome,
    *,
    source: Optional[str] = None,
    mask: bool = False,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Return the JSON document describing ``outcome``.

    ``decryptionKey`` is ``None`` on failure so consumers can test a single
    field.
    """

    moment = timestamp or datetime.now(timezone.utc)
    document: Dict[str, Any] = {"timestamp": moment.isoformat()}
    if source is not None:
        document["source"] = source
    if outcome.success:
        document.update(outcome.to_json(mask=mask))
    else:
        document["decryptionKey"] = None
        document["strategy"] = None
        document["confidence"] = None
        document.update(outcome.to_json(mask=mask))
    return document


def write_result(
    path: str | os.PathLike[str],
    outcome: ExtractionOutcome,
    *,
    source: Optional[str] = None,
    mask: bool = False,
) -> Dict[str, Any]:
    document = build_document(outcome, source=source, mask=mask)
    write_json(path, document)
    return document


def to_text(outcome: ExtractionOutcome, *, mask: bool = False) -> str:
    """Format ``outcome`` as a short human-readable summary."""

    lines = []
    if outcome.success:
        key = mask_key(outcome.key) if mask else outcome.key
        lines.append(f"Key: {key}")
        lines.append(f"Strategy: {outcome.strategy.value} (confidence {outcome.confidence.value})")
        if outcome.detail:
            lines.append(f"Origin: {outcome.detail}")
        for flag in outcome.flags:
            lines.append(f"Flag: {flag}")
    else:
        lines.append(f"No key found: {outcome.reason}")
    lines.append("Strategies:")
    for name, verdict in outcome.diagnostics.items():
        lines.append(f"  - {name}: {verdict}")
    return "\n".join(lines)


__all__ = ["build_document", "mask_key", "to_text", "write_json", "write_result"]
