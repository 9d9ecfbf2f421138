"""Post-hoc sanity checks shared by every strategy."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from .config import DEFAULT_CONFIG, ExtractorConfig
from .exceptions import ValidationRejected

_SPECIAL_RE = re.compile(r"[^a-zA-Z0-9]")

FLAG_NO_SPECIAL_CHARACTERS = "no_special_characters"


@dataclass(frozen=True)
class ValidationOutcome:
    """Whether a candidate key is accepted, and the statistics behind it."""

    accepted: bool
    reason: str
    length: int
    has_special_chars: bool
    flags: Tuple[str, ...] = ()


def validate(candidate: str, config: ExtractorConfig = DEFAULT_CONFIG) -> ValidationOutcome:
    """Check ``candidate`` against the minimum length and character-class rules.

    Keys without special characters are flagged, never rejected: a real key is
    not required to contain any.
    """

    length = len(candidate)
    has_special = bool(_SPECIAL_RE.search(candidate))
    flags: Tuple[str, ...] = () if has_special else (FLAG_NO_SPECIAL_CHARACTERS,)

    if length < config.min_key_length:
        reason = f"key too short ({length} < {config.min_key_length} characters)"
        return ValidationOutcome(False, reason, length, has_special, flags)
    if config.reject_unprintable and any(not ch.isprintable() or ch.isspace() for ch in candidate):
        reason = "key contains whitespace or non-printable characters"
        return ValidationOutcome(False, reason, length, has_special, flags)
    return ValidationOutcome(True, "ok", length, has_special, flags)


def ensure_valid(candidate: str, config: ExtractorConfig = DEFAULT_CONFIG) -> ValidationOutcome:
    """Like :func:`validate` but raise :class:`ValidationRejected` for rejected keys."""

    outcome = validate(candidate, config)
    if not outcome.accepted:
        raise ValidationRejected(outcome.reason)
    return outcome


__all__ = ["FLAG_NO_SPECIAL_CHARACTERS", "ValidationOutcome", "ensure_valid", "validate"]
