"""Result types returned by the extraction cascade."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union


class Strategy(str, enum.Enum):
    ARRAY_INDIRECTION = "array_indirection"
    CALL_CONCATENATION = "call_concatenation"
    API_TRACE = "api_trace"
    CRYPTO_TRACE = "crypto_trace"
    FALLBACK = "fallback"


class Confidence(str, enum.Enum):
    HIGH = "high"
    LOW = "low"


class Outcome(str, enum.Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INVALID_MAPPING = "invalid_mapping"
    RECURSION_LIMIT = "recursion_limit"
    VALIDATION_REJECTED = "validation_rejected"
    DISABLED = "disabled"
    ERROR = "error"


def mask_key(value: Optional[str]) -> Optional[str]:
    """Return the first six characters of the key followed by an ellipsis."""

    if not value:
        return None
    return f"{value[:6]}... (len={len(value)})"


@dataclass(frozen=True)
class StrategyAttempt:
    """What one strategy did during a run."""

    strategy: str
    outcome: Outcome
    reason: str = ""
    candidates: int = 0

    def describe(self) -> str:
        if self.outcome is Outcome.SUCCESS:
            return Outcome.SUCCESS.value
        return f"{self.outcome.value}: {self.reason}" if self.reason else self.outcome.value

    def to_json(self) -> Dict[str, object]:
        return {
            "strategy": self.strategy,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "candidates": self.candidates,
        }


def _diagnostics(attempts: Tuple[StrategyAttempt, ...]) -> Dict[str, str]:
    return {attempt.strategy: attempt.describe() for attempt in attempts}


@dataclass(frozen=True)
class ExtractionResult:
    """A validated key and the strategy that produced it."""

    key: str
    strategy: Strategy
    confidence: Confidence
    attempts: Tuple[StrategyAttempt, ...]
    detail: str = ""
    flags: Tuple[str, ...] = ()

    success = True

    @property
    def diagnostics(self) -> Dict[str, str]:
        return _diagnostics(self.attempts)

    def masked_key(self) -> Optional[str]:
        return mask_key(self.key)

    def to_json(self, *, mask: bool = False) -> Dict[str, object]:
        return {
            "success": True,
            "decryptionKey": self.masked_key() if mask else self.key,
            "keyLength": len(self.key),
            "strategy": self.strategy.value,
            "confidence": self.confidence.value,
            "detail": self.detail,
            "flags": list(self.flags),
            "diagnostics": self.diagnostics,
            "attempts": [attempt.to_json() for attempt in self.attempts],
        }


@dataclass(frozen=True)
class ExtractionFailure:
    """Every strategy was tried and none produced a validated key."""

    reason: str
    attempts: Tuple[StrategyAttempt, ...]

    success = False

    @property
    def diagnostics(self) -> Dict[str, str]:
        return _diagnostics(self.attempts)

    def to_json(self, *, mask: bool = False) -> Dict[str, object]:
        return {
            "success": False,
            "error": self.reason,
            "diagnostics": self.diagnostics,
            "attempts": [attempt.to_json() for attempt in self.attempts],
        }


ExtractionOutcome = Union[ExtractionResult, ExtractionFailure]


__all__ = [
    "Confidence",
    "ExtractionFailure",
    "ExtractionOutcome",
    "ExtractionResult",
    "Outcome",
    "Strategy",
    "StrategyAttempt",
    "mask_key",
]
