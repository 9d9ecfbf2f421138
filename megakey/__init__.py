"""Static extraction of decryption keys from obfuscated player scripts."""

from __future__ import annotations

from .cascade import extract
from .config import DEFAULT_CONFIG, ExtractorConfig, load_config
from .exceptions import (
    ConfigError,
    ExtractionError,
    InvalidMapping,
    NotFound,
    PayloadError,
    RecursionLimitExceeded,
    ValidationRejected,
)
from .models import Confidence, ExtractionFailure, ExtractionResult, Outcome, Strategy, StrategyAttempt

__version__ = "0.1.0"

__all__ = [
    "Confidence",
    "ConfigError",
    "DEFAULT_CONFIG",
    "ExtractionError",
    "ExtractionFailure",
    "ExtractionResult",
    "ExtractorConfig",
    "InvalidMapping",
    "NotFound",
    "Outcome",
    "PayloadError",
    "RecursionLimitExceeded",
    "Strategy",
    "StrategyAttempt",
    "ValidationRejected",
    "extract",
    "load_config",
]
