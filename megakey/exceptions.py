"""Custom exception hierarchy for the key extractor."""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for all expected, non-fatal extraction failures.

    Strategies raise subclasses to explain why they produced nothing; the
    cascade records :attr:`outcome` together with the message and moves on.
    """

    outcome = "error"


class NotFound(ExtractionError):
    """Raised when the pattern a strategy looks for is absent."""

    outcome = "not_found"


class InvalidMapping(ExtractionError):
    """Raised when index arrays point outside their fragment array."""

    outcome = "invalid_mapping"


class RecursionLimitExceeded(ExtractionError):
    """Raised when a call chain is too deep or refers back to itself."""

    outcome = "recursion_limit"


class ValidationRejected(ExtractionError):
    """Raised when a composed key fails the result validator."""

    outcome = "validation_rejected"


class ConfigError(ValueError):
    """Raised for unusable extractor configuration."""


class PayloadError(RuntimeError):
    """Raised when the payload text cannot be read or fetched."""


__all__ = [
    "ConfigError",
    "ExtractionError",
    "InvalidMapping",
    "NotFound",
    "PayloadError",
    "RecursionLimitExceeded",
    "ValidationRejected",
]
