"""Extractor configuration and ``config.json`` loading."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping, Tuple

from .exceptions import ConfigError

LOG = logging.getLogger(__name__)

DEFAULT_API_ROUTE_MARKER = "/embed-1/v2/e-1/getSources?id="

# Each entry is a regular expression matching the text up to (and including)
# the opening parenthesis of a decrypt call.
DEFAULT_DECRYPT_CALL_PATTERNS: Tuple[str, ...] = (
    r"\bCryptoJS\s*\.\s*AES\s*\.\s*decrypt\s*\(",
    r"\bCryptoJS\s*\[\s*[\"']AES[\"']\s*\]\s*\[\s*[\"']decrypt[\"']\s*\]\s*\(",
    r"\bAES\s*\.\s*decrypt\s*\(",
    r"\[\s*[\"']AES[\"']\s*\]\s*\.\s*decrypt\s*\(",
)

DEFAULT_KEY_ARGUMENT_MARKERS: Tuple[str, ...] = ("JScripts",)

MAX_RECURSION_DEPTH = 200


@dataclass(frozen=True)
class ExtractorConfig:
    """Immutable tuning knobs shared by every strategy in a run."""

    proximity_threshold: int = 1000
    min_array_size: int = 10
    min_key_length: int = 10
    max_recursion_depth: int = 10
    enable_api_trace: bool = True
    enable_crypto_trace: bool = True
    enable_fallback_scan: bool = True
    api_route_marker: str = DEFAULT_API_ROUTE_MARKER
    api_trace_hops: int = 2
    api_trace_window: int = 8
    decrypt_call_patterns: Tuple[str, ...] = field(default=DEFAULT_DECRYPT_CALL_PATTERNS)
    key_argument_markers: Tuple[str, ...] = field(default=DEFAULT_KEY_ARGUMENT_MARKERS)
    fallback_call_count: int = 9
    reject_unprintable: bool = True
    debug: bool = False

    def __post_init__(self) -> None:
        for name in ("proximity_threshold", "min_array_size", "min_key_length"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigError(f"{name} must be a non-negative integer, got {value!r}")
        for name in ("max_recursion_depth", "api_trace_hops", "api_trace_window", "fallback_call_count"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        # Keeps call-chain resolution below the interpreter's recursion limit.
        if self.max_recursion_depth > MAX_RECURSION_DEPTH:
            raise ConfigError(
                f"max_recursion_depth must be at most {MAX_RECURSION_DEPTH}, got {self.max_recursion_depth}"
            )
        # JSON hands us lists; keep the dataclass hashable.
        object.__setattr__(self, "decrypt_call_patterns", tuple(self.decrypt_call_patterns))
        object.__setattr__(self, "key_argument_markers", tuple(self.key_argument_markers))

    def strategy_enabled(self, name: str) -> bool:
        """Return ``False`` when ``name`` is an optional heuristic switched off."""

        toggles = {
            "api_trace": self.enable_api_trace,
            "crypto_trace": self.enable_crypto_trace,
            "fallback": self.enable_fallback_scan,
        }
        return toggles.get(name, True)

    def with_overrides(self, **overrides: Any) -> "ExtractorConfig":
        cleaned = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **cleaned) if cleaned else self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ExtractorConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""

        known = {item.name for item in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
        try:
            return cls(**dict(data))
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc

    def to_json(self) -> dict:
        return {item.name: getattr(self, item.name) for item in fields(self)}


DEFAULT_CONFIG = ExtractorConfig()


def load_config(path: Path | str | None) -> ExtractorConfig:
    """Load configuration from a JSON file, or the defaults when ``path`` is None."""

    if path is None:
        return DEFAULT_CONFIG
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config {config_path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")
    LOG.debug("loaded configuration from %s (%d keys)", config_path, len(data))
    return ExtractorConfig.from_mapping(data)


__all__ = [
    "DEFAULT_API_ROUTE_MARKER",
    "DEFAULT_CONFIG",
    "DEFAULT_DECRYPT_CALL_PATTERNS",
    "DEFAULT_KEY_ARGUMENT_MARKERS",
    "MAX_RECURSION_DEPTH",
    "ExtractorConfig",
    "load_config",
]
