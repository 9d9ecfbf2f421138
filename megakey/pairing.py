"""Pair numeric index arrays with string fragment arrays.

Pairing is purely positional: candidates are merged in source order and
adjacent arrays of opposite kind within ``proximity_threshold`` characters are
paired first.  Every remaining string/number combination is offered as a
lower-ranked sweep pair.  Each pair must survive :func:`validate_mapping`
before it is handed to the composer.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from .config import DEFAULT_CONFIG, ExtractorConfig
from .exceptions import InvalidMapping, NotFound
from .scanner import ArrayKind, LiteralArrayCandidate

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArrayPair:
    """A string fragment array and the index array selecting from it."""

    string_array: LiteralArrayCandidate
    number_array: LiteralArrayCandidate
    proximity: int
    adjacent: bool = True
    referenced: bool = False

    def rank_key(self) -> Tuple[int, int, int, int, int, int]:
        return (
            0 if self.referenced else 1,
            0 if self.adjacent else 1,
            0 if self.string_array.hex_like else 1,
            self.proximity,
            self.string_array.offset,
            self.number_array.offset,
        )

    def describe(self) -> str:
        origin = "adjacent" if self.adjacent else "sweep"
        return (
            f"{self.number_array.describe()} -> {self.string_array.describe()} "
            f"({origin}, distance={self.proximity})"
        )


@dataclass
class PairingReport:
    """Accepted pairs, best first, plus the reasons other pairs were dropped."""

    pairs: List[ArrayPair] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


def validate_mapping(string_array: LiteralArrayCandidate, number_array: LiteralArrayCandidate) -> None:
    """Raise :class:`InvalidMapping` unless every index resolves in ``string_array``."""

    if string_array.kind is not ArrayKind.STRING or number_array.kind is not ArrayKind.NUMBER:
        raise InvalidMapping(
            f"{string_array.name}/{number_array.name}: expected a string array and a number array"
        )
    size = len(string_array.elements)
    for position, index in enumerate(number_array.elements):
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidMapping(
                f"{number_array.name}[{position}]={index!r} is not an integer index"
            )
        if index < 0 or index >= size:
            raise InvalidMapping(
                f"{number_array.name}[{position}]={index} outside {string_array.name} (length {size})"
            )


def is_valid_mapping(string_array: LiteralArrayCandidate, number_array: LiteralArrayCandidate) -> bool:
    try:
        validate_mapping(string_array, number_array)
    except InvalidMapping:
        return False
    return True


def array_gap(first: LiteralArrayCandidate, second: LiteralArrayCandidate) -> int:
    """Characters between the end of the earlier array and the start of the later one."""

    earlier, later = sorted((first, second), key=lambda item: item.offset)
    return max(0, later.offset - earlier.stop)


def _mapping_referenced(text: str, number_name: str, string_name: str) -> bool:
    # ``N.map(i => S[i])`` or ``N["map"](function (i) { return S[i]; })``
    pattern = (
        rf"(?<![\w$.]){re.escape(number_name)}\s*(?:\.\s*map|\[\s*[\"']map[\"']\s*\])\s*\("
        rf"[\s\S]{{0,400}}?(?<![\w$.]){re.escape(string_name)}\s*\["
    )
    return re.search(pattern, text) is not None


def _candidate_pairs(
    string_arrays: Sequence[LiteralArrayCandidate],
    number_arrays: Sequence[LiteralArrayCandidate],
    threshold: int,
) -> List[ArrayPair]:
    merged = sorted([*string_arrays, *number_arrays], key=lambda item: (item.offset, item.kind.value))
    pairs: List[ArrayPair] = []
    seen: Set[Tuple[int, int]] = set()

    for left, right in zip(merged, merged[1:]):
        if left.kind is right.kind:
            continue
        distance = array_gap(left, right)
        if distance > threshold:
            continue
        strings, numbers = (left, right) if left.kind is ArrayKind.STRING else (right, left)
        seen.add((strings.offset, numbers.offset))
        pairs.append(ArrayPair(strings, numbers, distance, adjacent=True))

    for strings in string_arrays:
        for numbers in number_arrays:
            if (strings.offset, numbers.offset) in seen:
                continue
            distance = array_gap(strings, numbers)
            pairs.append(ArrayPair(strings, numbers, distance, adjacent=False))
    return pairs


def locate_with_report(
    string_arrays: Sequence[LiteralArrayCandidate],
    number_arrays: Sequence[LiteralArrayCandidate],
    config: ExtractorConfig = DEFAULT_CONFIG,
    *,
    text: Optional[str] = None,
) -> PairingReport:
    """Rank and validate every candidate pair.

    When ``text`` is given, pairs tied together by a ``map`` expression in the
    payload are ranked above everything else.
    """

    report = PairingReport()
    for pair in _candidate_pairs(string_arrays, number_arrays, config.proximity_threshold):
        try:
            validate_mapping(pair.string_array, pair.number_array)
        except InvalidMapping as exc:
            report.rejected.append(str(exc))
            continue
        if text is not None and _mapping_referenced(text, pair.number_array.name, pair.string_array.name):
            pair = ArrayPair(
                pair.string_array,
                pair.number_array,
                pair.proximity,
                adjacent=pair.adjacent,
                referenced=True,
            )
        report.pairs.append(pair)
    report.pairs.sort(key=ArrayPair.rank_key)
    LOG.debug("pairing: %d accepted, %d rejected", len(report.pairs), len(report.rejected))
    return report


def locate(
    string_arrays: Sequence[LiteralArrayCandidate],
    number_arrays: Sequence[LiteralArrayCandidate],
    config: ExtractorConfig = DEFAULT_CONFIG,
    *,
    text: Optional[str] = None,
) -> List[ArrayPair]:
    """Return validated array pairs, best first."""

    return locate_with_report(string_arrays, number_arrays, config, text=text).pairs


def require_pairs(report: PairingReport, string_count: int, number_count: int) -> List[ArrayPair]:
    """Return the report's pairs or raise the error explaining their absence."""

    if report.pairs:
        return report.pairs
    if not string_count or not number_count:
        raise NotFound(
            f"need both array kinds, found {string_count} string and {number_count} number arrays"
        )
    first = report.rejected[0] if report.rejected else "no candidate pairs"
    raise InvalidMapping(f"all {len(report.rejected)} candidate pairs out of bounds; first: {first}")


__all__ = [
    "ArrayPair",
    "PairingReport",
    "array_gap",
    "is_valid_mapping",
    "locate",
    "locate_with_report",
    "require_pairs",
    "validate_mapping",
]
