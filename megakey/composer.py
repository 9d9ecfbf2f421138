"""Materialise keys from validated array pairs."""

from __future__ import annotations

import enum
import re
from typing import Iterable, List, Sequence

from .pairing import ArrayPair

_HEX_FRAGMENT_RE = re.compile(r"^[0-9a-fA-F]{1,2}$")


class ComposeMode(str, enum.Enum):
    """How a selected fragment contributes to the key."""

    RAW = "raw"
    HEX = "hex"


def is_hex_fragment(value: object) -> bool:
    return isinstance(value, str) and bool(_HEX_FRAGMENT_RE.match(value))


def decode_hex_fragments(fragments: Iterable[str]) -> str:
    """Turn two-hex-digit codes into characters, one character per code."""

    return "".join(chr(int(fragment, 16)) for fragment in fragments)


def select_fragments(pair: ArrayPair) -> List[str]:
    """Return the string fragments selected by the pair's index array, in order.

    The pair must already have passed
    :func:`~megakey.pairing.validate_mapping`; an out-of-range index raises
    :class:`IndexError`.
    """

    fragments: Sequence[str] = pair.string_array.elements  # type: ignore[assignment]
    return [fragments[index] for index in pair.number_array.elements]  # type: ignore[index]


def compose(pair: ArrayPair, mode: ComposeMode = ComposeMode.RAW) -> str:
    """Concatenate ``string_array[i]`` for every index ``i`` in declaration order."""

    selected = select_fragments(pair)
    if mode is ComposeMode.HEX:
        return decode_hex_fragments(selected)
    return "".join(selected)


__all__ = [
    "ComposeMode",
    "compose",
    "decode_hex_fragments",
    "is_hex_fragment",
    "select_fragments",
]
