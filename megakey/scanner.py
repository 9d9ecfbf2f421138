"""Lexical scanning for literal arrays and zero-argument functions."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .config import DEFAULT_CONFIG, ExtractorConfig
from .jstext import (
    IDENTIFIER_PATTERN,
    find_closing,
    parse_number,
    parse_string_literal,
    read_expression,
    skip_literal,
    skip_slash,
    split_top_level,
)

LOG = logging.getLogger(__name__)

_TARGET = rf"{IDENTIFIER_PATTERN}(?:\s*\.\s*{IDENTIFIER_PATTERN})*"

_ARRAY_DECL_RE = re.compile(rf"(?:\b(?:var|let|const)\s+)?(?P<name>{_TARGET})\s*=\s*\[")

# ``name = () => ...``, ``name = function () {...}`` and ``function name() {...}``
_ASSIGNED_FUNCTION_RE = re.compile(
    rf"(?:\b(?:var|let|const)\s+)?(?P<name>{_TARGET})\s*=\s*(?:async\s+)?"
    rf"(?:function\b\s*(?:{IDENTIFIER_PATTERN})?\s*\(\s*\)\s*(?=\{{)|\(\s*\)\s*=>\s*)"
)
_DECLARED_FUNCTION_RE = re.compile(
    rf"\b(?:async\s+)?function\s+(?P<name>{IDENTIFIER_PATTERN})\s*\(\s*\)\s*(?=\{{)"
)
# Object-literal members, only considered by the loose scan.
_PROPERTY_FUNCTION_RE = re.compile(
    rf"(?P<name>{IDENTIFIER_PATTERN})\s*:\s*(?:async\s+)?"
    rf"(?:function\b\s*(?:{IDENTIFIER_PATTERN})?\s*\(\s*\)\s*(?=\{{)|\(\s*\)\s*=>\s*)"
)
_METHOD_FUNCTION_RE = re.compile(
    rf"(?<![\w$.])(?P<name>{IDENTIFIER_PATTERN})\s*\(\s*\)\s*(?=\{{)"
)

_KEYWORDS = frozenset(
    {"if", "for", "while", "switch", "catch", "function", "return", "with", "do", "else"}
)
_HEX_TOKEN_RE = re.compile(r"^[0-9a-fA-F]{1,4}$")

Number = Union[int, float]


class ArrayKind(str, enum.Enum):
    STRING = "string"
    NUMBER = "number"


@dataclass(frozen=True)
class LiteralArrayCandidate:
    """A literal array declaration found in the payload."""

    name: str
    kind: ArrayKind
    elements: Tuple[Union[str, Number], ...]
    offset: int
    hex_like: bool = False
    end: Optional[int] = None

    def __len__(self) -> int:
        return len(self.elements)

    @property
    def stop(self) -> int:
        """Index just past the closing bracket, or ``offset`` when unknown."""

        return self.offset if self.end is None else self.end

    def describe(self) -> str:
        return f"{self.name}[{len(self.elements)}]@{self.offset}"


@dataclass(frozen=True)
class FunctionDef:
    """A zero-argument function and the text of its first return expression."""

    name: str
    return_expression: str
    offset: int
    guard_expression: Optional[str] = None


@dataclass(frozen=True)
class ScanResult:
    string_arrays: Tuple[LiteralArrayCandidate, ...]
    number_arrays: Tuple[LiteralArrayCandidate, ...]
    functions: Tuple[FunctionDef, ...]

    def function_map(self) -> Dict[str, FunctionDef]:
        return index_functions(self.functions)

    def summary(self) -> Dict[str, int]:
        return {
            "string_arrays": len(self.string_arrays),
            "number_arrays": len(self.number_arrays),
            "functions": len(self.functions),
        }


def index_functions(functions: Sequence[FunctionDef]) -> Dict[str, FunctionDef]:
    """Map names to definitions; the first definition of a name wins."""

    mapping: Dict[str, FunctionDef] = {}
    for func in functions:
        mapping.setdefault(func.name, func)
    return mapping


def _normalise_target(name: str) -> str:
    return re.sub(r"\s+", "", name)


def _looks_hex(elements: Sequence[str]) -> bool:
    return bool(elements) and all(_HEX_TOKEN_RE.match(item) for item in elements)


def _parse_array_body(body: str) -> Optional[Tuple[ArrayKind, Tuple[Union[str, Number], ...]]]:
    tokens = split_top_level(body, ",")
    if tokens and not tokens[-1]:
        tokens.pop()
    if not tokens or any(not token for token in tokens):
        return None

    strings: List[str] = []
    for token in tokens:
        value = parse_string_literal(token)
        if value is None:
            break
        strings.append(value)
    else:
        return ArrayKind.STRING, tuple(strings)

    numbers: List[Number] = []
    for token in tokens:
        number = parse_number(token)
        if number is None:
            return None
        numbers.append(number)
    return ArrayKind.NUMBER, tuple(numbers)


def iter_literal_arrays(text: str) -> Iterator[LiteralArrayCandidate]:
    """Yield every homogeneous literal array declaration in ``text``."""

    for match in _ARRAY_DECL_RE.finditer(text):
        open_index = match.end() - 1
        close_index = find_closing(text, open_index)
        if close_index is None:
            continue
        parsed = _parse_array_body(text[open_index + 1 : close_index])
        if parsed is None:
            continue
        kind, elements = parsed
        hex_like = kind is ArrayKind.STRING and _looks_hex(elements)  # type: ignore[arg-type]
        yield LiteralArrayCandidate(
            name=_normalise_target(match.group("name")),
            kind=kind,
            elements=elements,
            offset=match.start("name"),
            hex_like=hex_like,
            end=close_index + 1,
        )


def scan_arrays(
    text: str, *, min_size: int = DEFAULT_CONFIG.min_array_size
) -> Tuple[List[LiteralArrayCandidate], List[LiteralArrayCandidate]]:
    """Return ``(string_arrays, number_arrays)`` with more than ``min_size`` elements."""

    string_arrays: List[LiteralArrayCandidate] = []
    number_arrays: List[LiteralArrayCandidate] = []
    discarded = 0
    for candidate in iter_literal_arrays(text):
        if len(candidate.elements) <= min_size:
            discarded += 1
            continue
        if candidate.kind is ArrayKind.STRING:
            string_arrays.append(candidate)
        else:
            number_arrays.append(candidate)
    LOG.debug(
        "array scan: %d string, %d number, %d below size filter",
        len(string_arrays),
        len(number_arrays),
        discarded,
    )
    return string_arrays, number_arrays


def _starts_word(text: str, index: int, word: str) -> bool:
    if not text.startswith(word, index):
        return False
    before = text[index - 1] if index > 0 else ""
    after = text[index + len(word)] if index + len(word) < len(text) else ""
    return not _is_word_char(before) and not _is_word_char(after)


def _is_word_char(ch: str) -> bool:
    return bool(ch) and (ch.isalnum() or ch in "_$")


def _skip_space(text: str, index: int) -> int:
    while index < len(text) and text[index].isspace():
        index += 1
    return index


def first_return(body: str) -> Optional[Tuple[str, Optional[str]]]:
    """Locate the first return of a function body.

    Only returns at the top level of ``body`` or directly inside a single
    ``if (...)`` block count; nested functions and loops are ignored.  Returns
    ``(expression, guard)`` where ``guard`` is the ``if`` condition text.
    """

    blocks: List[Optional[str]] = []
    i = 0
    length = len(body)
    while i < length:
        ch = body[i]
        if ch in "\"'`":
            i = skip_literal(body, i)
            continue
        if ch == "/":
            after = skip_slash(body, i)
            if after is not None:
                i = after
                continue
        if ch == "{":
            blocks.append(None)
        elif ch == "}":
            if blocks:
                blocks.pop()
        elif not blocks and _starts_word(body, i, "if"):
            paren = _skip_space(body, i + 2)
            close = find_closing(body, paren) if paren < length and body[paren] == "(" else None
            if close is not None:
                guard = body[paren + 1 : close].strip()
                nxt = _skip_space(body, close + 1)
                if nxt < length and body[nxt] == "{":
                    blocks.append(guard)
                    i = nxt + 1
                    continue
                if _starts_word(body, nxt, "return"):
                    expression, _ = read_expression(body, nxt + len("return"))
                    if expression:
                        return expression, guard
                i = close + 1
                continue
        elif _starts_word(body, i, "return"):
            if not blocks or (len(blocks) == 1 and blocks[0] is not None):
                expression, end = read_expression(body, i + len("return"))
                if expression:
                    return expression, blocks[0] if blocks else None
                i = end
                continue
        i += 1
    return None


def _definition_from(text: str, name: str, offset: int, body_start: int) -> Optional[FunctionDef]:
    start = _skip_space(text, body_start)
    if start >= len(text):
        return None
    if text[start] != "{":
        expression, _ = read_expression(text, start)
        if not expression:
            return None
        return FunctionDef(name=name, return_expression=expression, offset=offset)
    close = find_closing(text, start)
    if close is None:
        return None
    found = first_return(text[start + 1 : close])
    if found is None:
        return None
    expression, guard = found
    return FunctionDef(name=name, return_expression=expression, offset=offset, guard_expression=guard)


def scan_functions(text: str, *, loose: bool = False) -> List[FunctionDef]:
    """Return zero-argument function definitions in source order.

    ``loose`` additionally recognises object-literal members such as
    ``name() {...}`` and ``name: () => ...``.
    """

    patterns = [_ASSIGNED_FUNCTION_RE, _DECLARED_FUNCTION_RE]
    if loose:
        patterns.extend([_PROPERTY_FUNCTION_RE, _METHOD_FUNCTION_RE])

    seen: Dict[int, FunctionDef] = {}
    for pattern in patterns:
        for match in pattern.finditer(text):
            name = _normalise_target(match.group("name"))
            if name in _KEYWORDS:
                continue
            body_start = match.end()
            if body_start in seen:
                continue
            definition = _definition_from(text, name, match.start("name"), body_start)
            if definition is not None:
                seen[body_start] = definition
    functions = sorted(seen.values(), key=lambda item: item.offset)
    LOG.debug("function scan (loose=%s): %d zero-argument functions", loose, len(functions))
    return functions


def scan(text: str, config: ExtractorConfig = DEFAULT_CONFIG) -> ScanResult:
    """Scan ``text`` for literal arrays and zero-argument functions."""

    string_arrays, number_arrays = scan_arrays(text, min_size=config.min_array_size)
    functions = scan_functions(text)
    return ScanResult(
        string_arrays=tuple(string_arrays),
        number_arrays=tuple(number_arrays),
        functions=tuple(functions),
    )


__all__ = [
    "ArrayKind",
    "FunctionDef",
    "LiteralArrayCandidate",
    "ScanResult",
    "first_return",
    "index_functions",
    "iter_literal_arrays",
    "scan",
    "scan_arrays",
    "scan_functions",
]
