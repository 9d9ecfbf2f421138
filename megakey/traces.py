"""Secondary call-graph heuristics anchored on landmarks in the payload.

Each trace starts from something the obfuscator cannot rename (an API route
string, a crypto library call, an unusually regular function shape) and walks
back to the function or identifier that produces the key.  Traces yield
:class:`TraceHit` objects lazily so the cascade can stop at the first one that
validates.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from .callgraph import CallChain, CallGraphResolver
from .composer import ComposeMode, compose, decode_hex_fragments, is_hex_fragment
from .config import DEFAULT_CONFIG, ExtractorConfig
from .exceptions import ExtractionError, InvalidMapping, NotFound
from .jstext import (
    IDENTIFIER_PATTERN,
    STRING_LITERAL_PATTERN,
    bare_call_name,
    find_closing,
    is_identifier,
    parse_string_literal,
    read_expression,
    split_top_level,
    strip_parens,
)
from .pairing import ArrayPair, array_gap, validate_mapping
from .scanner import ArrayKind, LiteralArrayCandidate, iter_literal_arrays, scan_functions

LOG = logging.getLogger(__name__)

_PROPERTY_ASSIGN_RE = re.compile(
    rf"(?P<target>{IDENTIFIER_PATTERN}(?:\s*\.\s*{IDENTIFIER_PATTERN}|\s*\[\s*(?:{STRING_LITERAL_PATTERN})\s*\])+)"
    rf"\s*=(?![=>])\s*(?P<value>{IDENTIFIER_PATTERN})(?P<call>\s*\(\s*\))?(?=\s*(?:[;,}})\]\n]|$))"
)
_MAP_CALL_RE = re.compile(
    rf"^(?P<array>{IDENTIFIER_PATTERN})\s*(?:\.\s*map|\[\s*[\"']map[\"']\s*\])\s*\("
)
_INDEXED_RE = re.compile(rf"(?<![\w$.])(?P<name>{IDENTIFIER_PATTERN})\s*\[")


@dataclass(frozen=True)
class TraceHit:
    """A key candidate produced by a trace, with a human readable origin."""

    key: str
    detail: str


# ----------------------------------------------------------------------
# shared helpers


class _ArrayIndex:
    """Lazily built lookup of literal arrays by name (no size filter)."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._arrays: Optional[List[LiteralArrayCandidate]] = None

    def find(self, name: str, near: int) -> Optional[LiteralArrayCandidate]:
        if self._arrays is None:
            self._arrays = list(iter_literal_arrays(self._text))
        matches = [item for item in self._arrays if item.name == name]
        if not matches:
            return None
        return min(matches, key=lambda item: (abs(item.offset - near), item.offset))


def map_join_arrays(expression: str) -> Optional[Tuple[str, Optional[str]]]:
    """Parse ``N.map(i => S[i]).join("")`` style expressions.

    Returns ``(mapped_array, indexed_array)``; ``indexed_array`` is ``None``
    when the mapped array is decoded directly (``t.map(c => ...).join("")``).
    """

    expr = strip_parens(expression)
    match = _MAP_CALL_RE.match(expr)
    if not match:
        return None
    close = find_closing(expr, match.end() - 1)
    if close is None or "join" not in expr[close:]:
        return None
    mapped = match.group("array")
    for inner in _INDEXED_RE.finditer(expr[match.end() : close]):
        if inner.group("name") != mapped:
            return mapped, inner.group("name")
    return mapped, None


def resolve_array_expression(
    expression: str, arrays: _ArrayIndex, near: int, mode: ComposeMode
) -> Optional[str]:
    """Compose a key from a map/join expression over literal arrays."""

    parsed = map_join_arrays(expression)
    if parsed is None:
        return None
    mapped_name, indexed_name = parsed
    mapped = arrays.find(mapped_name, near)
    if mapped is None:
        raise NotFound(f"array {mapped_name} referenced by map() is not a literal")

    if indexed_name is None:
        if mapped.kind is not ArrayKind.STRING:
            raise NotFound(f"array {mapped_name} holds numbers, not key fragments")
        if mode is ComposeMode.HEX:
            if not all(is_hex_fragment(item) for item in mapped.elements):
                raise InvalidMapping(f"array {mapped_name} is not made of hex codes")
            return decode_hex_fragments(mapped.elements)  # type: ignore[arg-type]
        return "".join(mapped.elements)  # type: ignore[arg-type]

    fragments = arrays.find(indexed_name, near)
    if fragments is None:
        raise NotFound(f"array {indexed_name} indexed inside map() is not a literal")
    validate_mapping(fragments, mapped)
    pair = ArrayPair(fragments, mapped, array_gap(fragments, mapped), referenced=True)
    if mode is ComposeMode.HEX:
        selected = [fragments.elements[index] for index in mapped.elements]  # type: ignore[index]
        if not all(is_hex_fragment(item) for item in selected):
            raise InvalidMapping(f"fragments of {indexed_name} are not hex codes")
    return compose(pair, mode)


def _resolve_name(
    name: str,
    resolver: CallGraphResolver,
    arrays: _ArrayIndex,
    near: int,
    mode: ComposeMode,
) -> Tuple[str, str]:
    """Resolve ``name`` as a function or an assigned identifier."""

    func = resolver.functions.get(name)
    if func is not None:
        composed = resolve_array_expression(func.return_expression, arrays, func.offset, mode)
        if composed is not None:
            return composed, f"{name}() maps literal arrays"
        return resolver.resolve_call(name), f"{name}() resolved through the call graph"
    expression = resolver.assignment_of(name)
    if expression is None:
        raise NotFound(f"{name} is neither a function nor an assigned identifier")
    composed = resolve_array_expression(expression, arrays, near, mode)
    if composed is not None:
        return composed, f"{name} maps literal arrays"
    return resolver.resolve_identifier(name), f"{name} resolved from its assignment"


def raise_collected(errors: Sequence[ExtractionError], fallback: str) -> None:
    # Deeper failures say more than a bare "nothing found".
    for error in errors:
        if not isinstance(error, NotFound):
            raise error
    if errors:
        raise errors[0]
    raise NotFound(fallback)


# ----------------------------------------------------------------------
# API route trace


def trace_api_route(
    text: str,
    resolver: CallGraphResolver,
    config: ExtractorConfig = DEFAULT_CONFIG,
) -> Iterator[TraceHit]:
    """Follow property assignments after the API route marker.

    The assignment ``config.api_trace_hops`` positions after the marker is
    tried first, the others in the window follow by distance from it.  Array
    material found this way is decoded as hex character codes.
    """

    position = text.find(config.api_route_marker)
    if position == -1:
        raise NotFound(f"route marker {config.api_route_marker!r} not present")

    assignments: List[Tuple[int, str]] = []
    for match in _PROPERTY_ASSIGN_RE.finditer(text, position + len(config.api_route_marker)):
        assignments.append((match.start(), match.group("value")))
        if len(assignments) >= config.api_trace_window:
            break
    if not assignments:
        raise NotFound("no property assignment follows the route marker")

    target = config.api_trace_hops - 1
    order = sorted(range(len(assignments)), key=lambda index: (abs(index - target), index))

    arrays = _ArrayIndex(text)
    errors: List[ExtractionError] = []
    hits = 0
    tried = set()
    for index in order:
        offset, name = assignments[index]
        if name in tried:
            continue
        tried.add(name)
        try:
            key, how = _resolve_name(name, resolver, arrays, offset, ComposeMode.HEX)
        except ExtractionError as exc:
            LOG.debug("api trace hop %d (%s) failed: %s", index + 1, name, exc)
            errors.append(exc)
            continue
        hits += 1
        yield TraceHit(key, f"hop {index + 1} after route marker: {how}")
    if not hits:
        raise_collected(errors, "no hop after the route marker resolved")


# ----------------------------------------------------------------------
# crypto call-site trace


def _call_arguments(text: str, open_index: int) -> Optional[List[str]]:
    close = find_closing(text, open_index)
    if close is None:
        return None
    return split_top_level(text[open_index + 1 : close], ",")


def trace_crypto_call(
    text: str,
    resolver: CallGraphResolver,
    config: ExtractorConfig = DEFAULT_CONFIG,
) -> Iterator[TraceHit]:
    """Resolve the key argument of known decrypt call sites.

    Also picks up literal keys passed right after a configured marker
    identifier, e.g. ``decode(JScripts, "key")``.
    """

    arrays = _ArrayIndex(text)
    errors: List[ExtractionError] = []
    sites = 0
    hits = 0
    for pattern in config.decrypt_call_patterns:
        for match in re.finditer(pattern, text):
            sites += 1
            arguments = _call_arguments(text, match.end() - 1)
            if not arguments or len(arguments) < 2 or not arguments[1]:
                errors.append(NotFound(f"decrypt call at {match.start()} has no key argument"))
                continue
            argument = arguments[1]
            try:
                key, how = _resolve_argument(argument, resolver, arrays, match.start())
            except ExtractionError as exc:
                LOG.debug("decrypt call at %d: %s", match.start(), exc)
                errors.append(exc)
                continue
            hits += 1
            yield TraceHit(key, f"decrypt call at offset {match.start()}: {how}")

    for marker in config.key_argument_markers:
        pattern = rf"(?<![\w$.]){re.escape(marker)}\s*,\s*(?P<literal>{STRING_LITERAL_PATTERN})"
        for match in re.finditer(pattern, text):
            sites += 1
            value = parse_string_literal(match.group("literal"))
            if value:
                hits += 1
                yield TraceHit(value, f"literal after marker {marker} at offset {match.start()}")

    if not sites:
        raise NotFound("no decrypt call sites found")
    if not hits:
        raise_collected(errors, "no decrypt call site yielded a key")


def _resolve_argument(
    argument: str, resolver: CallGraphResolver, arrays: _ArrayIndex, near: int
) -> Tuple[str, str]:
    literal = parse_string_literal(argument)
    if literal is not None:
        return literal, "literal key argument"
    call = bare_call_name(argument)
    if call is not None:
        return _resolve_name(call, resolver, arrays, near, ComposeMode.RAW)
    if is_identifier(argument):
        return _resolve_name(argument.strip(), resolver, arrays, near, ComposeMode.RAW)
    return resolver.resolve_expression(argument), "key argument expression"


# ----------------------------------------------------------------------
# last-resort call-shape scan


def _exact_call_return_re(count: int) -> re.Pattern[str]:
    call = rf"{IDENTIFIER_PATTERN}\s*\(\s*\)"
    return re.compile(
        rf"(?<![\w$])return\s*\(?\s*(?P<expr>{call}(?:\s*\+\s*{call}){{{count - 1}}})\s*\)?\s*(?![\s+(\w$.\[])"
    )


def scan_call_shape(
    text: str,
    config: ExtractorConfig = DEFAULT_CONFIG,
    *,
    resolver: Optional[CallGraphResolver] = None,
) -> Iterator[TraceHit]:
    """Resolve any return concatenating exactly ``fallback_call_count`` calls.

    Leaves are looked up with a loose function scan that also understands
    object-literal members.
    """

    pattern = _exact_call_return_re(config.fallback_call_count)
    matches = list(pattern.finditer(text))
    if not matches:
        raise NotFound(f"no return concatenates exactly {config.fallback_call_count} calls")

    if resolver is None:
        resolver = CallGraphResolver(scan_functions(text, loose=True), config, text=text)
    errors: List[ExtractionError] = []
    hits = 0
    for match in matches:
        # The whole returned expression must be the call chain, not a prefix of it.
        returned, _ = read_expression(text, match.start() + len("return"))
        if strip_parens(returned) != match.group("expr"):
            LOG.debug("call-shape return at %d continues past the calls", match.start())
            continue
        calls = tuple(
            name
            for name in (bare_call_name(term) for term in split_top_level(match.group("expr"), "+"))
            if name is not None
        )
        chain = CallChain(root=f"<return@{match.start()}>", calls=calls, offset=match.start())
        try:
            key = resolver.resolve_chain(chain)
        except ExtractionError as exc:
            LOG.debug("call-shape return at %d: %s", match.start(), exc)
            errors.append(exc)
            continue
        hits += 1
        yield TraceHit(key, f"{len(calls)}-call return at offset {match.start()}")
    if not hits:
        raise_collected(errors, "no call-shape return resolved")


__all__ = [
    "TraceHit",
    "raise_collected",
    "map_join_arrays",
    "resolve_array_expression",
    "scan_call_shape",
    "trace_api_route",
    "trace_crypto_call",
]
