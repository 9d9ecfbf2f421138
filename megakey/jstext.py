"""Small JavaScript-aware text walking helpers.

None of this is a parser.  The helpers only know enough about JavaScript
lexing (quoted literals, regular expression literals, comments and bracket
nesting) to slice expressions out of obfuscated text without being fooled by
brackets or separators that live inside literals.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple, Union

STRING_LITERAL_PATTERN = r'"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'|`(?:\\.|[^`\\])*`'
IDENTIFIER_PATTERN = r"[A-Za-z_$][\w$]*"

_STRING_LITERAL_RE = re.compile(rf"^(?:{STRING_LITERAL_PATTERN})$", re.DOTALL)
_BARE_CALL_RE = re.compile(rf"^({IDENTIFIER_PATTERN})\s*\(\s*\)$")
_IDENTIFIER_RE = re.compile(rf"^{IDENTIFIER_PATTERN}$")
_NUMBER_RE = re.compile(
    r"^[-+]?(?:0[xX](?P<hex>[0-9A-Fa-f]+)|0[oO](?P<oct>[0-7]+)|0[bB](?P<bin>[01]+)|"
    r"(?P<dec>(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?))$"
)

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}
_QUOTES = {'"', "'", "`"}

# A ``/`` after one of these starts a regular expression literal.
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{};")
_REGEX_KEYWORDS = frozenset(
    {"return", "typeof", "case", "do", "else", "in", "of", "throw", "void", "delete", "new", "yield", "await"}
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "`": "`",
    "\n": "",
}


def skip_literal(text: str, index: int) -> int:
    """Return the index just past the quoted literal starting at ``index``."""

    quote = text[index]
    i = index + 1
    length = len(text)
    while i < length:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            # Unterminated literal; resume scanning on the next line.
            return i
        i += 1
    return length


def skip_comment(text: str, index: int) -> Optional[int]:
    """Return the index past a comment starting at ``index`` or ``None``."""

    if text.startswith("//", index):
        end = text.find("\n", index)
        return len(text) if end == -1 else end
    if text.startswith("/*", index):
        end = text.find("*/", index + 2)
        return len(text) if end == -1 else end + 2
    return None


def regex_allowed(text: str, index: int) -> bool:
    """Return ``True`` when a ``/`` at ``index`` sits where an operand is expected."""

    i = index - 1
    while i >= 0 and text[i].isspace():
        i -= 1
    if i < 0:
        return True
    ch = text[i]
    if ch in _REGEX_PRECEDERS:
        return True
    if not (ch.isalnum() or ch in "_$"):
        return False
    start = i
    while start > 0 and (text[start - 1].isalnum() or text[start - 1] in "_$"):
        start -= 1
    return text[start : i + 1] in _REGEX_KEYWORDS


def skip_regex(text: str, index: int) -> Optional[int]:
    """Return the index past a regular expression literal at ``index`` or ``None``.

    A ``/`` after a value is division, and a literal that reaches the end of
    the line without its closing ``/`` is not a literal.
    """

    if not regex_allowed(text, index):
        return None
    in_class = False
    i = index + 1
    length = len(text)
    while i < length:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            return None
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "/":
            i += 1
            while i < length and (text[i].isalnum() or text[i] in "_$"):
                i += 1
            return i
        i += 1
    return None


def skip_slash(text: str, index: int) -> Optional[int]:
    """Skip the comment or regular expression literal opened by the ``/`` at ``index``."""

    after = skip_comment(text, index)
    if after is None:
        after = skip_regex(text, index)
    return after


def find_closing(text: str, open_index: int) -> Optional[int]:
    """Return the index of the bracket closing the one at ``open_index``."""

    if open_index < 0 or open_index >= len(text) or text[open_index] not in _OPENERS:
        return None
    stack: List[str] = []
    i = open_index
    length = len(text)
    while i < length:
        ch = text[i]
        if ch in _QUOTES:
            i = skip_literal(text, i)
            continue
        if ch == "/":
            after = skip_slash(text, i)
            if after is not None:
                i = after
                continue
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return i
        i += 1
    return None


def split_top_level(text: str, separator: str) -> List[str]:
    """Split ``text`` on ``separator`` characters outside brackets and literals.

    ``++`` and ``+=`` are never treated as ``+`` separators.
    """

    parts: List[str] = []
    depth = 0
    start = 0
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if ch in _QUOTES:
            i = skip_literal(text, i)
            continue
        if ch == "/":
            after = skip_regex(text, i)
            if after is not None:
                i = after
                continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif ch == separator and depth == 0:
            nxt = text[i + 1] if i + 1 < length else ""
            if separator == "+" and nxt in "+=":
                i += 2
                continue
            parts.append(text[start:i])
            start = i + 1
        i += 1
    parts.append(text[start:])
    return [part.strip() for part in parts]


def read_expression(text: str, start: int, *, stop: str = ";") -> Tuple[str, int]:
    """Read an expression from ``start`` up to a ``stop`` character or an unmatched closer.

    Returns the stripped expression text and the index where reading stopped.
    """

    depth = 0
    i = start
    length = len(text)
    while i < length:
        ch = text[i]
        if ch in _QUOTES:
            i = skip_literal(text, i)
            continue
        if ch == "/":
            after = skip_slash(text, i)
            if after is not None:
                i = after
                continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            if depth == 0:
                break
            depth -= 1
        elif depth == 0 and (ch in stop or (ch == "\n" and _statement_ends(text, start, i))):
            break
        i += 1
    return text[start:i].strip(), i


def _statement_ends(text: str, start: int, index: int) -> bool:
    # A newline only ends the expression when the text so far is non-empty
    # and does not end with an operator awaiting its right-hand side.
    so_far = text[start:index].rstrip()
    if not so_far:
        return False
    if so_far[-1] in "+-*/%&|^!=<>?:,(":
        return False
    following = text[index:].lstrip()
    return not following[:1] or following[0] not in "+-*/%&|^=<>?:.,)"


def strip_parens(expression: str) -> str:
    """Remove redundant wrapping parentheses from ``expression``."""

    expr = expression.strip()
    while expr.startswith("(") and find_closing(expr, 0) == len(expr) - 1:
        expr = expr[1:-1].strip()
    return expr


def decode_js_string(literal: str) -> str:
    """Decode a quoted JavaScript string literal into its value."""

    body = literal[1:-1]
    pieces: List[str] = []
    i = 0
    length = len(body)
    while i < length:
        ch = body[i]
        if ch != "\\" or i + 1 >= length:
            pieces.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt == "x" and _is_hex(body[i + 2 : i + 4], 2):
            pieces.append(chr(int(body[i + 2 : i + 4], 16)))
            i += 4
            continue
        if nxt == "u":
            if i + 2 < length and body[i + 2] == "{":
                end = body.find("}", i + 3)
                digits = body[i + 3 : end] if end != -1 else ""
                if digits and _is_hex(digits, len(digits)) and int(digits, 16) <= 0x10FFFF:
                    pieces.append(chr(int(digits, 16)))
                    i = end + 1
                    continue
            elif _is_hex(body[i + 2 : i + 6], 4):
                pieces.append(chr(int(body[i + 2 : i + 6], 16)))
                i += 6
                continue
        pieces.append(_SIMPLE_ESCAPES.get(nxt, nxt))
        i += 2
    return "".join(pieces)


def _is_hex(value: str, width: int) -> bool:
    return len(value) == width and all(ch in "0123456789abcdefABCDEF" for ch in value)


def parse_string_literal(expression: str) -> Optional[str]:
    """Return the value of ``expression`` when it is a single string literal.

    Template literals qualify only without ``${...}`` substitutions.
    """

    expr = strip_parens(expression)
    if not _STRING_LITERAL_RE.match(expr):
        return None
    if expr[0] == "`" and "${" in expr:
        return None
    return decode_js_string(expr)


def parse_number(token: str) -> Optional[Union[int, float]]:
    """Parse a JavaScript numeric literal, returning ``None`` if it is not one."""

    match = _NUMBER_RE.match(token.strip().replace("_", ""))
    if not match:
        return None
    negative = token.strip().startswith("-")
    if match.group("hex"):
        value: Union[int, float] = int(match.group("hex"), 16)
    elif match.group("oct"):
        value = int(match.group("oct"), 8)
    elif match.group("bin"):
        value = int(match.group("bin"), 2)
    else:
        decimal = match.group("dec")
        if any(ch in decimal for ch in ".eE"):
            value = float(decimal)
            if value.is_integer() and "." not in decimal and value < 2**53:
                value = int(value)
        else:
            value = int(decimal)
    return -value if negative else value


def bare_call_name(term: str) -> Optional[str]:
    """Return ``name`` when ``term`` is exactly ``name()``."""

    match = _BARE_CALL_RE.match(strip_parens(term))
    return match.group(1) if match else None


def is_identifier(term: str) -> bool:
    return bool(_IDENTIFIER_RE.match(term.strip()))


__all__ = [
    "IDENTIFIER_PATTERN",
    "STRING_LITERAL_PATTERN",
    "bare_call_name",
    "decode_js_string",
    "find_closing",
    "is_identifier",
    "parse_number",
    "parse_string_literal",
    "read_expression",
    "regex_allowed",
    "skip_comment",
    "skip_literal",
    "skip_regex",
    "skip_slash",
    "split_top_level",
    "strip_parens",
]
