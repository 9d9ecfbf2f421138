"""Resolve keys hidden behind chains of zero-argument accessor functions.

The obfuscator frequently replaces a key literal with a *composer* function
whose body is ``return f1() + f2() + ... + fn();`` where each ``fi`` returns a
literal (sometimes behind an opaque ``if``) or is itself another composer.
:class:`CallGraphResolver` walks that graph textually, with a hard depth cap
so cyclic or pathological graphs terminate with
:class:`~megakey.exceptions.RecursionLimitExceeded`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from .config import DEFAULT_CONFIG, ExtractorConfig
from .exceptions import ExtractionError, NotFound, RecursionLimitExceeded
from .jstext import (
    bare_call_name,
    is_identifier,
    parse_string_literal,
    read_expression,
    split_top_level,
    strip_parens,
)
from .scanner import FunctionDef, index_functions

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallChain:
    """``root`` returns the concatenation of ``calls`` in order."""

    root: str
    calls: Tuple[str, ...]
    offset: int = 0

    def describe(self) -> str:
        return f"{self.root}() = " + " + ".join(f"{name}()" for name in self.calls)


def chain_calls(expression: str) -> Optional[Tuple[str, ...]]:
    """Return call names when ``expression`` is ``f1() + f2() + ...`` (two or more)."""

    terms = split_top_level(strip_parens(expression), "+")
    if len(terms) < 2:
        return None
    names: List[str] = []
    for term in terms:
        name = bare_call_name(term)
        if name is None:
            return None
        names.append(name)
    return tuple(names)


class CallGraphResolver:
    """Resolve composer functions down to the literals their leaves return.

    ``text`` is optional; when supplied, bare identifiers appearing in an
    expression are resolved through their first ``name = ...`` assignment.
    """

    def __init__(
        self,
        functions: Sequence[FunctionDef],
        config: ExtractorConfig = DEFAULT_CONFIG,
        *,
        text: Optional[str] = None,
    ) -> None:
        self.config = config
        self.functions: Dict[str, FunctionDef] = index_functions(functions)
        self._ordered: Tuple[FunctionDef, ...] = tuple(functions)
        self._text = text
        self._assignments: Dict[str, Optional[str]] = {}
        self.failures: List[ExtractionError] = []

    # ------------------------------------------------------------------
    # composer discovery

    def find_composers(self) -> List[CallChain]:
        """Return composer chains, roots first, then longer chains, then source order."""

        chains: List[CallChain] = []
        for func in self._ordered:
            if self.functions.get(func.name) is not func:
                continue
            calls = chain_calls(func.return_expression)
            if calls is not None:
                chains.append(CallChain(func.name, calls, func.offset))

        called: Set[str] = {name for chain in chains for name in chain.calls}

        def rank(chain: CallChain) -> Tuple[int, int, int]:
            return (1 if chain.root in called else 0, -len(chain.calls), chain.offset)

        return sorted(chains, key=rank)

    def iter_resolved(self, chains: Optional[Sequence[CallChain]] = None) -> Iterator[Tuple[CallChain, str]]:
        """Yield ``(chain, key)`` for every chain that resolves completely.

        Chains that fail are logged and collected in :attr:`failures`.
        """

        self.failures = []
        for chain in chains if chains is not None else self.find_composers():
            try:
                key = self.resolve_chain(chain)
            except ExtractionError as exc:
                LOG.debug("chain %s rejected: %s", chain.describe(), exc)
                self.failures.append(exc)
                continue
            yield chain, key

    def resolve(self, functions: Optional[Sequence[FunctionDef]] = None) -> Optional[str]:
        """Return the key of the best composer that resolves, or ``None``."""

        resolver = self if functions is None else CallGraphResolver(functions, self.config, text=self._text)
        for _, key in resolver.iter_resolved():
            return key
        return None

    # ------------------------------------------------------------------
    # resolution

    def resolve_chain(self, chain: CallChain) -> str:
        parts = [self.resolve_call(name, depth=1, stack=(chain.root,)) for name in chain.calls]
        return "".join(parts)

    def resolve_call(self, name: str, *, depth: int = 0, stack: Tuple[str, ...] = ()) -> str:
        """Return the string produced by calling ``name()``."""

        if name in stack:
            cycle = " -> ".join((*stack[stack.index(name):], name))
            raise RecursionLimitExceeded(f"cyclic call chain: {cycle}")
        if depth > self.config.max_recursion_depth:
            raise RecursionLimitExceeded(
                f"call chain deeper than {self.config.max_recursion_depth} at {name}()"
            )
        func = self.functions.get(name)
        if func is None:
            raise NotFound(f"no zero-argument definition for {name}()")
        return self.resolve_expression(func.return_expression, depth=depth, stack=(*stack, name))

    def resolve_expression(self, expression: str, *, depth: int = 0, stack: Tuple[str, ...] = ()) -> str:
        """Fold a ``+`` concatenation of literals, bare calls and identifiers."""

        pieces: List[str] = []
        for term in split_top_level(strip_parens(expression), "+"):
            literal = parse_string_literal(term)
            if literal is not None:
                pieces.append(literal)
                continue
            call = bare_call_name(term)
            if call is not None:
                pieces.append(self.resolve_call(call, depth=depth + 1, stack=stack))
                continue
            if is_identifier(term):
                pieces.append(self.resolve_identifier(term.strip(), depth=depth + 1, stack=stack))
                continue
            raise NotFound(f"unsupported term {term[:40]!r}")
        return "".join(pieces)

    def resolve_identifier(self, name: str, *, depth: int = 0, stack: Tuple[str, ...] = ()) -> str:
        """Resolve ``name`` through its first ``name = <expr>`` assignment."""

        marker = f"={name}"
        if marker in stack:
            raise RecursionLimitExceeded(f"cyclic assignment through {name}")
        if depth > self.config.max_recursion_depth:
            raise RecursionLimitExceeded(
                f"assignment chain deeper than {self.config.max_recursion_depth} at {name}"
            )
        expression = self.assignment_of(name)
        if expression is None:
            raise NotFound(f"no assignment found for {name}")
        return self.resolve_expression(expression, depth=depth, stack=(*stack, marker))

    def assignment_of(self, name: str) -> Optional[str]:
        """Return the right-hand side of the first plain assignment to ``name``."""

        if self._text is None:
            return None
        if name not in self._assignments:
            pattern = re.compile(rf"(?<![\w$.]){re.escape(name)}\s*=(?![=>])")
            expression: Optional[str] = None
            for match in pattern.finditer(self._text):
                candidate, _ = read_expression(self._text, match.end(), stop=";,")
                if candidate:
                    expression = candidate
                    break
            self._assignments[name] = expression
        return self._assignments[name]


__all__ = ["CallChain", "CallGraphResolver", "chain_calls"]
