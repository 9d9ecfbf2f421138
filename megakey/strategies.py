"""Named extraction strategies and the registry that orders them.

A strategy is a function taking an :class:`AnalysisContext` and yielding
:class:`Candidate` objects, best first.  Strategies explain an
empty result by raising an :class:`~megakey.exceptions.ExtractionError`
subclass; they never perform I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .callgraph import CallGraphResolver
from .composer import ComposeMode, compose
from .config import DEFAULT_CONFIG, ExtractorConfig
from .exceptions import ConfigError, NotFound
from .models import Confidence, Strategy
from .pairing import locate_with_report, require_pairs
from .scanner import ScanResult, scan
from .traces import TraceHit, raise_collected, scan_call_shape, trace_api_route, trace_crypto_call

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A key proposed by a strategy, before validation."""

    key: str
    strategy: Strategy
    confidence: Confidence
    detail: str = ""


@dataclass
class AnalysisContext:
    """Per-call state shared by the strategies of one extraction.

    The scan and the resolver are computed on first use and then reused, so a
    run that succeeds early never pays for the array scan.
    """

    text: str
    config: ExtractorConfig = DEFAULT_CONFIG
    _scan: Optional[ScanResult] = field(default=None, repr=False)
    _resolver: Optional[CallGraphResolver] = field(default=None, repr=False)

    @property
    def scan(self) -> ScanResult:
        if self._scan is None:
            self._scan = scan(self.text, self.config)
            LOG.debug("scan summary: %s", self._scan.summary())
        return self._scan

    @property
    def resolver(self) -> CallGraphResolver:
        if self._resolver is None:
            self._resolver = CallGraphResolver(self.scan.functions, self.config, text=self.text)
        return self._resolver


StrategyFn = Callable[[AnalysisContext], Iterable[Candidate]]


def _from_hits(hits: Iterable[TraceHit], strategy: Strategy, confidence: Confidence) -> Iterator[Candidate]:
    for hit in hits:
        yield Candidate(hit.key, strategy, confidence, hit.detail)


def call_concatenation(ctx: AnalysisContext) -> Iterator[Candidate]:
    resolver = ctx.resolver
    chains = resolver.find_composers()
    if not chains:
        raise NotFound("no function returns a concatenation of zero-argument calls")
    hits = 0
    for chain, key in resolver.iter_resolved(chains):
        hits += 1
        yield Candidate(key, Strategy.CALL_CONCATENATION, Confidence.HIGH, chain.describe())
    if not hits:
        raise_collected(resolver.failures, "no composer chain resolved")


def api_trace(ctx: AnalysisContext) -> Iterator[Candidate]:
    yield from _from_hits(trace_api_route(ctx.text, ctx.resolver, ctx.config), Strategy.API_TRACE, Confidence.HIGH)


def crypto_trace(ctx: AnalysisContext) -> Iterator[Candidate]:
    yield from _from_hits(
        trace_crypto_call(ctx.text, ctx.resolver, ctx.config), Strategy.CRYPTO_TRACE, Confidence.HIGH
    )


def fallback(ctx: AnalysisContext) -> Iterator[Candidate]:
    yield from _from_hits(scan_call_shape(ctx.text, ctx.config), Strategy.FALLBACK, Confidence.LOW)


def array_indirection(ctx: AnalysisContext) -> Iterator[Candidate]:
    result = ctx.scan
    report = locate_with_report(result.string_arrays, result.number_arrays, ctx.config, text=ctx.text)
    for pair in require_pairs(report, len(result.string_arrays), len(result.number_arrays)):
        confidence = Confidence.HIGH if pair.referenced or pair.adjacent else Confidence.LOW
        yield Candidate(compose(pair, ComposeMode.RAW), Strategy.ARRAY_INDIRECTION, confidence, pair.describe())


class StrategyRegistry:
    def __init__(self) -> None:
        self._strategies: Dict[str, Tuple[int, StrategyFn]] = {}

    def register(self, name: str, fn: StrategyFn, order: int) -> None:
        self._strategies[name] = (order, fn)

    def names(self) -> List[str]:
        return [name for name, _ in self.select()]

    def select(
        self,
        skip: Optional[Iterable[str]] = None,
        only: Optional[Iterable[str]] = None,
    ) -> List[Tuple[str, StrategyFn]]:
        """Return ``(name, fn)`` pairs in priority order after skip/only filtering."""

        selected: List[Tuple[int, str, StrategyFn]] = []
        skip_set = {name.strip() for name in (skip or []) if name}
        only_set = {name.strip() for name in (only or []) if name}
        unknown = (skip_set | only_set) - set(self._strategies)
        if unknown:
            raise ConfigError(f"unknown strategies: {', '.join(sorted(unknown))}")

        for name, (order, fn) in self._strategies.items():
            if skip_set and name in skip_set:
                continue
            if only_set and name not in only_set:
                continue
            selected.append((order, name, fn))
        selected.sort(key=lambda item: (item[0], item[1]))
        return [(name, fn) for _, name, fn in selected]


CASCADE = StrategyRegistry()

CASCADE.register(Strategy.CALL_CONCATENATION.value, call_concatenation, 10)
CASCADE.register(Strategy.API_TRACE.value, api_trace, 20)
CASCADE.register(Strategy.CRYPTO_TRACE.value, crypto_trace, 30)
CASCADE.register(Strategy.FALLBACK.value, fallback, 40)
CASCADE.register(Strategy.ARRAY_INDIRECTION.value, array_indirection, 50)


__all__ = [
    "CASCADE",
    "AnalysisContext",
    "Candidate",
    "StrategyFn",
    "StrategyRegistry",
    "api_trace",
    "array_indirection",
    "call_concatenation",
    "crypto_trace",
    "fallback",
]
