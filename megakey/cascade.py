"""Run the registered strategies in priority order and keep the first valid key."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .config import DEFAULT_CONFIG, ExtractorConfig
from .exceptions import ExtractionError, ValidationRejected
from .models import (
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionResult,
    Outcome,
    StrategyAttempt,
    mask_key,
)
from .strategies import CASCADE, AnalysisContext, StrategyFn, StrategyRegistry
from .validator import ensure_valid

LOG = logging.getLogger(__name__)

EXHAUSTED_REASON = "all strategies exhausted"


def _run_strategy(
    name: str,
    fn: StrategyFn,
    ctx: AnalysisContext,
    attempts: List[StrategyAttempt],
) -> Optional[ExtractionResult]:
    tried = 0
    last_rejection = ""
    try:
        for candidate in fn(ctx):
            tried += 1
            try:
                verdict = ensure_valid(candidate.key, ctx.config)
            except ValidationRejected as exc:
                last_rejection = str(exc)
                LOG.debug("%s: candidate %s rejected: %s", name, mask_key(candidate.key), exc)
                continue
            attempts.append(StrategyAttempt(name, Outcome.SUCCESS, candidate.detail, tried))
            return ExtractionResult(
                key=candidate.key,
                strategy=candidate.strategy,
                confidence=candidate.confidence,
                attempts=tuple(attempts),
                detail=candidate.detail,
                flags=verdict.flags,
            )
    except ExtractionError as exc:
        LOG.debug("%s: %s (%s)", name, exc.outcome, exc)
        attempts.append(StrategyAttempt(name, Outcome(exc.outcome), str(exc), tried))
        return None

    if tried:
        reason = f"{tried} candidate(s) rejected; last: {last_rejection}"
        attempts.append(StrategyAttempt(name, Outcome.VALIDATION_REJECTED, reason, tried))
    else:
        attempts.append(StrategyAttempt(name, Outcome.NOT_FOUND, "strategy produced no candidates"))
    return None


def extract(
    text: str,
    config: Optional[ExtractorConfig] = None,
    *,
    skip: Optional[Iterable[str]] = None,
    only: Optional[Iterable[str]] = None,
    registry: StrategyRegistry = CASCADE,
) -> ExtractionOutcome:
    """Extract the decryption key from ``text``.

    Strategies run in priority order; the first candidate accepted by the
    result validator wins.  When nothing is accepted an
    :class:`~megakey.models.ExtractionFailure` carrying the full attempt trail
    is returned instead of raising.
    """

    config = config or DEFAULT_CONFIG
    ctx = AnalysisContext(text, config)
    attempts: List[StrategyAttempt] = []

    for name, fn in registry.select(skip=skip, only=only):
        if not config.strategy_enabled(name):
            attempts.append(StrategyAttempt(name, Outcome.DISABLED, "disabled by configuration"))
            continue
        result = _run_strategy(name, fn, ctx, attempts)
        if config.debug:
            LOG.info("strategy %s: %s", name, attempts[-1].describe())
        if result is not None:
            LOG.info(
                "key %s found by %s (confidence=%s)",
                result.masked_key(),
                name,
                result.confidence.value,
            )
            return result

    LOG.info("no key found: %s", "; ".join(attempt.describe() for attempt in attempts) or EXHAUSTED_REASON)
    return ExtractionFailure(EXHAUSTED_REASON, tuple(attempts))


__all__ = ["EXHAUSTED_REASON", "extract"]
