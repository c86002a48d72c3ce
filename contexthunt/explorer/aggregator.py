"""Reduce collected artifacts into a submission token."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


class AggregationStrategy(Protocol):
    name: str

    def combine(self, artifacts: Sequence[str]) -> str: ...


class ConcatStrategy:
    """Artifacts joined in first-collection order."""

    name = "concat"

    def __init__(self, delimiter: str = ","):
        self.delimiter = delimiter

    def combine(self, artifacts: Sequence[str]) -> str:
        return self.delimiter.join(artifacts)


class FirstCharacterStrategy:
    """First character of each artifact, e.g. clues ``Tiger, Rain`` -> ``TR``."""

    name = "first_char"

    def combine(self, artifacts: Sequence[str]) -> str:
        return "".join(a[0] for a in artifacts if a)


_STRATEGIES = {
    ConcatStrategy.name: ConcatStrategy,
    FirstCharacterStrategy.name: FirstCharacterStrategy,
}


def strategy_from_name(name: str, **options) -> AggregationStrategy:
    try:
        cls = _STRATEGIES[name]
    except KeyError:
        raise ValueError(f"unknown aggregation strategy {name!r}; choose from {sorted(_STRATEGIES)}") from None
    return cls(**options)


class SolutionAggregator:
    def __init__(self, strategy: AggregationStrategy | None = None, fallback: Optional[str] = None):
        self.strategy = strategy or ConcatStrategy()
        self.fallback = fallback

    def aggregate(self, artifacts: Sequence[str]) -> str:
        solution = self.strategy.combine(list(artifacts)) if artifacts else ""
        if not solution and self.fallback is not None:
            logger.warning("Could not build a solution from %d artifacts, using fallback", len(artifacts))
            return self.fallback
        logger.info("Aggregated %d artifacts with %s: %s", len(artifacts), self.strategy.name, solution)
        return solution
