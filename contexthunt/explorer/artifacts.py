"""Artifact (treasure key) extraction from a single browsing context.

Strategies are tried in priority order and the first one that matches
anything wins for that context.  Payloads are deduplicated across the whole
run, but every context a payload shows up in is remembered.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from contexthunt.explorer.contexts import BrowsingContext, ElementRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactStrategy:
    name: str
    selector: str
    fallback_attribute: Optional[str] = "data-key"

    @classmethod
    def from_dict(cls, data: dict) -> "ArtifactStrategy":
        return cls(
            name=data["name"],
            selector=data["selector"],
            fallback_attribute=data.get("fallback_attribute", "data-key"),
        )


DEFAULT_STRATEGIES: tuple[ArtifactStrategy, ...] = (
    ArtifactStrategy("marker-class", ".treasure-key, .key-fragment", "data-key"),
    ArtifactStrategy("data-attribute", "[data-key]", "data-key"),
)


@dataclass(frozen=True)
class Artifact:
    payload: str
    origin_context_id: str
    order: int


class ArtifactCollector:
    """Collects artifacts for one run.  Create a new one per ``explore()``."""

    def __init__(
        self,
        strategies: Sequence[ArtifactStrategy] = DEFAULT_STRATEGIES,
        settle_retries: int = 1,
        settle_delay: float = 0.5,
        click_collected: bool = False,
    ):
        if not strategies:
            raise ValueError("at least one artifact strategy is required")
        self.strategies = tuple(strategies)
        self.settle_retries = max(0, settle_retries)
        self.settle_delay = settle_delay
        self.click_collected = click_collected
        self._artifacts: dict[str, Artifact] = {}
        self._origins: dict[str, list[str]] = {}

    @property
    def artifacts(self) -> list[Artifact]:
        return list(self._artifacts.values())

    @property
    def payloads(self) -> list[str]:
        return list(self._artifacts)

    def origins(self, payload: str) -> list[str]:
        return list(self._origins.get(payload, []))

    def collect(self, context: BrowsingContext, context_id: str = "root") -> list[Artifact]:
        """Return only the artifacts that are new to this run, in document order."""
        elements, strategy = self._query(context)
        if strategy is None:
            logger.debug("No artifacts in %s", context_id)
            return []

        new: list[Artifact] = []
        for element in elements:
            try:
                payload = _read_payload(element, strategy.fallback_attribute)
            except Exception as e:
                logger.warning("Could not read artifact element in %s: %s", context_id, e)
                continue
            if not payload:
                continue

            seen_in = self._origins.setdefault(payload, [])
            if context_id not in seen_in:
                seen_in.append(context_id)

            if payload in self._artifacts:
                logger.debug(
                    "Artifact %r seen again in %s (first collected in %s)",
                    payload, context_id, self._artifacts[payload].origin_context_id,
                )
                continue

            artifact = Artifact(payload=payload, origin_context_id=context_id, order=len(self._artifacts))
            self._artifacts[payload] = artifact
            new.append(artifact)
            logger.info("Collected artifact %r from %s via %s", payload, context_id, strategy.name)

            if self.click_collected:
                # Some keys only register once clicked.
                try:
                    element.click()
                except Exception as e:
                    logger.debug("Artifact click in %s failed: %s", context_id, e)

        return new

    def _query(self, context: BrowsingContext) -> tuple[list[ElementRef], Optional[ArtifactStrategy]]:
        for attempt in range(self.settle_retries + 1):
            for strategy in self.strategies:
                elements = context.find_artifact_elements(strategy.selector)
                if elements:
                    return list(elements), strategy
            if attempt < self.settle_retries and self.settle_delay > 0:
                time.sleep(self.settle_delay)
        return [], None


def _read_payload(element: ElementRef, fallback_attribute: Optional[str]) -> str:
    text = (element.text() or "").strip()
    if text or not fallback_attribute:
        return text
    return (element.attribute(fallback_attribute) or "").strip()
