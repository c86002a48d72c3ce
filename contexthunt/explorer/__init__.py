"""Budgeted depth-first exploration of nested browsing contexts."""

from __future__ import annotations

from contexthunt.explorer.actions import ActionExclusions, ActionOutcome, ActionPerformer
from contexthunt.explorer.aggregator import (
    ConcatStrategy,
    FirstCharacterStrategy,
    SolutionAggregator,
    strategy_from_name,
)
from contexthunt.explorer.artifacts import DEFAULT_STRATEGIES, Artifact, ArtifactCollector, ArtifactStrategy
from contexthunt.explorer.budget import TraversalBudget
from contexthunt.explorer.contexts import BrowsingContext, ChildRef, ElementRef
from contexthunt.explorer.errors import (
    ContextHuntError,
    ContextUnavailable,
    ElementInteractionFailed,
    InvariantViolation,
)
from contexthunt.explorer.graph_explorer import ContextGraphExplorer, PendingContext, TraversalResult
from contexthunt.explorer.registry import ROOT_ID, VisitedRegistry, derive_context_id

__all__ = [
    "ActionExclusions",
    "ActionOutcome",
    "ActionPerformer",
    "Artifact",
    "ArtifactCollector",
    "ArtifactStrategy",
    "BrowsingContext",
    "ChildRef",
    "ConcatStrategy",
    "ContextGraphExplorer",
    "ContextHuntError",
    "ContextUnavailable",
    "DEFAULT_STRATEGIES",
    "ElementInteractionFailed",
    "ElementRef",
    "FirstCharacterStrategy",
    "InvariantViolation",
    "PendingContext",
    "ROOT_ID",
    "SolutionAggregator",
    "TraversalBudget",
    "TraversalResult",
    "VisitedRegistry",
    "derive_context_id",
    "strategy_from_name",
]
