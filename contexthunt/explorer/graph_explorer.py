"""Depth-first exploration of a graph of nested browsing contexts.

The graph (iframes inside iframes, windows opening windows) is not known up
front and grows as the explorer clicks things.  One ``explore()`` call owns
one ``TraversalState``; nothing is shared between runs.

Per context, pre-order:

1. check the budget (stop descending, but always unwind),
2. mark the context visited,
3. collect artifacts,
4. visit unvisited children in discovery order (enter / recurse / exit),
5. run actions, collect again, re-scan for new children (max 2 re-scans).
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Sequence

from contexthunt.explorer.actions import ActionPerformer
from contexthunt.explorer.artifacts import DEFAULT_STRATEGIES, ArtifactCollector, ArtifactStrategy
from contexthunt.explorer.budget import DEPTH, DURATION, STEPS, TraversalBudget
from contexthunt.explorer.contexts import BrowsingContext, ChildRef
from contexthunt.explorer.errors import ContextUnavailable, InvariantViolation
from contexthunt.explorer.registry import (
    ROOT_ID,
    IdScheme,
    Origin,
    VisitedRegistry,
    derive_context_id,
    is_back_edge,
    origin_of,
)

logger = logging.getLogger(__name__)

EventHook = Callable[[str, str], None]


@dataclass
class PendingContext:
    context_id: str
    ref: Optional[ChildRef]
    depth: int
    origin: Optional[Origin] = None
    # Anchors of this context and its ancestors.
    path_anchors: tuple[str, ...] = ()


@dataclass
class TraversalState:
    visited: VisitedRegistry
    collector: ArtifactCollector
    started_at: float
    step_count: int = 0
    truncated: bool = False
    halt_reason: Optional[str] = None
    errors: int = 0
    stack: list[str] = field(default_factory=list)
    anchor_sites: dict[str, str] = field(default_factory=dict)

    @property
    def halted(self) -> bool:
        return self.halt_reason is not None

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


@dataclass
class TraversalResult:
    artifacts: list[str] = field(default_factory=list)
    visited_count: int = 0
    truncated: bool = False
    step_count: int = 0
    halt_reason: Optional[str] = None
    origins: dict[str, list[str]] = field(default_factory=dict)
    visited_ids: list[str] = field(default_factory=list)
    errors: int = 0
    elapsed_seconds: float = 0.0


class ContextGraphExplorer:
    """Explores a context graph under a ``TraversalBudget``."""

    def __init__(
        self,
        strategies: Sequence[ArtifactStrategy] = DEFAULT_STRATEGIES,
        performer: ActionPerformer | None = None,
        max_rescans: int = 2,
        id_scheme: IdScheme = derive_context_id,
        settle_retries: int = 1,
        settle_delay: float = 0.5,
        click_collected: bool = False,
        on_event: EventHook | None = None,
    ):
        self.strategies = tuple(strategies)
        self.performer = performer or ActionPerformer()
        self.max_rescans = max(0, max_rescans)
        self.id_scheme = id_scheme
        self.settle_retries = settle_retries
        self.settle_delay = settle_delay
        self.click_collected = click_collected
        self.on_event = on_event

    def explore(
        self,
        root: BrowsingContext,
        budget: TraversalBudget | None = None,
        root_anchor: Optional[str] = None,
    ) -> TraversalResult:
        """Explore everything reachable from *root*.

        *root_anchor* names the root's document, so a frame that loads it
        again is recognised as a back-edge.
        """
        budget = budget or TraversalBudget()
        state = TraversalState(
            visited=VisitedRegistry(),
            collector=ArtifactCollector(
                self.strategies,
                settle_retries=self.settle_retries,
                settle_delay=self.settle_delay,
                click_collected=self.click_collected,
            ),
            started_at=time.monotonic(),
        )
        logger.info(
            "Exploration started (max_steps=%d, max_depth=%d, max_duration=%.0fs)",
            budget.max_steps, budget.max_depth, budget.max_duration,
        )

        reason = budget.exceeded(state.step_count, 0, state.elapsed())
        if reason:
            self._truncate(state, reason, ROOT_ID)
        else:
            anchors = (root_anchor,) if root_anchor else ()
            if root_anchor:
                state.anchor_sites[root_anchor] = ROOT_ID
            self._visit(root, PendingContext(ROOT_ID, None, 0, path_anchors=anchors), state, budget)

        if state.stack:
            raise InvariantViolation(f"contexts left entered after exploration: {state.stack}")

        result = TraversalResult(
            artifacts=state.collector.payloads,
            visited_count=state.visited.size(),
            truncated=state.truncated,
            step_count=state.step_count,
            halt_reason=state.halt_reason,
            origins={p: state.collector.origins(p) for p in state.collector.payloads},
            visited_ids=state.visited.ids(),
            errors=state.errors,
            elapsed_seconds=state.elapsed(),
        )
        logger.info(
            "Exploration finished: %d contexts, %d artifacts, truncated=%s (%.1fs)",
            result.visited_count, len(result.artifacts), result.truncated, result.elapsed_seconds,
        )
        return result

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _visit(
        self,
        context: BrowsingContext,
        pending: PendingContext,
        state: TraversalState,
        budget: TraversalBudget,
    ) -> None:
        cid = pending.context_id
        # Marked on entry, before anything in the context can fail.
        state.visited.mark_seen(cid, pending.origin)
        state.step_count += 1
        self._emit("visit", cid)
        logger.info("Exploring %s (depth %d, step %d)", cid, pending.depth, state.step_count)

        anchor = pending.ref.anchor if pending.ref else None
        if anchor:
            first = state.anchor_sites.setdefault(anchor, cid)
            if first != cid:
                logger.info("%s shows %s, already visited as %s; exploring it separately", cid, anchor, first)

        try:
            state.collector.collect(context, cid)
            self._visit_children(context, pending, state, budget)

            for rescan in range(self.max_rescans):
                if state.halted:
                    break
                outcome = self.performer.perform_available_actions(context, cid)
                self._emit("actions", cid)
                if outcome.acted:
                    state.collector.collect(context, cid)
                found = self._visit_children(context, pending, state, budget)
                logger.debug("Re-scan %d of %s found %d new contexts", rescan + 1, cid, found)
                if not found:
                    break
        except InvariantViolation:
            raise
        except Exception as e:
            state.errors += 1
            self._emit("error", cid)
            logger.warning("Error exploring %s: %s", cid, e)

    def _visit_children(
        self,
        context: BrowsingContext,
        parent: PendingContext,
        state: TraversalState,
        budget: TraversalBudget,
    ) -> int:
        """Visit every unvisited child in discovery order.  Returns how many."""
        child_depth = parent.depth + 1
        if child_depth > budget.max_depth:
            if self._next_pending(parent, context.children(), state, set()):
                self._truncate(state, DEPTH, parent.context_id)
            return 0

        visited = 0
        attempted: set[str] = set()
        while not state.halted:
            # Re-list every time: the previous child may have changed the DOM.
            pending = self._next_pending(parent, context.children(), state, attempted)
            if pending is None:
                break
            attempted.add(pending.context_id)

            reason = budget.exceeded(state.step_count, pending.depth, state.elapsed())
            if reason:
                self._truncate(state, reason, pending.context_id)
                continue

            try:
                with self._entered(context, pending, state) as child:
                    self._visit(child, pending, state, budget)
                visited += 1
            except InvariantViolation:
                raise
            except ContextUnavailable as e:
                state.errors += 1
                logger.warning("Skipping %s: %s", pending.context_id, e)
            except Exception as e:
                state.errors += 1
                logger.warning("Could not enter or leave %s: %s", pending.context_id, e)
        return visited

    def _next_pending(
        self,
        parent: PendingContext,
        refs: Sequence[ChildRef],
        state: TraversalState,
        attempted: set[str],
    ) -> Optional[PendingContext]:
        for ref in refs:
            cid = self.id_scheme(parent.context_id, ref)
            origin = origin_of(parent.context_id, ref)
            state.visited.check(cid, origin)
            if cid in attempted or state.visited.seen(cid):
                continue
            if is_back_edge(ref, parent.path_anchors):
                logger.debug("Not entering %s: %s is already open on this path", cid, ref.anchor)
                continue
            anchors = parent.path_anchors + ((ref.anchor,) if ref.anchor else ())
            return PendingContext(cid, ref, parent.depth + 1, origin, anchors)
        return None

    @contextmanager
    def _entered(
        self,
        parent: BrowsingContext,
        pending: PendingContext,
        state: TraversalState,
    ) -> Iterator[BrowsingContext]:
        child = parent.enter(pending.ref)
        state.stack.append(pending.context_id)
        self._emit("enter", pending.context_id)
        logger.debug("Entered %s", pending.context_id)
        try:
            yield child
        finally:
            top = state.stack.pop()
            # The driver cursor is unwound even when the stack is corrupt.
            child.exit()
            self._emit("exit", pending.context_id)
            logger.debug("Exited %s", pending.context_id)
            if top != pending.context_id:
                raise InvariantViolation(f"exiting {pending.context_id} but {top} is current")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _truncate(self, state: TraversalState, reason: str, context_id: str) -> None:
        state.truncated = True
        if reason in (STEPS, DURATION):
            if state.halt_reason is None:
                state.halt_reason = reason
                logger.warning(
                    "Budget exhausted (%s) before %s after %d steps; unwinding",
                    reason, context_id, state.step_count,
                )
        else:
            logger.info("Depth budget reached below %s; not descending", context_id)

    def _emit(self, event: str, context_id: str) -> None:
        if self.on_event is not None:
            self.on_event(event, context_id)
