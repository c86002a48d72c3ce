"""Derived context ids and the visited set.

Contexts are addressed by ids computed from their position in the graph,
never by live driver handles, which the browser may recreate at will, and
never by element names, which only have to be unique within one document.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from contexthunt.explorer.contexts import ChildRef
from contexthunt.explorer.errors import InvariantViolation

logger = logging.getLogger(__name__)

ROOT_ID = "root"

Origin = tuple[str, int]
IdScheme = Callable[[str, ChildRef], str]


def derive_context_id(parent_id: str, ref: ChildRef) -> str:
    """Positional id ``parent/n`` (1-based)."""
    return f"{parent_id}/{ref.index + 1}"


def origin_of(parent_id: str, ref: ChildRef) -> Origin:
    return (parent_id, ref.index)


def is_back_edge(ref: ChildRef, path_anchors: Sequence[str]) -> bool:
    """True when *ref* names a document already open on the current path.

    A frame cannot usefully load one of its own ancestors (browsers refuse
    such recursive frames), so entering it again would only go round the
    cycle.  The same anchor elsewhere in the graph is a separate context.
    """
    return bool(ref.anchor) and ref.anchor in path_anchors


class VisitedRegistry:
    """Set of visited context ids, in visit order.

    Every id remembers the ``(parent, index)`` it was derived from; the same
    id claimed by another origin means the id scheme is broken.
    """

    def __init__(self) -> None:
        self._origins: dict[str, Optional[Origin]] = {}

    def seen(self, context_id: str) -> bool:
        return context_id in self._origins

    def mark_seen(self, context_id: str, origin: Optional[Origin] = None) -> None:
        self.check(context_id, origin)
        if context_id not in self._origins:
            self._origins[context_id] = origin
            logger.debug("Marked %s visited (%d total)", context_id, len(self._origins))

    def check(self, context_id: str, origin: Optional[Origin] = None) -> None:
        if not isinstance(context_id, str) or not context_id:
            raise InvariantViolation(f"derived context id must be a non-empty string, got {context_id!r}")
        if context_id not in self._origins:
            return
        known = self._origins[context_id]
        if known != origin:
            raise InvariantViolation(
                f"context id {context_id!r} derived from {origin} already belongs to {known}"
            )

    def size(self) -> int:
        return len(self._origins)

    def ids(self) -> list[str]:
        return list(self._origins)

    def __contains__(self, context_id: object) -> bool:
        return context_id in self._origins

    def __len__(self) -> int:
        return len(self._origins)
