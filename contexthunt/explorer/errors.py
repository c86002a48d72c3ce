"""Error taxonomy for context exploration.

Only ``InvariantViolation`` is fatal.  The other errors are raised by
context bindings and recovered by the explorer at the smallest scope.
Budget exhaustion is not an exception; it surfaces as
``TraversalResult.truncated``.
"""

from __future__ import annotations


class ContextHuntError(Exception):
    """Base class for all contexthunt errors."""


class ContextUnavailable(ContextHuntError):
    """A listed child context could not be entered (stale or detached)."""

    def __init__(self, label: str, reason: str = ""):
        self.label = label
        self.reason = reason
        msg = f"context {label!r} unavailable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ElementInteractionFailed(ContextHuntError):
    """A click/fill/submit on a single element failed."""

    def __init__(self, action: str, reason: str = ""):
        self.action = action
        self.reason = reason
        super().__init__(f"{action} failed: {reason}" if reason else f"{action} failed")


class InvariantViolation(ContextHuntError):
    """The id scheme or enter/exit discipline is broken.  Never recovered."""
