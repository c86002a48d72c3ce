"""Collaborator interfaces consumed by the explorer.

A ``BrowsingContext`` is anything that hosts content and child contexts:
an iframe, a popup window, or a parsed HTML snapshot.  Bindings live in
``contexthunt.environment``; tests use in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class ChildRef:
    """A child context as listed by its parent.

    ``index`` is the discovery index within the parent's listing and the
    only input to the child's id.  ``anchor`` optionally names the document
    the child shows (frame URL, snapshot file); a child whose anchor is
    already open on the current path is a back-edge.  ``handle`` is
    whatever the binding needs to enter the child.
    """

    index: int
    anchor: Optional[str] = None
    handle: Any = None
    label: str = ""

    def describe(self) -> str:
        return self.label or self.anchor or f"#{self.index + 1}"


@runtime_checkable
class ElementRef(Protocol):
    def text(self) -> str: ...

    def attribute(self, name: str) -> Optional[str]: ...

    def tag_name(self) -> str: ...

    def value(self) -> str: ...

    def is_visible(self) -> bool: ...

    def is_enabled(self) -> bool: ...

    def click(self) -> None: ...

    def fill(self, text: str) -> None: ...

    def form_key(self) -> Optional[str]:
        """Identity of the nearest enclosing form in its document, or ``None``."""
        ...

    def submit(self) -> bool:
        """Submit the nearest enclosing form.  ``False`` if there is none."""
        ...


@runtime_checkable
class BrowsingContext(Protocol):
    def children(self) -> list[ChildRef]: ...

    def enter(self, ref: ChildRef) -> "BrowsingContext":
        """Move the session cursor into *ref*.  Raises ``ContextUnavailable``."""
        ...

    def exit(self) -> None:
        """Return the session cursor to this context's parent."""
        ...

    def find_artifact_elements(self, selector: str) -> list[ElementRef]: ...

    def find_actionable_elements(self) -> list[ElementRef]: ...
