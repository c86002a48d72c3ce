"""
Shared fixtures for contexthunt tests.

Provides an in-memory context graph whose nodes can grow children when
their controls are clicked, fail on entry, or blow up mid-visit.  Every
enter/exit is written to ``FakeGraph.log`` so tests can check pairing and
ordering against what the collaborator actually saw.
"""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from contexthunt.explorer import ActionPerformer, ChildRef, ContextGraphExplorer, ContextUnavailable
from contexthunt.explorer.artifacts import DEFAULT_STRATEGIES

MARKER = DEFAULT_STRATEGIES[0].selector
DATA_KEY = DEFAULT_STRATEGIES[1].selector


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests that sleep for real")


class FakeElement:
    def __init__(
        self,
        text: str = "",
        tag: str = "button",
        attrs: Optional[dict] = None,
        selector: str = MARKER,
        visible: bool = True,
        enabled: bool = True,
        on_click: Optional[Callable[[], None]] = None,
        fail: bool = False,
        in_form: bool = False,
        form: Optional[str] = None,
    ):
        self._text = text
        self.tag = tag
        self.attrs = dict(attrs or {})
        self.selector = selector
        self.visible = visible
        self.enabled = enabled
        self.on_click = on_click
        self.fail = fail
        self.form = form or ("form" if in_form else None)
        self.clicks = 0
        self.filled: list[str] = []
        self.submits = 0

    def text(self) -> str:
        return self._text

    def attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    def tag_name(self) -> str:
        return self.tag

    def value(self) -> str:
        return self.attrs.get("value", "")

    def is_visible(self) -> bool:
        return self.visible

    def is_enabled(self) -> bool:
        return self.enabled

    def click(self) -> None:
        if self.fail:
            raise RuntimeError(f"click on {self._text!r} intercepted")
        self.clicks += 1
        if self.on_click:
            self.on_click()

    def fill(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("element detached")
        self.filled.append(text)
        self.attrs["value"] = text

    def form_key(self) -> Optional[str]:
        return self.form

    def submit(self) -> bool:
        if self.form is None:
            return False
        self.submits += 1
        if self.on_click:
            self.on_click()
        return True


class FakeNode:
    def __init__(self, name: str, anchor: Optional[str] = None):
        self.name = name
        self.anchor = anchor
        self.children: list[str] = []
        self.artifacts: list[FakeElement] = []
        self.controls: list[FakeElement] = []
        self.fail_enter = False
        self.fail_collect = False
        self.fail_listing = False

    def key(self, text: str, selector: str = MARKER, **attrs) -> "FakeNode":
        self.artifacts.append(FakeElement(text=text, tag="span", attrs=attrs, selector=selector))
        return self


class FakeGraph:
    """Nodes by name; ``log`` records ("enter"|"exit", name) in call order."""

    def __init__(self, anchored: bool = False):
        self.anchored = anchored
        self.nodes: dict[str, FakeNode] = {}
        self.log: list[tuple[str, str]] = []
        self.stack: list[str] = []

    def add(self, name: str, children: tuple[str, ...] = (), keys: tuple[str, ...] = ()) -> FakeNode:
        node = self.nodes.get(name) or FakeNode(name, anchor=name if self.anchored else None)
        node.children.extend(children)
        for k in keys:
            node.key(k)
        self.nodes[name] = node
        return node

    def root(self, name: str = "root") -> "FakeContext":
        return FakeContext(self, self.nodes[name])

    @property
    def entered(self) -> list[str]:
        return [name for event, name in self.log if event == "enter"]


class FakeContext:
    def __init__(self, graph: FakeGraph, node: FakeNode):
        self.graph = graph
        self.node = node

    @property
    def anchor(self) -> Optional[str]:
        return self.node.anchor

    def children(self) -> list[ChildRef]:
        if self.node.fail_listing:
            raise RuntimeError(f"{self.node.name} went stale")
        return [
            ChildRef(index=i, anchor=self.graph.nodes[name].anchor, handle=name, label=name)
            for i, name in enumerate(self.node.children)
        ]

    def enter(self, ref: ChildRef) -> "FakeContext":
        child = self.graph.nodes[ref.handle]
        if child.fail_enter:
            raise ContextUnavailable(child.name, "detached")
        self.graph.stack.append(child.name)
        self.graph.log.append(("enter", child.name))
        return FakeContext(self.graph, child)

    def exit(self) -> None:
        assert self.graph.stack and self.graph.stack[-1] == self.node.name
        self.graph.stack.pop()
        self.graph.log.append(("exit", self.node.name))

    def find_artifact_elements(self, selector: str) -> list[FakeElement]:
        if self.node.fail_collect:
            raise RuntimeError(f"{self.node.name} crashed mid-read")
        return [e for e in self.node.artifacts if e.selector == selector]

    def find_actionable_elements(self) -> list[FakeElement]:
        return list(self.node.controls)


@pytest.fixture
def graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def anchored_graph() -> FakeGraph:
    return FakeGraph(anchored=True)


@pytest.fixture
def make_explorer():
    """Explorer factory with every settle delay turned off."""

    def factory(**kwargs) -> ContextGraphExplorer:
        kwargs.setdefault("performer", ActionPerformer(settle_delay=0))
        kwargs.setdefault("settle_retries", 0)
        kwargs.setdefault("settle_delay", 0)
        return ContextGraphExplorer(**kwargs)

    return factory
