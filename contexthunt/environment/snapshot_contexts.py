"""Static HTML snapshots as a context graph, for offline replay.

Iframes resolve to their ``srcdoc`` markup or to a sibling file named by
``src``.  Scripts never run, so clicks only get recorded and fills only
rewrite the parsed tree; a snapshot graph never grows.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from contexthunt.explorer.contexts import ChildRef
from contexthunt.explorer.errors import ContextUnavailable, InvariantViolation

logger = logging.getLogger(__name__)

ACTIONABLE_SELECTOR = "button, input, textarea, select, [role='button']"

_HIDDEN_STYLE = re.compile(r"display:\s*none|visibility:\s*hidden")


class SnapshotElement:
    """``ElementRef`` over a BeautifulSoup tag."""

    def __init__(self, tag: Tag, context: "SnapshotContext"):
        self.tag = tag
        self.context = context

    def text(self) -> str:
        if self.tag.name in ("input", "textarea", "select"):
            return ""
        return self.tag.get_text(" ", strip=True)

    def attribute(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def tag_name(self) -> str:
        return self.tag.name

    def value(self) -> str:
        if self.tag.name == "textarea":
            return self.tag.get_text()
        return self.tag.get("value", "") or ""

    def is_visible(self) -> bool:
        if self.tag.name == "input" and (self.tag.get("type") or "").lower() == "hidden":
            return False
        for node in [self.tag, *self.tag.parents]:
            if not isinstance(node, Tag):
                continue
            if node.has_attr("hidden") or _HIDDEN_STYLE.search(node.get("style", "") or ""):
                return False
        return True

    def is_enabled(self) -> bool:
        return not self.tag.has_attr("disabled")

    def click(self) -> None:
        self.context.clicks.append(self.text() or self.attribute("id") or self.tag.name)
        logger.debug("Recorded click on <%s> in %s", self.tag.name, self.context.label)

    def fill(self, text: str) -> None:
        if self.tag.name == "textarea":
            self.tag.string = text
        else:
            self.tag["value"] = text

    def form_key(self) -> Optional[str]:
        form = self.tag.find_parent("form")
        if form is None:
            return None
        return f"form-{self.context.soup.find_all('form').index(form)}"

    def submit(self) -> bool:
        form = self.tag.find_parent("form")
        if form is None:
            return False
        self.context.submitted.append(form.get("id") or form.get("action") or "form")
        return True


class SnapshotContext:
    """One parsed document; children are the iframes it declares.

    ``anchor`` is the resolved path of the file the document came from;
    ``srcdoc`` documents have none.
    """

    def __init__(
        self,
        soup: BeautifulSoup,
        base_dir: Optional[Path] = None,
        label: str = "root",
        anchor: Optional[str] = None,
    ):
        self.soup = soup
        self.base_dir = base_dir
        self.label = label
        self.anchor = anchor
        self.entered = False
        self.clicks: list[str] = []
        self.submitted: list[str] = []

    @classmethod
    def from_html(
        cls,
        html: str,
        base_dir: Optional[Path] = None,
        label: str = "root",
        anchor: Optional[str] = None,
    ) -> "SnapshotContext":
        return cls(BeautifulSoup(html, "html.parser"), base_dir, label, anchor)

    @classmethod
    def from_file(cls, path: str | Path) -> "SnapshotContext":
        path = Path(path)
        return cls.from_html(path.read_text(encoding="utf-8"), path.parent, path.name, str(path.resolve()))

    def children(self) -> list[ChildRef]:
        refs = []
        for index, iframe in enumerate(self.soup.find_all("iframe")):
            anchor = None if iframe.has_attr("srcdoc") else self._src_path(iframe.get("src"))
            label = iframe.get("name") or iframe.get("id") or iframe.get("src") or f"iframe {index + 1}"
            refs.append(ChildRef(index=index, anchor=anchor, handle=iframe, label=label))
        return refs

    def enter(self, ref: ChildRef) -> "SnapshotContext":
        iframe = ref.handle
        if not isinstance(iframe, Tag):
            raise ContextUnavailable(ref.describe(), "no iframe element")

        if iframe.has_attr("srcdoc"):
            child = SnapshotContext.from_html(iframe["srcdoc"], self.base_dir, ref.describe())
        else:
            child = SnapshotContext.from_html(self._read_src(ref), self.base_dir, ref.describe(), ref.anchor)
        child.entered = True
        logger.debug("Entered snapshot %s", child.label)
        return child

    def exit(self) -> None:
        if not self.entered:
            raise InvariantViolation(f"snapshot {self.label} exited without being entered")
        self.entered = False

    def find_artifact_elements(self, selector: str) -> list[SnapshotElement]:
        return [SnapshotElement(tag, self) for tag in self.soup.select(selector)]

    def find_actionable_elements(self) -> list[SnapshotElement]:
        return [SnapshotElement(tag, self) for tag in self.soup.select(ACTIONABLE_SELECTOR)]

    def _src_path(self, src: Optional[str]) -> Optional[str]:
        if not src or src == "about:blank":
            return None
        if urlparse(src).scheme in ("http", "https") or self.base_dir is None:
            return src
        return str((self.base_dir / urlparse(src).path).resolve())

    def _read_src(self, ref: ChildRef) -> str:
        src = ref.handle.get("src") or ""
        if not src or src == "about:blank":
            raise ContextUnavailable(ref.describe(), "iframe has no content")
        if urlparse(src).scheme in ("http", "https"):
            raise ContextUnavailable(ref.describe(), f"remote document {src} not in snapshot")
        if self.base_dir is None:
            raise ContextUnavailable(ref.describe(), "no snapshot directory to resolve src")
        path = self.base_dir / urlparse(src).path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise ContextUnavailable(ref.describe(), str(e)) from e
