"""Playwright bindings: iframe trees and popup-window chains as context graphs.

Both kinds share one ``ContextCursor``, the single "current context" of the
automation session.  Entering pushes onto it, exiting pops; only the top may
be exited.

Usage:
    with PlaywrightSession(headless=True) as session:
        root = session.open(url, mode="frames")
        result = ContextGraphExplorer().explore(root, budget)
"""

from __future__ import annotations

import logging
import os
from typing import Optional
from urllib.parse import urldefrag, urlparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from contexthunt.explorer.contexts import ChildRef
from contexthunt.explorer.errors import ContextUnavailable, ElementInteractionFailed, InvariantViolation

logger = logging.getLogger(__name__)

ACTIONABLE_SELECTOR = "button, input, textarea, select, [role='button']"
LOADING_SELECTOR = ".loading"

# Submits the element's form the way its submit button would.
_SUBMIT_FORM_JS = """\
(el) => {
  const form = el.form || el.closest('form');
  if (!form) return false;
  if (form.requestSubmit) { form.requestSubmit(); } else { form.submit(); }
  return true;
}
"""

# Position of the element's form in document.forms, stable across handles.
_FORM_KEY_JS = """\
(el) => {
  const form = el.form || el.closest('form');
  if (!form) return null;
  return 'form-' + Array.prototype.indexOf.call(el.ownerDocument.forms, form);
}
"""


def _document_anchor(url: str) -> Optional[str]:
    """The frame's URL without fragment; ``about:`` documents have no identity."""
    if not url or url.startswith("about:"):
        return None
    return urldefrag(url).url


def _get_playwright_proxy() -> dict | None:
    """Build Playwright proxy config from HTTP_PROXY / HTTPS_PROXY, if set."""
    proxy_url = os.environ.get("HTTP_PROXY") or os.environ.get("HTTPS_PROXY") or ""
    if not proxy_url:
        return None
    parsed = urlparse(proxy_url)
    if not parsed.hostname:
        return None
    proxy: dict = {"server": f"http://{parsed.hostname}:{parsed.port}"}
    if parsed.username:
        proxy["username"] = parsed.username
    if parsed.password:
        proxy["password"] = parsed.password
    return proxy


class ContextCursor:
    """Stack of entered contexts; the top is where the session is focused."""

    def __init__(self) -> None:
        self._stack: list["_PlaywrightContext"] = []

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def current(self) -> Optional["_PlaywrightContext"]:
        return self._stack[-1] if self._stack else None

    def push(self, context: "_PlaywrightContext") -> None:
        self._stack.append(context)
        logger.debug("Cursor -> %s (depth %d)", context.label, len(self._stack))

    def pop(self, context: "_PlaywrightContext") -> None:
        if not self._stack or self._stack[-1] is not context:
            current = self.current.label if self.current else None
            raise InvariantViolation(f"cannot exit {context.label}: current context is {current}")
        self._stack.pop()
        logger.debug("Cursor <- %s (depth %d)", context.label, len(self._stack))


class PlaywrightElement:
    """``ElementRef`` over a Playwright ``ElementHandle``."""

    def __init__(self, handle, timeout_ms: float = 5000):
        self.handle = handle
        self.timeout_ms = timeout_ms

    def text(self) -> str:
        try:
            return self.handle.inner_text() or ""
        except PlaywrightError as e:
            raise ElementInteractionFailed("read text", str(e)) from e

    def attribute(self, name: str) -> Optional[str]:
        try:
            return self.handle.get_attribute(name)
        except PlaywrightError as e:
            raise ElementInteractionFailed(f"read attribute {name}", str(e)) from e

    def tag_name(self) -> str:
        try:
            return self.handle.evaluate("el => el.tagName.toLowerCase()")
        except PlaywrightError as e:
            raise ElementInteractionFailed("read tag", str(e)) from e

    def value(self) -> str:
        try:
            return self.handle.input_value()
        except PlaywrightError:
            # Not an input/textarea/select.
            return ""

    def is_visible(self) -> bool:
        try:
            return self.handle.is_visible()
        except PlaywrightError:
            return False

    def is_enabled(self) -> bool:
        try:
            return self.handle.is_enabled()
        except PlaywrightError:
            return False

    def click(self) -> None:
        try:
            self.handle.click(timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise ElementInteractionFailed("click", str(e)) from e

    def fill(self, text: str) -> None:
        try:
            self.handle.fill(text, timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise ElementInteractionFailed("fill", str(e)) from e

    def form_key(self) -> Optional[str]:
        try:
            return self.handle.evaluate(_FORM_KEY_JS)
        except PlaywrightError as e:
            raise ElementInteractionFailed("find form", str(e)) from e

    def submit(self) -> bool:
        try:
            return bool(self.handle.evaluate(_SUBMIT_FORM_JS))
        except PlaywrightError as e:
            raise ElementInteractionFailed("submit", str(e)) from e


class _PlaywrightContext:
    """Shared element queries over one Playwright ``Frame``."""

    def __init__(self, frame, cursor: ContextCursor, label: str, timeout: float = 5.0):
        self.frame = frame
        self.cursor = cursor
        self.label = label
        self.timeout = timeout

    @property
    def anchor(self) -> Optional[str]:
        # Popups repeat URLs, and the opener chain cannot loop.
        return None

    def find_artifact_elements(self, selector: str) -> list[PlaywrightElement]:
        return self._query(selector)

    def find_actionable_elements(self) -> list[PlaywrightElement]:
        return self._query(ACTIONABLE_SELECTOR)

    def exit(self) -> None:
        self.cursor.pop(self)

    def _query(self, selector: str) -> list[PlaywrightElement]:
        try:
            handles = self.frame.query_selector_all(selector)
        except PlaywrightError as e:
            raise ContextUnavailable(self.label, str(e)) from e
        return [PlaywrightElement(h, self.timeout * 1000) for h in handles]

    def _wait_until_loaded(self) -> None:
        """Bounded wait for ``.loading`` indicators to clear."""
        try:
            self.frame.wait_for_load_state("domcontentloaded", timeout=self.timeout * 1000)
            self.frame.wait_for_selector(LOADING_SELECTOR, state="hidden", timeout=self.timeout * 1000)
        except PlaywrightTimeoutError:
            logger.debug("%s still loading after %.1fs", self.label, self.timeout)
        except PlaywrightError as e:
            raise ContextUnavailable(self.label, str(e)) from e


class FrameContext(_PlaywrightContext):
    """An iframe (or the main frame); children are its child frames."""

    @property
    def anchor(self) -> Optional[str]:
        return _document_anchor(self.frame.url)

    def children(self) -> list[ChildRef]:
        refs = []
        for index, frame in enumerate(f for f in self.frame.child_frames if not f.is_detached()):
            refs.append(ChildRef(
                index=index,
                anchor=_document_anchor(frame.url),
                handle=frame,
                label=frame.name or frame.url,
            ))
        return refs

    def enter(self, ref: ChildRef) -> "FrameContext":
        frame = ref.handle
        if frame is None or frame.is_detached():
            raise ContextUnavailable(ref.describe(), "frame detached")
        child = FrameContext(frame, self.cursor, ref.describe(), self.timeout)
        child._wait_until_loaded()
        self.cursor.push(child)
        return child


class WindowContext(_PlaywrightContext):
    """A page; children are the popup windows it opened."""

    def __init__(self, page, cursor: ContextCursor, label: str, timeout: float = 5.0):
        super().__init__(page.main_frame, cursor, label, timeout)
        self.page = page

    def children(self) -> list[ChildRef]:
        try:
            pages = [p for p in self.page.context.pages if not p.is_closed() and p.opener() == self.page]
        except PlaywrightError as e:
            raise ContextUnavailable(self.label, str(e)) from e
        return [ChildRef(index=i, handle=p, label=p.url) for i, p in enumerate(pages)]

    def enter(self, ref: ChildRef) -> "WindowContext":
        page = ref.handle
        if page is None or page.is_closed():
            raise ContextUnavailable(ref.describe(), "window closed")
        try:
            page.bring_to_front()
        except PlaywrightError as e:
            raise ContextUnavailable(ref.describe(), str(e)) from e
        child = WindowContext(page, self.cursor, ref.describe(), self.timeout)
        child._wait_until_loaded()
        self.cursor.push(child)
        return child

    def exit(self) -> None:
        super().exit()
        parent = self.page.opener()
        if parent is not None and not parent.is_closed():
            try:
                parent.bring_to_front()
            except PlaywrightError as e:
                logger.warning("Could not refocus opener of %s: %s", self.label, e)


class PlaywrightSession:
    """Owns the Playwright browser and builds the root context for a hunt."""

    def __init__(self, headless: bool = True, timeout: float = 5.0):
        self.headless = headless
        self.timeout = timeout
        self.cursor = ContextCursor()
        self._playwright = None
        self._browser = None
        self.page = None

    def start(self) -> "PlaywrightSession":
        pw_kwargs: dict = {"headless": self.headless}
        proxy = _get_playwright_proxy()
        if proxy:
            pw_kwargs["proxy"] = proxy
            logger.info("Using HTTP proxy for browser: %s", proxy["server"])
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(**pw_kwargs)
        self.page = self._browser.new_page()
        self.page.set_default_timeout(self.timeout * 1000)
        return self

    def open(
        self,
        url: str,
        mode: str = "frames",
        root_selector: Optional[str] = None,
        start_selector: Optional[str] = None,
    ) -> _PlaywrightContext:
        """Navigate to *url* and return the root context for *mode*.

        *start_selector* is clicked first when present (e.g. a start button);
        *root_selector* names an iframe to use as the root instead of the page.
        """
        logger.info("Opening %s (mode=%s)", url, mode)
        self.page.goto(url, wait_until="domcontentloaded")

        if start_selector:
            try:
                self.page.click(start_selector, timeout=self.timeout * 1000)
                logger.info("Clicked start control %s", start_selector)
            except PlaywrightError as e:
                logger.warning("Start control %s not clicked: %s", start_selector, e)

        if mode == "windows":
            return WindowContext(self.page, self.cursor, "root", self.timeout)
        if mode != "frames":
            raise ValueError(f"unknown Playwright mode {mode!r}")

        frame = self.page.main_frame
        if root_selector:
            handle = self.page.wait_for_selector(root_selector, timeout=self.timeout * 1000)
            frame = handle.content_frame() if handle else None
            if frame is None:
                raise ContextUnavailable(root_selector, "not an iframe")
        root = FrameContext(frame, self.cursor, "root", self.timeout)
        root._wait_until_loaded()
        return root

    def fill_solution(self, solution: str, input_selector: str, submit_selector: str) -> bool:
        """Type the solution into the host page's form and submit it."""
        try:
            self.page.bring_to_front()
            self.page.fill(input_selector, solution, timeout=self.timeout * 1000)
            self.page.click(submit_selector, timeout=self.timeout * 1000)
        except PlaywrightError as e:
            logger.warning("Could not submit solution: %s", e)
            return False
        logger.info("Submitted solution via %s", submit_selector)
        return True

    def close(self) -> None:
        if self._browser is not None:
            self._browser.close()
        if self._playwright is not None:
            self._playwright.stop()

    def __enter__(self):
        return self.start()

    def __exit__(self, *args):
        self.close()
