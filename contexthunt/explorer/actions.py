"""Generic "poke everything" actions on a context's controls.

Injected puzzle content has no static contract, so the performer clicks
every eligible control and fills every required-but-empty field, then lets
the explorer re-scan for whatever appeared.  One failed action never blocks
the next.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from contexthunt.explorer.contexts import BrowsingContext, ElementRef

logger = logging.getLogger(__name__)

NON_FIELD_INPUT_TYPES = {"button", "submit", "reset", "image", "checkbox", "radio", "file"}

# The host page's own solution/validation controls.
DEFAULT_EXCLUDED_IDS = frozenset({
    "start-challenge-btn", "validate-btn", "submit-keys", "submit-solution",
    "solution-input", "collected-keys", "final-answer",
})


@dataclass(frozen=True)
class ActionExclusions:
    texts: frozenset[str] = frozenset({"start", "validate"})
    ids: frozenset[str] = DEFAULT_EXCLUDED_IDS
    classes: frozenset[str] = frozenset()
    skip_unlabeled: bool = True

    @classmethod
    def from_dict(cls, data: dict | None) -> "ActionExclusions":
        data = data or {}
        defaults = cls()
        return cls(
            texts=frozenset(t.lower() for t in data.get("exclude_texts", defaults.texts)),
            ids=frozenset(data.get("exclude_ids", defaults.ids)),
            classes=frozenset(data.get("exclude_classes", defaults.classes)),
            skip_unlabeled=bool(data.get("skip_unlabeled", defaults.skip_unlabeled)),
        )

    def excludes(self, element: ElementRef) -> bool:
        label = _label(element)
        if label.lower() in self.texts:
            return True
        if self.skip_unlabeled and not label:
            return True
        if (element.attribute("id") or "") in self.ids:
            return True
        if self.classes:
            classes = set((element.attribute("class") or "").split())
            if classes & self.classes:
                return True
        return False


@dataclass
class ActionOutcome:
    clicked: int = 0
    forms_submitted: int = 0
    failures: int = 0
    log: list[str] = field(default_factory=list)

    @property
    def acted(self) -> bool:
        return bool(self.clicked or self.forms_submitted)


class ActionPerformer:
    def __init__(
        self,
        exclusions: ActionExclusions | None = None,
        placeholder: str = "treasure",
        settle_delay: float = 0.5,
    ):
        self.exclusions = exclusions or ActionExclusions()
        self.placeholder = placeholder
        self.settle_delay = settle_delay

    def perform_available_actions(self, context: BrowsingContext, context_id: str = "") -> ActionOutcome:
        outcome = ActionOutcome()
        elements = context.find_actionable_elements()

        controls: list[ElementRef] = []
        fields: list[ElementRef] = []
        for element in elements:
            try:
                kind = _classify(element)
            except Exception as e:
                outcome.failures += 1
                logger.debug("Could not inspect element in %s: %s", context_id, e)
                continue
            if kind == "field":
                fields.append(element)
            elif kind == "control":
                controls.append(element)

        for element in controls:
            self._click(element, context_id, outcome)
        self._fill_and_submit(fields, context_id, outcome)

        if outcome.acted or outcome.failures:
            logger.info(
                "Actions in %s: clicked=%d submitted=%d failed=%d",
                context_id, outcome.clicked, outcome.forms_submitted, outcome.failures,
            )
        return outcome

    def _click(self, element: ElementRef, context_id: str, outcome: ActionOutcome) -> None:
        try:
            if not (element.is_visible() and element.is_enabled()):
                return
            if self.exclusions.excludes(element):
                return
            label = _label(element)
            element.click()
        except Exception as e:
            outcome.failures += 1
            logger.debug("Click in %s failed: %s", context_id, e)
            return
        outcome.clicked += 1
        outcome.log.append(f"clicked {label[:40]!r}")
        logger.info("Clicked %r in %s", label[:40], context_id)
        self._settle()

    def _fill_and_submit(self, fields: list[ElementRef], context_id: str, outcome: ActionOutcome) -> None:
        """Fill every eligible field first, then submit each form they sit in once."""
        # form key -> (first filled field, its name), in discovery order
        forms: dict[str, tuple[ElementRef, str]] = {}
        for element in fields:
            name = self._fill(element, context_id, outcome)
            if name is None:
                continue
            try:
                key = element.form_key()
            except Exception as e:
                outcome.failures += 1
                logger.debug("Could not find the form of %r in %s: %s", name, context_id, e)
                continue
            if key is None:
                logger.debug("Filled %r in %s (no enclosing form)", name, context_id)
            elif key not in forms:
                forms[key] = (element, name)

        for element, name in forms.values():
            try:
                submitted = element.submit()
            except Exception as e:
                outcome.failures += 1
                logger.debug("Submitting the form of %r in %s failed: %s", name, context_id, e)
                continue
            if submitted:
                outcome.forms_submitted += 1
                outcome.log.append(f"submitted form of {name!r}")
                logger.info("Submitted the form of %r in %s", name, context_id)
                self._settle()

    def _fill(self, element: ElementRef, context_id: str, outcome: ActionOutcome) -> str | None:
        """Fill a required empty field.  Returns its name, or ``None`` if left alone."""
        try:
            if not (element.is_visible() and element.is_enabled()):
                return None
            if element.attribute("required") is None or element.value():
                return None
            if (element.attribute("id") or "") in self.exclusions.ids:
                return None
            element.fill(self.placeholder)
        except Exception as e:
            outcome.failures += 1
            logger.debug("Fill in %s failed: %s", context_id, e)
            return None
        name = element.attribute("name") or element.attribute("id") or "field"
        outcome.log.append(f"filled {name!r}")
        return name

    def _settle(self) -> None:
        if self.settle_delay > 0:
            time.sleep(self.settle_delay)


def _label(element: ElementRef) -> str:
    # <input type="submit"> has no text; its value is the label.
    return (element.text() or element.attribute("aria-label") or element.attribute("value") or "").strip()


def _classify(element: ElementRef) -> str:
    """``control``, ``field`` or ``skip``."""
    tag = (element.tag_name() or "").lower()
    if tag in ("textarea", "select"):
        return "field"
    if tag == "input":
        input_type = (element.attribute("type") or "text").lower()
        if input_type == "hidden":
            return "skip"
        if input_type in NON_FIELD_INPUT_TYPES:
            return "control"
        return "field"
    return "control"
