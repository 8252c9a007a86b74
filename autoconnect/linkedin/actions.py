"""
Atomic page interactions.

Every primitive is best-effort: UI-shape mismatches and Playwright errors are
logged and reported as False, never raised. Callers verify the side effect
they actually care about.
"""
import logging
import re
from typing import Optional

from playwright.sync_api import Error as PlaywrightError, Locator, Page

from autoconnect.workflow.timing import Pacer

logger = logging.getLogger("autoconnect")

IS_EDITABLE_JS = "e => e.isContentEditable"

# React owns textarea.value, so go through the native setter
FIELD_APPEND_JS = """(e, t) => {
    e.focus();
    const proto = Object.getPrototypeOf(e);
    const setter = Object.getOwnPropertyDescriptor(proto, 'value').set;
    setter.call(e, (e.value || '') + t);
    for (const type of ['input', 'change', 'keyup']) {
        e.dispatchEvent(new Event(type, { bubbles: true }));
    }
}"""

EDITABLE_APPEND_JS = """(e, t) => {
    e.focus();
    const range = document.createRange();
    range.selectNodeContents(e);
    range.collapse(false);
    const sel = window.getSelection();
    sel.removeAllRanges();
    sel.addRange(range);
    if (!document.execCommand('insertText', false, t)) {
        e.appendChild(document.createTextNode(t));
    }
    for (const type of ['input', 'change', 'keyup']) {
        e.dispatchEvent(new Event(type, { bubbles: true }));
    }
}"""

READY_STATE_JS = "() => document.readyState"


class _FieldWriter:
    """textarea / input targets."""

    script = FIELD_APPEND_JS

    def append(self, handle: Locator, fragment: str) -> None:
        handle.evaluate(self.script, fragment)

    def read(self, handle: Locator) -> str:
        return handle.input_value()


class _EditableWriter(_FieldWriter):
    """contenteditable targets (chat composers)."""

    script = EDITABLE_APPEND_JS

    def read(self, handle: Locator) -> str:
        return handle.inner_text()


def split_fragments(text: str, unit: str = "word") -> list[str]:
    """Split text into typing fragments that concatenate back to ``text``."""
    if unit == "char":
        return list(text)
    fragments = re.findall(r"\S+\s*", text)
    leading = text[: len(text) - len(text.lstrip())]
    if fragments and leading:
        fragments[0] = leading + fragments[0]
    return fragments or ([text] if text else [])


def _normalize(text: str) -> str:
    return " ".join(text.split())


class ActionPrimitives:
    def __init__(self, page: Page, pacer: Optional[Pacer] = None, settle_delay: float = 1.0):
        self.page = page
        self.pacer = pacer or Pacer()
        self.settle_delay = settle_delay

    def click_when_ready(self, handle: Locator, settle: Optional[float] = None) -> bool:
        """Scroll the element into view, click it, then let the page settle."""
        try:
            handle.scroll_into_view_if_needed(timeout=5000)
        except PlaywrightError as e:
            logger.debug(f"scroll_into_view failed, clicking anyway: {e}")

        try:
            handle.click(timeout=5000)
        except PlaywrightError as e:
            logger.debug(f"Native click failed ({e}), dispatching synthetic click.")
            try:
                handle.dispatch_event("click")
            except PlaywrightError as e2:
                logger.warning(f"Click failed: {e2}")
                return False

        self.pacer.sleep(self.settle_delay if settle is None else settle)
        return True

    def type_with_human_delay(
        self,
        handle: Locator,
        text: str,
        delay: float,
        unit: str = "word",
    ) -> bool:
        """
        Append ``text`` fragment by fragment, pausing ``delay`` seconds between
        fragments and firing input/change/keyup after each one.

        Returns True when the target ends up containing the full text.
        """
        try:
            writer = _EditableWriter() if handle.evaluate(IS_EDITABLE_JS) else _FieldWriter()
            handle.click(timeout=5000)
            handle.fill("")

            fragments = split_fragments(text, unit)
            for i, fragment in enumerate(fragments):
                writer.append(handle, fragment)
                if i < len(fragments) - 1:
                    self.pacer.sleep(delay)

            typed = writer.read(handle)
        except PlaywrightError as e:
            logger.warning(f"Typing failed: {e}")
            return False

        if _normalize(text) not in _normalize(typed):
            logger.warning(f"Typed text mismatch ({len(typed)} of {len(text)} chars landed).")
            return False

        logger.debug(f"Typed {len(text)} chars in {len(fragments)} fragments.")
        return True

    def wait_for_document_settled(self, timeout: float, poll: float = 0.25) -> bool:
        """Wait for document.readyState == 'complete'; False once ``timeout`` elapses."""
        attempts = max(1, int(timeout / poll)) if poll > 0 else 1
        for attempt in range(attempts):
            try:
                if self.page.evaluate(READY_STATE_JS) == "complete":
                    return True
            except PlaywrightError as e:
                # Navigation in progress destroys the execution context
                logger.debug(f"readyState check failed: {e}")
            if attempt < attempts - 1:
                self.pacer.sleep(poll)
        logger.debug(f"Document not settled after {timeout}s.")
        return False

    def press_escape(self) -> None:
        try:
            self.page.keyboard.press("Escape")
        except PlaywrightError as e:
            logger.debug(f"Escape failed: {e}")
