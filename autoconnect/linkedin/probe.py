"""
Page probe: find one element among several candidate shapes, with retries.

LinkedIn ships several DOM variants of the same control at once, so every
lookup is an ordered list of Candidates (newest layout first). Each attempt
re-queries the live page; handles are never cached across attempts because
the host page replaces nodes freely.

A miss is a normal outcome: ``locate`` returns None and callers branch on it.
"""
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError, Locator, Page

from autoconnect.workflow.timing import RetryPolicy

logger = logging.getLogger("autoconnect")

# Upper bound on how many matches of one candidate are inspected per attempt
MAX_MATCHES_PER_CANDIDATE = 25

ARIA_STATE_JS = """e => ({
    hidden: !!e.closest('[aria-hidden="true"]'),
    disabled: e.getAttribute('aria-disabled') === 'true'
})"""

PARENT_TEXT_JS = "e => (e.parentElement ? e.parentElement.innerText : '') || ''"


@dataclass(frozen=True)
class Candidate:
    """One structural shape a target element may take.

    ``text`` must match the element's own text or aria-label, ``sibling_text``
    must match the text of its parent (label next to an icon button, etc).
    Both are case-insensitive regular expressions.
    """

    selector: str
    text: Optional[str] = None
    sibling_text: Optional[str] = None


@dataclass(frozen=True)
class Constraints:
    visible: bool = True
    enabled: bool = True
    text: Optional[Callable[[str], bool]] = None


class PageProbe:
    """Locates elements on a Playwright page using ordered candidates."""

    def __init__(
        self,
        page: Page,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.page = page
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def locate(
        self,
        candidates: Sequence[Candidate],
        constraints: Optional[Constraints] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> Optional[Locator]:
        """Poll until a candidate matches or the retry policy is exhausted."""
        policy = policy or self.policy
        constraints = constraints or Constraints()
        attempts = max(1, policy.max_attempts)

        for attempt in range(1, attempts + 1):
            found = self.find_now(candidates, constraints)
            if found is not None:
                if attempt > 1:
                    logger.debug(f"Probe matched on attempt {attempt}/{attempts}")
                return found
            if attempt < attempts:
                self._sleep(policy.delay())

        logger.debug(
            f"Probe found nothing after {attempts} attempts: "
            f"{[c.selector for c in candidates]}"
        )
        return None

    def find_now(
        self,
        candidates: Sequence[Candidate],
        constraints: Optional[Constraints] = None,
    ) -> Optional[Locator]:
        """Single pass over the candidates against the live page."""
        constraints = constraints or Constraints()
        for candidate in candidates:
            try:
                matches = self.page.locator(candidate.selector)
                count = matches.count()
            except PlaywrightError as e:
                logger.debug(f"Probe selector {candidate.selector!r} failed: {e}")
                continue

            for i in range(min(count, MAX_MATCHES_PER_CANDIDATE)):
                element = matches.nth(i)
                if self._accepts(element, candidate, constraints):
                    return element
        return None

    def _accepts(self, element: Locator, candidate: Candidate, constraints: Constraints) -> bool:
        # Elements can detach between count() and the checks below
        try:
            if constraints.visible and not element.is_visible():
                return False
            if constraints.visible or constraints.enabled:
                aria = element.evaluate(ARIA_STATE_JS) or {}
                if constraints.visible and aria.get("hidden"):
                    return False
                if constraints.enabled and (aria.get("disabled") or not element.is_enabled()):
                    return False

            if candidate.text or constraints.text:
                text, aria_label = element_labels(element)
                label = f"{text} {aria_label}".strip()
                if candidate.text and not any(
                    re.search(candidate.text, value, re.I) for value in (text, aria_label, label)
                ):
                    return False
                if constraints.text and not constraints.text(label):
                    return False

            if candidate.sibling_text:
                around = element.evaluate(PARENT_TEXT_JS) or ""
                if not re.search(candidate.sibling_text, around, re.I):
                    return False
        except PlaywrightError:
            return False
        return True


def element_labels(element: Locator) -> tuple[str, str]:
    """(visible text, aria-label); icon buttons keep their name in the latter."""
    text = (element.inner_text() or "").strip()
    aria_label = (element.get_attribute("aria-label") or "").strip()
    return text, aria_label


def accessible_text(element: Locator) -> str:
    """Visible text plus aria-label, as one string."""
    return " ".join(part for part in element_labels(element) if part)
