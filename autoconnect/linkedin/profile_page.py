"""
Profile page driver used by the workflow engine.

Wraps the page probe and action primitives into the handful of steps the
engine needs on a profile (or Sales Navigator lead) page. Every method
returns gracefully on failure (None, False, or a verdict value).
"""
import logging
import re
from enum import Enum
from typing import Optional

from playwright.sync_api import Error as PlaywrightError, Locator, Page

from autoconnect.linkedin.actions import ActionPrimitives
from autoconnect.linkedin.probe import Constraints, PageProbe
from autoconnect.linkedin.selectors import (
    ACTION_MENU,
    ADD_NOTE,
    CANONICAL_LINK_JS,
    COMPOSE_OPEN,
    CONNECT_IN_MENU,
    CONNECT_PRIMARY,
    COPY_PROFILE_LINK,
    NOTE_INPUT,
    SECURITY_CHALLENGE,
    SEND_ERROR,
    SEND_INVITATION,
    SEND_SUCCESS,
)
from autoconnect.linkedin.urls import canonicalize_url, is_public_profile_url, same_profile
from autoconnect.workflow.timing import Pacer, RetryPolicy

logger = logging.getLogger("autoconnect")

INDICATOR_JS = """(text) => {
    let el = document.getElementById('autoconnect-indicator');
    if (!el) {
        el = document.createElement('div');
        el.id = 'autoconnect-indicator';
        el.style.cssText = 'position:fixed;bottom:16px;right:16px;z-index:2147483647;' +
            'padding:6px 10px;background:#0a66c2;color:#fff;font:12px sans-serif;border-radius:4px';
        document.body.appendChild(el);
    }
    el.textContent = text;
}"""

# Presence checks, not interaction targets
PASSIVE = Constraints(enabled=False)


class NavigationResult(str, Enum):
    OK = "ok"
    FAILED = "failed"
    LOGIN_REQUIRED = "login_required"


class SendVerdict(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    AMBIGUOUS = "ambiguous"


class ProfilePage:
    def __init__(
        self,
        page: Page,
        probe: PageProbe,
        actions: ActionPrimitives,
        settle_timeout: float = 15.0,
        pacer: Optional[Pacer] = None,
    ):
        self.page = page
        self.probe = probe
        self.actions = actions
        self.settle_timeout = settle_timeout
        self.pacer = pacer or Pacer()
        # Secondary controls are either rendered with the dialog or missing
        self._quick = RetryPolicy(max_attempts=3, interval=0.5)

    # --- Navigation ---

    def current_url(self) -> str:
        return self.page.url

    def is_showing(self, url: str) -> bool:
        return same_profile(self.page.url, url)

    def open(self, url: str) -> NavigationResult:
        """Navigate to a profile URL."""
        try:
            logger.debug(f"Navigating to {url}")
            self.page.goto(url, wait_until="domcontentloaded", timeout=30000)
        except PlaywrightError as e:
            logger.error(f"Navigation failed for {url}: {e}")
            return NavigationResult.FAILED

        current_url = self.page.url.lower()
        if "linkedin.com/login" in current_url or "linkedin.com/authwall" in current_url:
            logger.error("Redirected to login page. Session may have expired.")
            return NavigationResult.LOGIN_REQUIRED

        try:
            not_found = self.page.locator("text=/page doesn.*t exist|profile.*not found/i")
            if not_found.first.is_visible(timeout=1000):
                logger.error(f"Profile not found: {url}")
                return NavigationResult.FAILED
        except PlaywrightError:
            pass

        return NavigationResult.OK

    def wait_until_ready(self) -> bool:
        return self.actions.wait_for_document_settled(self.settle_timeout)

    def detect_security_challenge(self) -> bool:
        """Check if LinkedIn is showing a CAPTCHA or security verification."""
        current_url = self.page.url.lower()
        if any(term in current_url for term in ("checkpoint", "challenge", "/security")):
            logger.critical("Security challenge detected in URL!")
            return True
        if self.probe.find_now(SECURITY_CHALLENGE, PASSIVE) is not None:
            logger.critical("Security challenge detected on page!")
            return True
        return False

    # --- Action menu and identity ---

    def find_action_menu(self) -> Optional[Locator]:
        return self.probe.locate(ACTION_MENU)

    def is_pending(self) -> bool:
        """Check if a connection request is already pending."""
        try:
            pending = self.page.get_by_role("button", name=re.compile(r"Pending", re.I))
            return pending.first.is_visible(timeout=1000)
        except PlaywrightError:
            return False

    def capture_canonical_url(self, menu: Optional[Locator]) -> Optional[str]:
        """Resolve the public /in/ URL of the person shown on this page."""
        try:
            for href in self.page.evaluate(CANONICAL_LINK_JS) or []:
                url = canonicalize_url(href)
                if is_public_profile_url(url):
                    return url
        except PlaywrightError as e:
            logger.debug(f"Canonical link lookup failed: {e}")

        url = canonicalize_url(self.page.url)
        if is_public_profile_url(url):
            return url

        # Lead pages only expose the public profile inside the overflow menu
        if menu is not None and self.actions.click_when_ready(menu):
            link = self.probe.locate(COPY_PROFILE_LINK, PASSIVE, policy=self._quick)
            href = None
            if link is not None:
                try:
                    href = link.get_attribute("href")
                except PlaywrightError:
                    href = None
            self.actions.press_escape()
            url = canonicalize_url(href or "")
            if is_public_profile_url(url):
                return url

        return None

    # --- Connect dialog ---

    def find_note_input(self, menu: Optional[Locator]) -> Optional[Locator]:
        """Open the connect dialog, ask for a note, and return the note field."""
        connect = self.probe.locate(CONNECT_PRIMARY, policy=self._quick)
        if connect is None and menu is not None:
            if self.actions.click_when_ready(menu):
                connect = self.probe.locate(CONNECT_IN_MENU, policy=self._quick)
        if connect is None:
            logger.error("Could not find Connect button on profile.")
            return None
        if not self.actions.click_when_ready(connect):
            return None

        add_note = self.probe.locate(ADD_NOTE, policy=self._quick)
        if add_note is not None:
            self.actions.click_when_ready(add_note)

        note_input = self.probe.locate(NOTE_INPUT)
        if note_input is None:
            logger.error("Note input not found in connect dialog.")
        return note_input

    def type_note(self, handle: Locator, text: str, per_word_delay: float) -> bool:
        return self.actions.type_with_human_delay(handle, text, per_word_delay, unit="word")

    def find_send_control(self) -> Optional[Locator]:
        return self.probe.locate(SEND_INVITATION)

    def click_send(self, handle: Locator) -> bool:
        return self.actions.click_when_ready(handle)

    def verify_sent(self, timeout: float, poll: float = 0.5) -> SendVerdict:
        """Poll for a success signal, an error signal, or the dialog closing."""
        polls = max(1, int(timeout / poll)) if poll > 0 else 1
        for i in range(polls):
            if self.probe.find_now(SEND_SUCCESS, PASSIVE) is not None:
                return SendVerdict.SENT
            if self.probe.find_now(SEND_ERROR, PASSIVE) is not None:
                return SendVerdict.FAILED
            if self.probe.find_now(COMPOSE_OPEN, PASSIVE) is None:
                return SendVerdict.SENT
            if i < polls - 1:
                self.pacer.sleep(poll)
        return SendVerdict.AMBIGUOUS

    def dismiss_dialogs(self) -> None:
        self.actions.press_escape()

    # --- Status badge ---

    def show_status(self, text: str) -> None:
        try:
            self.page.evaluate(INDICATOR_JS, text)
        except PlaywrightError as e:
            logger.debug(f"Status badge update failed: {e}")
