"""
Playwright browser launch and login detection.
"""
import logging
from typing import Optional

from playwright.sync_api import BrowserContext, Error as PlaywrightError, Page, sync_playwright

from autoconnect.linkedin.session import SessionStore

logger = logging.getLogger("autoconnect")

LOGIN_URL = "https://www.linkedin.com/login"
FEED_URL = "https://www.linkedin.com/feed/"

LOGGED_IN_DOM_JS = """() => {
    const selectors = [
        '.global-nav',
        'nav.global-nav',
        '#global-nav',
        '[data-test-global-nav]',
        '.scaffold-layout',
        '.search-global-typeahead',
    ];
    return selectors.some(sel => document.querySelector(sel) !== null);
}"""


def launch_browser(session: SessionStore, headless: bool = False):
    """
    Launch Playwright Chromium with anti-detection settings and the saved session.

    Returns:
        (playwright, browser, context, page)
    """
    pw = sync_playwright().start()
    browser = pw.chromium.launch(
        headless=headless,
        slow_mo=100,
        args=[
            "--disable-blink-features=AutomationControlled",
            "--no-sandbox",
            "--disable-dev-shm-usage",
        ],
    )
    context = browser.new_context(
        viewport={"width": 1280, "height": 800},
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        locale="en-US",
        **session.context_options(),
    )
    page = context.new_page()

    # Mask the navigator.webdriver flag
    page.add_init_script(
        "Object.defineProperty(navigator, 'webdriver', {get: () => undefined})"
    )

    logger.info(f"Browser launched (headless={headless}).")
    return pw, browser, context, page


def is_logged_in(page: Page) -> bool:
    """A LinkedIn page that is neither the login form nor the auth wall."""
    try:
        url = page.url.lower()
    except PlaywrightError:
        return False
    if "linkedin.com" not in url:
        return False
    if "login" in url or "authwall" in url or "checkpoint" in url:
        return False
    try:
        return bool(page.evaluate(LOGGED_IN_DOM_JS))
    except PlaywrightError as e:
        logger.debug(f"Login DOM check failed on {url}: {e}")
        # The URL already says we are past the login wall
        return True


def find_logged_in_page(context: BrowserContext) -> Optional[Page]:
    """Check every open tab; the user may have logged in from a new one."""
    for page in context.pages:
        if is_logged_in(page):
            logger.info(f"Login confirmed on {page.url}")
            return page
    return None


def open_feed(page: Page) -> bool:
    """Navigate to the feed and report whether the session is still valid."""
    try:
        page.goto(FEED_URL, wait_until="domcontentloaded", timeout=30000)
    except PlaywrightError as e:
        logger.error(f"Could not open LinkedIn feed: {e}")
        return False
    return is_logged_in(page)


def open_login(page: Page) -> None:
    logger.info("Opening LinkedIn login page for manual login...")
    try:
        page.goto(LOGIN_URL, wait_until="domcontentloaded", timeout=30000)
    except PlaywrightError as e:
        logger.error(f"Could not open LinkedIn login page: {e}")
