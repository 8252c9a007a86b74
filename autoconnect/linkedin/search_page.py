"""
Search-results page driver used by the collection engine.

Card scanning runs as one JavaScript pass that copies raw text and hrefs
out of every result card (LinkedIn's class names are obfuscated and change
often, so the layout tables in ``selectors`` drive it). Cleaning and
validation happen in Python, in ``extraction``.
"""
import logging
from dataclasses import asdict
from typing import Optional

from playwright.sync_api import Error as PlaywrightError, Page

from autoconnect.linkedin.actions import ActionPrimitives
from autoconnect.linkedin.probe import PageProbe
from autoconnect.linkedin.selectors import (
    ALTERNATIVE_LAYOUT,
    ALTERNATIVE_LIMIT,
    CURRENT_PAGE_JS,
    NEXT_PAGE,
    CardLayout,
    layout_for_url,
    page_button_candidates,
)
from autoconnect.linkedin.urls import page_param, with_page
from autoconnect.workflow.state import ProfileSource
from autoconnect.workflow.timing import RetryPolicy

logger = logging.getLogger("autoconnect")

SCAN_CARDS_JS = """(layout) => {
    const text = el => el ? (el.innerText || el.textContent || '').trim() : '';
    const pick = (root, selectors) => {
        for (const sel of selectors) {
            try {
                const el = root.querySelector(sel);
                if (el) return el;
            } catch (e) { /* unsupported selector in this browser */ }
        }
        return null;
    };
    const hrefOf = el => {
        if (!el) return '';
        const a = el.tagName === 'A' ? el : el.closest('a');
        return a ? a.href : '';
    };

    // First container shape that matches anything wins
    let cards = [];
    for (const sel of layout.containers) {
        try {
            const found = document.querySelectorAll(sel);
            if (found.length) { cards = Array.from(found); break; }
        } catch (e) { /* skip */ }
    }

    const linkSelector = 'a[href*="' + layout.link_pattern + '"]';
    return cards.map(card => {
        const link = pick(card, layout.name_links);
        const span = pick(card, layout.name_spans);
        const spanLink = span ? (span.closest('a') || card.querySelector(linkSelector)) : null;
        const publicLink = card.querySelector('a[href*="/in/"]');
        const img = pick(card, layout.images);
        return {
            name: text(link),
            href: hrefOf(link),
            span_name: text(span),
            span_href: spanLink ? spanLink.href : '',
            public_href: publicLink ? publicLink.href : '',
            title: text(pick(card, layout.titles)),
            location: text(pick(card, layout.locations)),
            image: img ? (img.currentSrc || img.src || '') : '',
            links: Array.from(card.querySelectorAll(linkSelector)).slice(0, 5)
                .map(a => ({ text: text(a), href: a.href })),
        };
    });
}"""

INSTALL_OBSERVER_JS = """() => {
    if (window.__autoconnectObserver) return true;
    window.__autoconnectMutations = 0;
    window.__autoconnectObserver = new MutationObserver(mutations => {
        for (const m of mutations) {
            if (m.addedNodes && m.addedNodes.length) {
                window.__autoconnectMutations += 1;
                break;
            }
        }
    });
    window.__autoconnectObserver.observe(document.body, { childList: true, subtree: true });
    return true;
}"""

MUTATION_COUNT_JS = "() => window.__autoconnectMutations || 0"

SCROLL_JS = "() => window.scrollBy(0, Math.floor(window.innerHeight * 0.8))"


class SearchPage:
    def __init__(
        self,
        page: Page,
        probe: PageProbe,
        actions: ActionPrimitives,
        settle_timeout: float = 15.0,
    ):
        self.page = page
        self.probe = probe
        self.actions = actions
        self.settle_timeout = settle_timeout
        # Pagination controls either exist right away or not at all
        self._quick = RetryPolicy(max_attempts=3, interval=0.5)

    @property
    def url(self) -> str:
        return self.page.url

    def scan_cards(self) -> tuple[list[dict], ProfileSource]:
        """Raw card data for every visible result, and which layout produced it."""
        layout = layout_for_url(self.url)
        raws = self._scan(layout)
        if raws:
            return raws, ProfileSource(layout.source)

        raws = self._scan(ALTERNATIVE_LAYOUT)[:ALTERNATIVE_LIMIT]
        if raws:
            logger.debug(f"Primary card layouts empty, alternative pass found {len(raws)}")
        return raws, ProfileSource.ALTERNATIVE

    def _scan(self, layout: CardLayout) -> list[dict]:
        try:
            return self.page.evaluate(SCAN_CARDS_JS, asdict(layout)) or []
        except PlaywrightError as e:
            logger.debug(f"Card scan failed: {e}")
            return []

    def watch_mutations(self) -> None:
        try:
            self.page.evaluate(INSTALL_OBSERVER_JS)
        except PlaywrightError as e:
            logger.debug(f"Could not install mutation observer: {e}")

    def mutation_count(self) -> int:
        try:
            return int(self.page.evaluate(MUTATION_COUNT_JS) or 0)
        except PlaywrightError:
            return 0

    def scroll_down(self) -> None:
        try:
            self.page.evaluate(SCROLL_JS)
        except PlaywrightError as e:
            logger.debug(f"Scroll failed: {e}")

    def wait_until_ready(self) -> bool:
        return self.actions.wait_for_document_settled(self.settle_timeout)

    # --- Pagination ---

    def current_page_number(self) -> int:
        """Active pagination button first, then the ?page= parameter, else 1."""
        try:
            marker = self.page.evaluate(CURRENT_PAGE_JS)
        except PlaywrightError:
            marker = None
        if marker and str(marker).strip().isdigit():
            return int(str(marker).strip())
        return page_param(self.url) or 1

    def click_page(self, page_number: int) -> bool:
        button = self.probe.locate(page_button_candidates(page_number), policy=self._quick)
        if button is None:
            return False
        return self.actions.click_when_ready(button)

    def click_next(self) -> bool:
        button = self.probe.locate(NEXT_PAGE, policy=self._quick)
        if button is None:
            return False
        return self.actions.click_when_ready(button)

    def open_page(self, page_number: int, base_url: Optional[str] = None) -> bool:
        target = with_page(base_url or self.url, page_number)
        try:
            self.page.goto(target, wait_until="domcontentloaded", timeout=30000)
        except PlaywrightError as e:
            logger.warning(f"Direct navigation to page {page_number} failed: {e}")
            return False
        self.wait_until_ready()
        return True
