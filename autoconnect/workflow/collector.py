"""
Collection engine: scrape profile cards from search results into the queue.

Idle <-> Collecting, not resumable. While collecting it rescans the page on
a fixed interval, or sooner when the page reports a burst of DOM mutations,
and hands every newly seen profile to the consumer immediately. With
``max_pages > 1`` it walks the result pages and stops on its own; with a
single page it keeps watching until ``stop()``.
"""
import logging
import threading
from typing import Callable, Optional

from autoconnect.linkedin.extraction import build_profile
from autoconnect.linkedin.search_page import SearchPage
from autoconnect.services.notifier import Notifier
from autoconnect.workflow.state import Profile
from autoconnect.workflow.timing import CollectionTiming, Pacer

logger = logging.getLogger("autoconnect")


class CollectionEngine:
    def __init__(
        self,
        page: SearchPage,
        consumer: Callable[[list[Profile]], object],
        timing: Optional[CollectionTiming] = None,
        pacer: Optional[Pacer] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.page = page
        self.consumer = consumer
        self.timing = timing or CollectionTiming()
        self.pacer = pacer or Pacer()
        self.notifier = notifier
        self.seen: dict[str, Profile] = {}
        self._stop = threading.Event()
        self._collecting = False

    @property
    def is_collecting(self) -> bool:
        return self._collecting

    def seed(self, profiles: list[Profile]) -> None:
        """Merge already-queued profiles into the seen set so they are not emitted again."""
        for profile in profiles:
            self.seen.setdefault(profile.canonical_url, profile)

    def reset(self, profiles: list[Profile]) -> None:
        """Forget earlier runs: only the given (currently queued) profiles count as seen."""
        self.seen = {profile.canonical_url: profile for profile in profiles}

    def stop(self) -> None:
        self._stop.set()

    def collect(self, max_pages: Optional[int] = None) -> list[Profile]:
        """Blocking collection loop. Returns every profile seen by this engine."""
        if self._collecting:
            logger.warning("Collection already running.")
            return list(self.seen.values())

        pages = max(1, max_pages or self.timing.max_pages)
        self._collecting = True
        self._stop.clear()
        logger.info(f"Collection started on {self.page.url} (pages: {pages})")

        try:
            page_number = self.page.current_page_number()
            pages_visited = 1
            idle_scans = 0
            self.page.watch_mutations()

            while not self._stop.is_set():
                fresh = self.scan_once(page_number)
                idle_scans = 0 if fresh else idle_scans + 1

                if idle_scans >= self.timing.exhausted_after_scans:
                    if pages > 1:
                        if pages_visited >= pages:
                            logger.info(f"Reached page limit ({pages}).")
                            break
                        if not self.paginate(page_number + 1):
                            break
                        page_number += 1
                        pages_visited += 1
                        self.page.watch_mutations()
                    idle_scans = 0
                elif not fresh:
                    # Lazy-loaded lists only render more cards after scrolling
                    self.page.scroll_down()

                self._wait_for_tick()
        finally:
            self._collecting = False

        logger.info(f"Collection finished: {len(self.seen)} profiles.")
        return list(self.seen.values())

    def scan_once(self, page_index: int = 1) -> list[Profile]:
        """One pass over the visible cards; emits and returns only new profiles."""
        raws, source = self.page.scan_cards()
        fresh = []
        for raw in raws:
            profile = build_profile(raw, source, page_index)
            if profile is None or profile.canonical_url in self.seen:
                continue
            self.seen[profile.canonical_url] = profile
            fresh.append(profile)

        if fresh:
            logger.info(f"Collected {len(fresh)} new profiles ({len(self.seen)} total).")
            self._emit(fresh)
        return fresh

    def paginate(self, target: int) -> bool:
        """Move to result page ``target`` and confirm the page really changed."""
        for attempt in range(1, self.timing.pagination_attempts + 1):
            if self._stop.is_set():
                return False
            clicked = self.page.click_page(target) or self.page.click_next()
            if clicked:
                self.page.wait_until_ready()
                current = self.page.current_page_number()
                if current == target:
                    logger.info(f"Moved to results page {target}.")
                    return True
                logger.warning(
                    f"Pagination attempt {attempt}: expected page {target}, on page {current}"
                )
            else:
                logger.warning(f"Pagination attempt {attempt}: no control for page {target}")
            self.pacer.wait(self.timing.scan_interval, self._stop)

        logger.info(f"Falling back to direct navigation for page {target}.")
        if self.page.open_page(target) and self.page.current_page_number() == target:
            return True

        logger.warning(f"Could not reach results page {target}; keeping what was collected.")
        return False

    def _emit(self, profiles: list[Profile]) -> None:
        try:
            self.consumer(profiles)
        except Exception as e:
            logger.error(f"Profile consumer failed: {e}")

        if self.notifier:
            self.notifier.publish(
                "profiles_collected",
                count=len(profiles),
                total=len(self.seen),
                profiles=[p.model_dump(mode="json") for p in profiles],
            )

    def _wait_for_tick(self) -> None:
        """Sleep until the next scan interval, or until the page mutates."""
        interval = self.timing.scan_interval
        poll = self.timing.mutation_poll_interval
        if interval <= 0:
            return
        if poll <= 0 or poll >= interval:
            self.pacer.wait(interval, self._stop)
            return

        baseline = self.page.mutation_count()
        waited = 0.0
        while waited < interval:
            if not self.pacer.wait(poll, self._stop):
                return
            waited += poll
            if self.page.mutation_count() != baseline:
                # Let the burst finish before rescanning
                self.pacer.wait(poll, self._stop)
                return
