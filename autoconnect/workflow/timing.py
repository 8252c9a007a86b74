"""
Timing parameters and interruptible pacing.

All multi-second waits in the automation core are anti-detection heuristics,
so they live here as explicit values built from settings instead of literals
scattered through the engines.
"""
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from autoconnect.config import settings


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded polling policy used by the page probe."""

    max_attempts: int = 10
    interval: float = 0.5
    jitter: float = 0.0

    def delay(self) -> float:
        if self.jitter <= 0:
            return self.interval
        return max(0.0, self.interval + random.uniform(-self.jitter, self.jitter))

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.probe_attempts,
            interval=settings.probe_interval,
            jitter=settings.probe_jitter,
        )


@dataclass(frozen=True)
class WorkflowTiming:
    inter_profile_delay: float = 0.0
    inter_profile_jitter: float = 0.0
    typing_total_seconds: float = 0.0
    post_fill_delay: float = 0.0
    send_verify_timeout: float = 0.0
    page_settle_timeout: float = 0.0
    completion_return_delay: float = 0.0
    daily_limit: int = 0  # 0 = unlimited
    note_max_chars: int = 300

    def next_profile_delay(self) -> float:
        if self.inter_profile_jitter <= 0:
            return self.inter_profile_delay
        spread = random.uniform(-self.inter_profile_jitter, self.inter_profile_jitter)
        return max(0.0, self.inter_profile_delay + spread)

    def per_word_delay(self, text: str) -> float:
        """Spread the total typing time evenly over the words of ``text``."""
        words = len(text.split()) or 1
        return self.typing_total_seconds / words

    @classmethod
    def from_settings(cls) -> "WorkflowTiming":
        return cls(
            inter_profile_delay=settings.inter_profile_delay,
            inter_profile_jitter=settings.inter_profile_jitter,
            typing_total_seconds=settings.typing_total_seconds,
            post_fill_delay=settings.post_fill_delay,
            send_verify_timeout=settings.send_verify_timeout,
            page_settle_timeout=settings.page_settle_timeout,
            completion_return_delay=settings.completion_return_delay,
            daily_limit=settings.daily_limit,
            note_max_chars=settings.connection_note_max_chars,
        )


@dataclass(frozen=True)
class CollectionTiming:
    scan_interval: float = 0.0
    mutation_poll_interval: float = 0.0
    exhausted_after_scans: int = 3
    max_pages: int = 1
    pagination_attempts: int = 3
    page_settle_timeout: float = 0.0

    @classmethod
    def from_settings(cls) -> "CollectionTiming":
        return cls(
            scan_interval=settings.collection_scan_interval,
            mutation_poll_interval=settings.mutation_poll_interval,
            exhausted_after_scans=settings.exhausted_after_scans,
            max_pages=settings.max_pages,
            pagination_attempts=settings.pagination_attempts,
            page_settle_timeout=settings.page_settle_timeout,
        )


class Pacer:
    """
    Blocking sleeps that can be cut short.

    ``wait`` sleeps in small slices and returns False as soon as the cancel
    event is set, so a pause takes effect within one slice. Resuming always
    starts a fresh wait.
    """

    def __init__(self, sleep: Callable[[float], None] = time.sleep, slice_seconds: float = 0.25):
        self._sleep = sleep
        self.slice_seconds = slice_seconds

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    def wait(self, seconds: float, cancel: Optional[threading.Event] = None) -> bool:
        if cancel is None:
            self.sleep(seconds)
            return True
        if cancel.is_set():
            return False
        remaining = seconds
        while remaining > 0:
            step = min(self.slice_seconds, remaining)
            self._sleep(step)
            remaining -= step
            if cancel.is_set():
                return False
        return True
