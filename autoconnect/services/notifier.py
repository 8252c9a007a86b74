"""
Fire-and-forget notification channel.

Components publish events ("profiles_collected", "status", ...) without
knowing who listens. Subscribers may be absent or broken; a failing
subscriber never affects the publisher. The last few events are kept for
clients that poll.
"""
import logging
import threading
from collections import deque
from datetime import datetime
from typing import Callable, Optional

logger = logging.getLogger("autoconnect")

Subscriber = Callable[[dict], None]


class Notifier:
    def __init__(self, history: int = 200):
        self._subscribers: list[Subscriber] = []
        self._events: deque = deque(maxlen=history)
        self._lock = threading.Lock()
        self._seq = 0

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, kind: str, **payload) -> None:
        with self._lock:
            self._seq += 1
            event = {
                "id": self._seq,
                "kind": kind,
                "at": datetime.utcnow().isoformat(),
                **payload,
            }
            self._events.append(event)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.debug(f"Notification subscriber failed on {kind}: {e}")

    def recent(self, after: Optional[int] = None) -> list[dict]:
        with self._lock:
            events = list(self._events)
        if after is None:
            return events
        return [e for e in events if e["id"] > after]


# Global notifier
notifier = Notifier()
