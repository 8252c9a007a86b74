"""
Idempotent component registry.

Components bound to a browser page (engines, drivers, the on-page status
badge) are created once per stable key. Asking again returns the existing
instance instead of building a second one.
"""
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger("autoconnect")


class ComponentRegistry:
    def __init__(self):
        self._components: dict[str, Any] = {}
        self._lock = threading.RLock()

    def get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        with self._lock:
            if key not in self._components:
                self._components[key] = factory()
                logger.debug(f"Registered component {key}")
            return self._components[key]

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._components.get(key)

    def discard(self, key: str) -> None:
        with self._lock:
            self._components.pop(key, None)


# Global registry
registry = ComponentRegistry()
