# enrollment_portal/services/subscriptions.py
"""Live query listeners, at most one per canonical filter key."""
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


def listener_key(filters: Optional[Dict[str, Any]]) -> str:
    """Canonical serialization of a filter set; unset keys are ignored."""
    filters = filters or {}
    return json.dumps(
        {k: v for k, v in filters.items() if v is not None},
        sort_keys=True,
        default=str,
    )


class ListenerRegistry:
    """Owns active watches.

    Registering a key that is already active unsubscribes the previous watch
    first. Every registration returns a disposer; a disposer for a watch that
    has since been replaced is a no-op.
    """

    def __init__(self):
        self._listeners: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, key: str, start: Callable[[], Any]) -> Callable[[], None]:
        with self._lock:
            previous = self._listeners.pop(key, None)
        if previous is not None:
            logger.debug(f"Replacing listener {key}")
            previous.unsubscribe()

        watch = start()
        with self._lock:
            self._listeners[key] = watch

        def dispose():
            with self._lock:
                if self._listeners.get(key) is not watch:
                    return
                del self._listeners[key]
            watch.unsubscribe()

        return dispose

    def active_keys(self) -> List[str]:
        with self._lock:
            return list(self._listeners)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def close_all(self):
        with self._lock:
            watches = list(self._listeners.values())
            self._listeners.clear()
        for watch in watches:
            watch.unsubscribe()
        if watches:
            logger.info(f"Closed {len(watches)} live listener(s)")
