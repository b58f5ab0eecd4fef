# enrollment_portal/core/cache.py
"""In-process TTL cache for enrollment records and paged query results."""
import json
import threading
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from ..utils.cache_metrics import CacheMetrics

DEFAULT_TTL = 300  # 5 minutes


class CachedPage(NamedTuple):
    records: List[Dict[str, Any]]
    cursor: Optional[str]
    has_more: bool


class EnrollmentCache:
    """Lazily-expiring cache keyed by record id or by query shape.

    Entries are dropped when read after their TTL; there is no background
    sweep. The cache is only an optimization and may be empty at any time.
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._records: Dict[str, Tuple[Dict[str, Any], float]] = {}
        self._pages: Dict[str, Tuple[CachedPage, float]] = {}
        self.metrics = CacheMetrics()

    @staticmethod
    def make_page_key(
        filters: Dict[str, Any],
        order_by_field: str,
        order_direction: str,
        page_size: int,
        cursor: Optional[str],
        direction: str = "next",
    ) -> str:
        """Deterministic key covering the whole query shape."""
        return json.dumps(
            {
                "filters": {k: v for k, v in sorted(filters.items()) if v is not None},
                "order_by": order_by_field,
                "order": order_direction,
                "size": page_size,
                "cursor": cursor or "start",
                "direction": direction,
            },
            sort_keys=True,
            default=str,
        )

    def _expired(self, created_at: float) -> bool:
        return self._clock() - created_at >= self.ttl

    def set(self, id: str, record: Dict[str, Any]):
        with self._lock:
            self._records[id] = (record, self._clock())

    def get(self, id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._records.get(id)
            if item is None:
                self.metrics.record_miss("record")
                return None
            record, created_at = item
            if self._expired(created_at):
                del self._records[id]
                self.metrics.record_miss("record", expired=True)
                return None
            self.metrics.record_hit("record")
            return record

    def set_page(self, key: str, records: List[Dict[str, Any]], cursor: Optional[str], has_more: bool = False):
        with self._lock:
            self._pages[key] = (CachedPage(list(records), cursor, has_more), self._clock())

    def get_page(self, key: str) -> Optional[CachedPage]:
        with self._lock:
            item = self._pages.get(key)
            if item is None:
                self.metrics.record_miss("page")
                return None
            page, created_at = item
            if self._expired(created_at):
                del self._pages[key]
                self.metrics.record_miss("page", expired=True)
                return None
            self.metrics.record_hit("page")
            return page

    def invalidate(self):
        """Drop every cached record and page."""
        with self._lock:
            self._records.clear()
            self._pages.clear()

    def invalidate_pages(self):
        """Drop cached pages only; single records stay valid."""
        with self._lock:
            self._pages.clear()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            sizes = {"records": len(self._records), "pages": len(self._pages)}
        return {"ttl_seconds": self.ttl, **sizes, **self.metrics.get_stats()}
