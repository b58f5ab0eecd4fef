# enrollment_portal/utils/cache_metrics.py
"""Hit/miss counters for the enrollment cache, split by entry kind."""
from collections import Counter
from typing import Any, Dict

ENTRY_KINDS = ("record", "page")


class CacheMetrics:
    def __init__(self):
        self.hits: Counter = Counter()
        self.misses: Counter = Counter()
        self.expired: Counter = Counter()

    def record_hit(self, kind: str):
        self.hits[kind] += 1

    def record_miss(self, kind: str, expired: bool = False):
        self.misses[kind] += 1
        if expired:
            self.expired[kind] += 1

    def get_stats(self) -> Dict[str, Any]:
        hits = sum(self.hits.values())
        total_requests = hits + sum(self.misses.values())
        hit_rate = (hits / total_requests * 100) if total_requests > 0 else 0
        return {
            "hits": hits,
            "misses": sum(self.misses.values()),
            "expired": sum(self.expired.values()),
            "total_requests": total_requests,
            "hit_rate_percent": round(hit_rate, 2),
            "by_kind": {
                kind: {"hits": self.hits[kind], "misses": self.misses[kind]}
                for kind in ENTRY_KINDS
            },
        }
