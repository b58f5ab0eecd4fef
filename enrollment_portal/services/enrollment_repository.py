# enrollment_portal/services/enrollment_repository.py
"""Enrollment data access: Firestore reads and writes behind a TTL cache.

Reads go through :class:`EnrollmentCache` and :class:`EnrollmentQueryBuilder`.
When Firestore rejects a filtered + ordered query because the composite index
is missing, the same filters are re-run without ordering and the result is
sorted and paged in memory.

Writes are not retried. Create drops cached pages; every other write drops
the whole cache.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ..core.cache import EnrollmentCache
from ..core.config import settings
from ..core.database import ARCHIVED_ENROLLMENTS, ENROLLMENTS, get_sync_client
from ..core.encryption import name_search_hash
from ..core.exceptions import InvalidCursorError, InvalidUpdateError, NotFoundError
from ..core.performance_monitor import monitor_performance
from ..core.security_utils import sanitize_record
from ..schemas.enrollment_schemas import ENROLLMENT_STATUSES
from .query_builder import EnrollmentQueryBuilder, slice_after_cursor, sort_records, store_direction
from .subscriptions import ListenerRegistry, listener_key

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("fullName", "lrn", "userEmail", "contactNumber")
# Never written from caller-supplied data
READ_ONLY_FIELDS = ("id", "submittedAt")


def as_datetime(value: Any) -> Optional[datetime]:
    """Store timestamps come back as aware datetimes; accept ISO strings too."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _to_record(snapshot) -> Dict[str, Any]:
    return {**(snapshot.to_dict() or {}), "id": snapshot.id}


class EnrollmentRepository:
    def __init__(
        self,
        db,
        cache: Optional[EnrollmentCache] = None,
        watch_client_factory: Optional[Callable[[], Any]] = None,
        archive_strategy: Optional[str] = None,
        search_prefetch_limit: Optional[int] = None,
    ):
        self.db = db
        self.collection = db.collection(ENROLLMENTS)
        self.archive_collection = db.collection(ARCHIVED_ENROLLMENTS)
        self.cache = cache or EnrollmentCache(ttl=settings.cache_ttl)
        self.queries = EnrollmentQueryBuilder(self.collection)
        self.listeners = ListenerRegistry()
        self.archive_strategy = archive_strategy or settings.archive_strategy
        self.search_prefetch_limit = search_prefetch_limit or settings.search_prefetch_limit
        self._watch_client_factory = watch_client_factory or get_sync_client

    # ------------------------------------------------------------------ reads

    @monitor_performance("enrollments.get_by_id")
    async def get_by_id(self, id: str) -> Optional[Dict[str, Any]]:
        cached = self.cache.get(id)
        if cached is not None:
            return cached

        snapshot = await self.collection.document(id).get()
        if not snapshot.exists:
            return None
        record = _to_record(snapshot)
        self.cache.set(id, record)
        return record

    async def _ordered(
        self,
        base_query,
        order_by_field: str = "submittedAt",
        order_direction: str = "desc",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run ``base_query`` ordered, or sort in memory if the index is missing."""
        query = base_query.order_by(order_by_field, direction=store_direction(order_direction))
        if limit:
            query = query.limit(limit)
        try:
            return [_to_record(s) for s in await query.get()]
        except gcp_exceptions.FailedPrecondition as e:
            logger.warning(f"Missing index for ordering by {order_by_field}, sorting in memory: {e}")
            records = sort_records([_to_record(s) for s in await base_query.get()], order_by_field, order_direction)
            return records[:limit] if limit else records

    @monitor_performance("enrollments.get_all")
    async def get_all(self, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Every matching enrollment, newest first."""
        return await self._ordered(self.queries.apply_filters(filters), limit=limit)

    async def get_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        base = self.collection.where(filter=FieldFilter("userId", "==", user_id))
        return await self._ordered(base)

    async def get_by_status(self, status: str, limit: int = 20) -> List[Dict[str, Any]]:
        return await self._ordered(self.queries.apply_filters({"status": status}), limit=limit)

    async def find_by_name_hash(self, full_name: str) -> List[Dict[str, Any]]:
        """Candidates whose stored name hash matches; collisions are possible."""
        base = self.collection.where(filter=FieldFilter("_searchHash", "==", name_search_hash(full_name)))
        return [_to_record(s) for s in await base.get()]

    async def _cursor_snapshot(self, cursor: Optional[str]):
        if not cursor:
            return None
        snapshot = await self.collection.document(cursor).get()
        if not snapshot.exists:
            raise InvalidCursorError(cursor)
        return snapshot

    @monitor_performance("enrollments.paginate")
    async def paginate(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by_field: str = "submittedAt",
        order_direction: str = "desc",
        page_size: int = 20,
        cursor: Optional[str] = None,
        direction: str = "next",
    ) -> Dict[str, Any]:
        """One page of enrollments.

        ``cursor`` is the id of the last record of the previous page (``next``)
        or the first record of the current page (``prev``). ``has_more`` tells
        whether more records exist beyond the page in the requested direction.
        """
        filters = {k: v for k, v in (filters or {}).items() if k != "searchTerm"}
        key = EnrollmentCache.make_page_key(filters, order_by_field, order_direction, page_size, cursor, direction)
        cached = self.cache.get_page(key)
        if cached is not None:
            return self._page(cached.records, cached.has_more, page_size)

        reverse = direction == "prev"
        fetch_size = page_size + 1
        start_after = await self._cursor_snapshot(cursor)
        query = self.queries.build(
            filters, order_by_field, order_direction,
            limit=fetch_size, start_after=start_after, reverse=reverse,
        )
        try:
            records = [_to_record(s) for s in await query.get()]
        except gcp_exceptions.FailedPrecondition as e:
            logger.warning(f"Missing composite index, paginating in memory: {e}")
            effective_direction = order_direction
            if reverse:
                effective_direction = "asc" if order_direction == "desc" else "desc"
            records = sort_records(
                [_to_record(s) for s in await self.queries.build_unordered(filters).get()],
                order_by_field, effective_direction,
            )
            cursor_record = _to_record(start_after) if start_after is not None else None
            records = slice_after_cursor(records, cursor_record, order_by_field, effective_direction)[:fetch_size]

        has_more = len(records) > page_size
        records = records[:page_size]
        if reverse:
            records.reverse()

        for record in records:
            self.cache.set(record["id"], record)
        last_id = records[-1]["id"] if records else None
        self.cache.set_page(key, records, last_id, has_more)
        return self._page(records, has_more, page_size)

    @staticmethod
    def _page(records: List[Dict[str, Any]], has_more: bool, page_size: int) -> Dict[str, Any]:
        return {
            "items": list(records),
            "cursor": records[-1]["id"] if records else None,
            "first_cursor": records[0]["id"] if records else None,
            "has_more": has_more,
            "page_size": page_size,
        }

    @monitor_performance("enrollments.search")
    async def search(
        self,
        term: str,
        filters: Optional[Dict[str, Any]] = None,
        page_size: int = 10,
        decode: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """Substring search over name, LRN, email and contact number.

        Only the first ``search_prefetch_limit`` filtered documents are
        scanned. ``decode`` runs on each record before matching (for example
        to decrypt protected fields). Exact field matches rank first, then
        newest submissions.
        """
        term = (term or "").strip()
        if len(term) < 2:
            return []
        needle = term.lower()

        query = self.queries.build_unordered(filters, limit=self.search_prefetch_limit)
        matches = []
        for snapshot in await query.get():
            record = _to_record(snapshot)
            if decode is not None:
                record = decode(record)
            values = [str(record.get(field) or "").lower() for field in SEARCH_FIELDS]
            if any(needle in value for value in values):
                matches.append((needle in values, record))

        matches.sort(key=lambda m: as_datetime(m[1].get("submittedAt")) or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        matches.sort(key=lambda m: not m[0])
        return [record for _, record in matches[:page_size]]

    @monitor_performance("enrollments.count")
    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        query = self.queries.apply_filters(filters)
        try:
            result = await query.count().get()
            return int(result[0][0].value)
        except gcp_exceptions.GoogleAPICallError as e:
            logger.warning(f"Aggregation count failed, counting documents: {e}")
            return len(await query.get())

    @monitor_performance("enrollments.stats")
    async def get_stats(self, school_year: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        records = await self.get_all({"schoolYear": school_year})
        now = now or datetime.now(timezone.utc)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = now - timedelta(days=7)

        stats = {
            "total": len(records),
            "byStatus": {status: 0 for status in ENROLLMENT_STATUSES},
            "byType": {"junior": 0, "senior": 0},
            "todayCount": 0,
            "weekCount": 0,
        }
        for record in records:
            if record.get("status") in stats["byStatus"]:
                stats["byStatus"][record["status"]] += 1
            if record.get("type") in stats["byType"]:
                stats["byType"][record["type"]] += 1
            submitted = as_datetime(record.get("submittedAt"))
            if submitted is None:
                continue
            if submitted >= today_start:
                stats["todayCount"] += 1
            if submitted >= week_ago:
                stats["weekCount"] += 1
        return stats

    async def get_recent_activity(self, days: int = 7, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Per-day submission, verified and rejected counts, oldest day first."""
        now = now or datetime.now(timezone.utc)
        activity = {
            (now - timedelta(days=i)).date().isoformat(): {"count": 0, "verified": 0, "rejected": 0}
            for i in range(days)
        }
        for record in await self.get_all():
            submitted = as_datetime(record.get("submittedAt"))
            if submitted is None:
                continue
            day = activity.get(submitted.astimezone(timezone.utc).date().isoformat())
            if day is None:
                continue
            day["count"] += 1
            if record.get("status") in ("verified", "rejected"):
                day[record["status"]] += 1
        return [{"date": date, **counts} for date, counts in sorted(activity.items())]

    # ----------------------------------------------------------------- writes

    @staticmethod
    def _write_payload(data: Dict[str, Any]) -> Dict[str, Any]:
        payload = sanitize_record({k: v for k, v in data.items() if k not in READ_ONLY_FIELDS})
        payload["updatedAt"] = firestore.SERVER_TIMESTAMP
        return payload

    @monitor_performance("enrollments.create")
    async def create(self, data: Dict[str, Any]) -> str:
        payload = self._write_payload(data)
        payload["submittedAt"] = firestore.SERVER_TIMESTAMP
        _, ref = await self.collection.add(payload)
        self.cache.invalidate_pages()
        logger.info(f"Created enrollment {ref.id}")
        return ref.id

    @monitor_performance("enrollments.update")
    async def update(self, id: str, data: Dict[str, Any]):
        """Merge ``data`` into the record. ``type`` and the owner cannot change."""
        if "userId" in data:
            raise InvalidUpdateError("Enrollment owner cannot be changed")
        if "type" in data:
            current = await self.get_by_id(id)
            if current is None:
                raise NotFoundError("Enrollment", id)
            if data["type"] != current.get("type"):
                raise InvalidUpdateError("Enrollment type cannot be changed")
        await self.collection.document(id).update(self._write_payload(data))
        self.cache.invalidate()

    async def update_status(self, id: str, status: str, extra: Optional[Dict[str, Any]] = None):
        if status not in ENROLLMENT_STATUSES:
            raise InvalidUpdateError(f"Unknown status: {status}")
        await self.update(id, {**(extra or {}), "status": status})

    @monitor_performance("enrollments.delete")
    async def delete(self, id: str):
        await self.collection.document(id).delete()
        self.cache.invalidate()
        logger.info(f"Deleted enrollment {id}")

    async def batch_update(self, updates: Iterable[Tuple[str, Dict[str, Any]]]):
        """Apply partial updates atomically."""
        batch = self.db.batch()
        for id, data in updates:
            if "type" in data:
                raise InvalidUpdateError("Enrollment type cannot be changed")
            if "userId" in data:
                raise InvalidUpdateError("Enrollment owner cannot be changed")
            if "status" in data and data["status"] not in ENROLLMENT_STATUSES:
                raise InvalidUpdateError(f"Unknown status: {data['status']}")
            batch.update(self.collection.document(id), self._write_payload(data))
        await batch.commit()
        self.cache.invalidate()

    async def batch_delete(self, ids: Iterable[str]):
        batch = self.db.batch()
        for id in ids:
            batch.delete(self.collection.document(id))
        await batch.commit()
        self.cache.invalidate()

    @monitor_performance("enrollments.archive")
    async def archive(self, ids: Iterable[str], strategy: Optional[str] = None) -> int:
        """Copy each record into ``archived_enrollments`` in one atomic batch.

        ``flag`` marks the original as archived, ``move`` deletes it. Unknown
        and repeated ids are skipped. Under ``flag`` a record already marked
        archived is not copied again. Returns the number of records archived.
        """
        strategy = strategy or self.archive_strategy
        batch = self.db.batch()
        archived = 0
        for id in dict.fromkeys(ids):
            ref = self.collection.document(id)
            snapshot = await ref.get()
            if not snapshot.exists:
                logger.warning(f"Skipping archive of missing enrollment {id}")
                continue
            record = snapshot.to_dict() or {}
            if strategy == "flag" and record.get("status") == "archived":
                logger.info(f"Enrollment {id} is already archived")
                continue
            batch.set(self.archive_collection.document(), {
                **record,
                "archivedAt": firestore.SERVER_TIMESTAMP,
                "originalId": id,
            })
            if strategy == "move":
                batch.delete(ref)
            else:
                batch.update(ref, {"status": "archived", "updatedAt": firestore.SERVER_TIMESTAMP})
            archived += 1

        if archived:
            await batch.commit()
        self.cache.invalidate()
        logger.info(f"Archived {archived} enrollment(s) using '{strategy}' strategy")
        return archived

    # ------------------------------------------------------------ live queries

    def subscribe(
        self,
        callback: Callable[[List[Dict[str, Any]]], None],
        filters: Optional[Dict[str, Any]] = None,
    ) -> Callable[[], None]:
        """Watch matching enrollments; ``callback`` gets the full sorted list.

        One watch per filter set: subscribing again with the same filters
        cancels the earlier watch. Call the returned disposer on teardown.
        """
        filters = {k: v for k, v in (filters or {}).items() if k != "searchTerm"}

        def on_snapshot(snapshots, changes, read_time):
            callback(sort_records([_to_record(s) for s in snapshots], "submittedAt", "desc"))

        def start():
            watch_collection = self._watch_client_factory().collection(ENROLLMENTS)
            return EnrollmentQueryBuilder(watch_collection).apply_filters(filters).on_snapshot(on_snapshot)

        return self.listeners.register(listener_key(filters), start)

    def close(self):
        self.listeners.close_all()
