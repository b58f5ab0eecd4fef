# enrollment_portal/services/query_builder.py
"""Translate enrollment filters and pagination into Firestore queries."""
from typing import Any, Dict, List, Optional, Sequence

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

FILTERABLE_FIELDS = ("status", "type", "schoolYear")
ORDERABLE_FIELDS = ("submittedAt", "fullName", "status")


def build_field_filters(filters: Optional[Dict[str, Any]]) -> List[FieldFilter]:
    """Equality filters for the set, non-empty keys. ``searchTerm`` is never pushed down."""
    filters = filters or {}
    return [
        FieldFilter(field, "==", filters[field])
        for field in FILTERABLE_FIELDS
        if filters.get(field) not in (None, "")
    ]


def store_direction(order_direction: str, reverse: bool = False) -> str:
    descending = order_direction == "desc"
    if reverse:
        descending = not descending
    return firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING


class EnrollmentQueryBuilder:
    """Builds queries against one collection.

    ``build`` produces the indexed query; ``build_unordered`` the filter-only
    query used when the composite index for filter + order is missing.
    """

    def __init__(self, collection):
        self.collection = collection

    def apply_filters(self, filters: Optional[Dict[str, Any]]):
        query = self.collection
        for field_filter in build_field_filters(filters):
            query = query.where(filter=field_filter)
        return query

    def build(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by_field: str = "submittedAt",
        order_direction: str = "desc",
        limit: Optional[int] = None,
        start_after=None,
        reverse: bool = False,
    ):
        """Filtered, ordered, limited query.

        ``reverse`` flips the ordering so a previous page can be read with
        ``start_after`` from the first document of the current page.
        """
        if order_by_field not in ORDERABLE_FIELDS:
            raise ValueError(f"Cannot order enrollments by {order_by_field!r}")
        query = self.apply_filters(filters).order_by(
            order_by_field, direction=store_direction(order_direction, reverse)
        )
        if start_after is not None:
            query = query.start_after(start_after)
        if limit is not None:
            query = query.limit(limit)
        return query

    def build_unordered(self, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None):
        query = self.apply_filters(filters)
        if limit is not None:
            query = query.limit(limit)
        return query


def _sort_value(value: Any):
    # None sorts before any value, as in the store
    return (0, "") if value is None else (1, value)


def sort_records(records: Sequence[Dict[str, Any]], order_by_field: str, order_direction: str) -> List[Dict[str, Any]]:
    """In-memory equivalent of ``order_by``; ties break on document id."""
    return sorted(
        records,
        key=lambda r: (_sort_value(r.get(order_by_field)), r.get("id") or ""),
        reverse=order_direction == "desc",
    )


def slice_after_cursor(
    records: List[Dict[str, Any]],
    cursor: Optional[Dict[str, Any]],
    order_by_field: str,
    order_direction: str,
) -> List[Dict[str, Any]]:
    """In-memory equivalent of ``start_after``.

    Keeps the records whose (value, id) key sorts strictly after the cursor
    record's key. The cursor record itself need not be among ``records``.
    """
    if cursor is None:
        return list(records)
    cursor_key = (_sort_value(cursor.get(order_by_field)), cursor.get("id") or "")

    def after(record):
        key = (_sort_value(record.get(order_by_field)), record.get("id") or "")
        return key < cursor_key if order_direction == "desc" else key > cursor_key

    return [r for r in records if after(r)]
