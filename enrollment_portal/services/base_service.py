# enrollment_portal/services/base_service.py
"""Base service with common Firestore CRUD operations."""
import logging
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ..core.exceptions import NotFoundError
from .query_builder import sort_records, store_direction

logger = logging.getLogger(__name__)


def to_record(snapshot) -> Dict[str, Any]:
    return {**(snapshot.to_dict() or {}), "id": snapshot.id}


class BaseService:
    collection_name: str = ""
    resource_name: str = "Document"

    def __init__(self, db):
        self.db = db
        self.collection = db.collection(self.collection_name)

    async def get(self, id: str) -> Optional[Dict[str, Any]]:
        snapshot = await self.collection.document(id).get()
        return to_record(snapshot) if snapshot.exists else None

    async def get_or_404(self, id: str) -> Dict[str, Any]:
        record = await self.get(id)
        if record is None:
            raise NotFoundError(self.resource_name, id)
        return record

    async def get_multi(
        self,
        order_by: Optional[str] = None,
        direction: str = "asc",
        limit: Optional[int] = None,
        **filters
    ) -> List[Dict[str, Any]]:
        """Equality-filtered listing; ordering falls back to memory without an index"""
        base = self.collection
        for key, value in filters.items():
            if value is not None:
                base = base.where(filter=FieldFilter(key, "==", value))

        if order_by is None:
            query = base.limit(limit) if limit else base
            return [to_record(s) for s in await query.get()]

        query = base.order_by(order_by, direction=store_direction(direction))
        if limit:
            query = query.limit(limit)
        try:
            return [to_record(s) for s in await query.get()]
        except gcp_exceptions.FailedPrecondition as e:
            logger.warning(f"Missing index on {self.collection_name}.{order_by}, sorting in memory: {e}")
            records = sort_records([to_record(s) for s in await base.get()], order_by, direction)
            return records[:limit] if limit else records

    async def create(self, obj_in: Dict[str, Any]) -> str:
        _, ref = await self.collection.add(dict(obj_in))
        return ref.id

    async def update(self, id: str, obj_in: Dict[str, Any]):
        try:
            await self.collection.document(id).update(dict(obj_in))
        except gcp_exceptions.NotFound:
            raise NotFoundError(self.resource_name, id)

    async def delete(self, id: str):
        ref = self.collection.document(id)
        snapshot = await ref.get()
        if not snapshot.exists:
            raise NotFoundError(self.resource_name, id)
        await ref.delete()


class TimestampedService(BaseService):
    """Stamps ``updatedAt`` (and a creation field) with the server time."""
    created_field: str = "createdAt"

    async def create(self, obj_in: Dict[str, Any]) -> str:
        return await super().create({
            **obj_in,
            self.created_field: firestore.SERVER_TIMESTAMP,
            "updatedAt": firestore.SERVER_TIMESTAMP,
        })

    async def update(self, id: str, obj_in: Dict[str, Any]):
        await super().update(id, {**obj_in, "updatedAt": firestore.SERVER_TIMESTAMP})
