from typing import Any, Dict, List

from ..core.database import NEWS
from ..core.exceptions import NotFoundError
from .base_service import TimestampedService


class NewsService(TimestampedService):
    collection_name = NEWS
    resource_name = "News post"
    created_field = "publishedAt"

    async def get_published(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Published posts, newest first"""
        return await self.get_multi(order_by="publishedAt", direction="desc", limit=limit, isPublished=True)

    async def get_all(self) -> List[Dict[str, Any]]:
        return await self.get_multi(order_by="publishedAt", direction="desc")

    async def get_published_by_id(self, id: str) -> Dict[str, Any]:
        post = await self.get(id)
        # Drafts are invisible on the public surface
        if post is None or not post.get("isPublished"):
            raise NotFoundError(self.resource_name, id)
        return post
