# enrollment_portal/utils/pagination.py
"""Cursor pagination parameters and responses."""
from typing import Any, Dict, List, Literal, Optional

from fastapi import Query
from pydantic import BaseModel, Field

from ..core.config import settings


class PaginationParams(BaseModel):
    """Cursor pagination parameters."""
    orderByField: Literal['submittedAt', 'fullName', 'status'] = 'submittedAt'
    orderDirection: Literal['asc', 'desc'] = 'desc'
    pageSize: int = Field(20, ge=1, description="Items per page")
    cursor: Optional[str] = Field(None, description="Id of the boundary record of the previous page")
    direction: Literal['next', 'prev'] = 'next'

    def as_kwargs(self) -> Dict[str, Any]:
        return {
            "order_by_field": self.orderByField,
            "order_direction": self.orderDirection,
            "page_size": self.pageSize,
            "cursor": self.cursor,
            "direction": self.direction,
        }


class CursorPage(BaseModel):
    """One page of records plus the cursors to move from it."""
    items: List[Dict[str, Any]]
    cursor: Optional[str] = None
    first_cursor: Optional[str] = None
    has_more: bool
    page_size: int


class Paginator:
    """Pagination utility class."""

    @staticmethod
    def get_pagination_params(
        orderByField: Literal['submittedAt', 'fullName', 'status'] = Query('submittedAt'),
        orderDirection: Literal['asc', 'desc'] = Query('desc'),
        pageSize: Optional[int] = Query(None, ge=1, description="Items per page"),
        cursor: Optional[str] = Query(None),
        direction: Literal['next', 'prev'] = Query('next'),
    ) -> PaginationParams:
        """FastAPI dependency for cursor pagination parameters."""
        return PaginationParams(
            orderByField=orderByField,
            orderDirection=orderDirection,
            pageSize=Paginator.clamp_page_size(pageSize),
            cursor=cursor,
            direction=direction,
        )

    @staticmethod
    def clamp_page_size(page_size: Optional[int]) -> int:
        if not page_size:
            return settings.default_page_size
        return max(1, min(page_size, settings.max_page_size))
