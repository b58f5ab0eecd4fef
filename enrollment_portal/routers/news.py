from fastapi import APIRouter, Depends, Query, status

from ..core.security import require_admin
from ..schemas.content_schemas import NewsPostCreate, NewsPostUpdate
from ..schemas.user_schemas import User
from ..services.news_service import NewsService
from .deps import get_news_service

router = APIRouter(prefix="/api/v1/news", tags=["News"])


@router.get("")
async def list_published_news(
    limit: int = Query(10, ge=1, le=50),
    service: NewsService = Depends(get_news_service),
):
    return await service.get_published(limit)


@router.get("/all")
async def list_all_news(
    admin: User = Depends(require_admin),
    service: NewsService = Depends(get_news_service),
):
    """Drafts included"""
    return await service.get_all()


@router.get("/{post_id}")
async def get_news_post(post_id: str, service: NewsService = Depends(get_news_service)):
    return await service.get_published_by_id(post_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_news_post(
    post: NewsPostCreate,
    admin: User = Depends(require_admin),
    service: NewsService = Depends(get_news_service),
):
    return {"id": await service.create(post.model_dump(exclude_none=True))}


@router.patch("/{post_id}")
async def update_news_post(
    post_id: str,
    changes: NewsPostUpdate,
    admin: User = Depends(require_admin),
    service: NewsService = Depends(get_news_service),
):
    await service.update(post_id, changes.model_dump(exclude_unset=True))
    return await service.get_or_404(post_id)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_news_post(
    post_id: str,
    admin: User = Depends(require_admin),
    service: NewsService = Depends(get_news_service),
):
    await service.delete(post_id)
