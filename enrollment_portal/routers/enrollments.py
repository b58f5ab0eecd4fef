"""Enrollment submission and administration endpoints."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
import logging

from ..core.security import get_current_user, require_admin
from ..schemas.enrollment_schemas import (
    BatchIdsRequest,
    BatchUpdateRequest,
    DailyActivity,
    DashboardStats,
    EnrollmentFilters,
    EnrollmentStatus,
    EnrollmentType,
    EnrollmentUpdate,
    StatusUpdate,
)
from ..schemas.user_schemas import User
from ..services.enrollment_repository import EnrollmentRepository
from ..services.enrollment_service import EnrollmentService
from ..utils.pagination import CursorPage, PaginationParams, Paginator
from .deps import get_enrollment_repository, get_enrollment_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/enrollments", tags=["Enrollments"])


def get_filters(
    enrollment_status: Optional[EnrollmentStatus] = Query(None, alias="status"),
    enrollment_type: Optional[EnrollmentType] = Query(None, alias="type"),
    school_year: Optional[str] = Query(None, alias="schoolYear"),
    search: Optional[str] = Query(None, alias="searchTerm", max_length=100),
) -> EnrollmentFilters:
    return EnrollmentFilters(status=enrollment_status, type=enrollment_type, schoolYear=school_year, searchTerm=search)


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_enrollment(
    payload: Dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """Submit an enrollment form for the signed-in user"""
    enrollment_id = await service.submit(payload, user)
    return {"id": enrollment_id, "status": "submitted"}


@router.get("/me")
async def my_enrollments(
    user: User = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return await service.list_for_user(user)


@router.get("", response_model=CursorPage)
async def list_enrollments(
    filters: EnrollmentFilters = Depends(get_filters),
    pagination: PaginationParams = Depends(Paginator.get_pagination_params),
    admin: User = Depends(require_admin),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """Cursor-paginated listing. A search term switches to in-memory search."""
    if filters.searchTerm:
        items = await service.search(admin, filters.searchTerm, filters.store_filters(), pagination.pageSize)
        return CursorPage(items=items, has_more=False, page_size=pagination.pageSize)
    page = await service.list_page(admin, filters.store_filters(), **pagination.as_kwargs())
    return CursorPage(**page)


@router.get("/search")
async def search_enrollments(
    q: str = Query(..., max_length=100),
    filters: EnrollmentFilters = Depends(get_filters),
    page_size: int = Query(10, ge=1, alias="pageSize"),
    admin: User = Depends(require_admin),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return await service.search(admin, q, filters.store_filters(), Paginator.clamp_page_size(page_size))


@router.get("/count")
async def count_enrollments(
    filters: EnrollmentFilters = Depends(get_filters),
    admin: User = Depends(require_admin),
    repository: EnrollmentRepository = Depends(get_enrollment_repository),
):
    return {"count": await repository.count(filters.store_filters())}


@router.get("/stats", response_model=DashboardStats)
async def enrollment_stats(
    school_year: Optional[str] = Query(None, alias="schoolYear"),
    admin: User = Depends(require_admin),
    repository: EnrollmentRepository = Depends(get_enrollment_repository),
):
    return await repository.get_stats(school_year)


@router.get("/activity", response_model=List[DailyActivity])
async def recent_activity(
    days: int = Query(7, ge=1, le=90),
    admin: User = Depends(require_admin),
    repository: EnrollmentRepository = Depends(get_enrollment_repository),
):
    return await repository.get_recent_activity(days)


@router.post("/batch/update")
async def batch_update_enrollments(
    request: BatchUpdateRequest,
    admin: User = Depends(require_admin),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    await service.batch_update([
        {"id": item.id, "data": item.data.model_dump(exclude_unset=True)} for item in request.updates
    ])
    logger.info(f"Admin {admin.uid} batch-updated {len(request.updates)} enrollment(s)")
    return {"updated": len(request.updates)}


@router.post("/batch/delete")
async def batch_delete_enrollments(
    request: BatchIdsRequest,
    admin: User = Depends(require_admin),
    repository: EnrollmentRepository = Depends(get_enrollment_repository),
):
    await repository.batch_delete(request.ids)
    logger.info(f"Admin {admin.uid} batch-deleted {len(request.ids)} enrollment(s)")
    return {"deleted": len(request.ids)}


@router.post("/archive")
async def archive_enrollments(
    request: BatchIdsRequest,
    admin: User = Depends(require_admin),
    repository: EnrollmentRepository = Depends(get_enrollment_repository),
):
    archived = await repository.archive(request.ids)
    return {"archived": archived, "strategy": repository.archive_strategy}


@router.get("/{enrollment_id}")
async def get_enrollment(
    enrollment_id: str,
    admin: User = Depends(require_admin),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return await service.get(enrollment_id, admin)


@router.patch("/{enrollment_id}")
async def update_enrollment(
    enrollment_id: str,
    changes: EnrollmentUpdate,
    admin: User = Depends(require_admin),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    await service.update(enrollment_id, changes.model_dump(exclude_unset=True))
    return {"id": enrollment_id, "updated": True}


@router.patch("/{enrollment_id}/status")
async def update_enrollment_status(
    enrollment_id: str,
    change: StatusUpdate,
    admin: User = Depends(require_admin),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    await service.update_status(enrollment_id, change.status, change.rejectionReason)
    logger.info(f"Admin {admin.uid} set enrollment {enrollment_id} to {change.status}")
    return {"id": enrollment_id, "status": change.status}


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enrollment(
    enrollment_id: str,
    admin: User = Depends(require_admin),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    await service.delete(enrollment_id)
