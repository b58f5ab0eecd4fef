from fastapi import APIRouter, Depends, status

from ..core.security import require_admin
from ..schemas.content_schemas import TeacherCreate, TeacherUpdate
from ..schemas.user_schemas import User
from ..services.teacher_service import TeacherService
from .deps import get_teacher_service

router = APIRouter(prefix="/api/v1/teachers", tags=["Teachers"])


@router.get("")
async def list_teachers(service: TeacherService = Depends(get_teacher_service)):
    return await service.get_all()


@router.get("/{teacher_id}")
async def get_teacher(teacher_id: str, service: TeacherService = Depends(get_teacher_service)):
    return await service.get_or_404(teacher_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_teacher(
    teacher: TeacherCreate,
    admin: User = Depends(require_admin),
    service: TeacherService = Depends(get_teacher_service),
):
    return {"id": await service.create(teacher.model_dump(exclude_none=True))}


@router.patch("/{teacher_id}")
async def update_teacher(
    teacher_id: str,
    changes: TeacherUpdate,
    admin: User = Depends(require_admin),
    service: TeacherService = Depends(get_teacher_service),
):
    await service.update(teacher_id, changes.model_dump(exclude_unset=True))
    return await service.get_or_404(teacher_id)


@router.delete("/{teacher_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_teacher(
    teacher_id: str,
    admin: User = Depends(require_admin),
    service: TeacherService = Depends(get_teacher_service),
):
    await service.delete(teacher_id)
