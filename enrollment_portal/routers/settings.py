from fastapi import APIRouter, Depends

from ..core.security import require_admin
from ..schemas.content_schemas import EnrollmentSettings, EnrollmentSettingsUpdate
from ..schemas.user_schemas import User
from ..services.settings_service import SettingsService
from .deps import get_settings_service

router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])


@router.get("/enrollment", response_model=EnrollmentSettings)
async def get_enrollment_settings(service: SettingsService = Depends(get_settings_service)):
    return await service.get_enrollment_settings()


@router.put("/enrollment", response_model=EnrollmentSettings)
async def update_enrollment_settings(
    changes: EnrollmentSettingsUpdate,
    admin: User = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service),
):
    return await service.update_enrollment_settings(changes.model_dump(exclude_unset=True))
