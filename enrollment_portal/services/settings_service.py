import logging
from typing import Any, Dict

from ..core.database import SETTINGS
from ..schemas.content_schemas import EnrollmentSettings
from .base_service import BaseService

logger = logging.getLogger(__name__)

ENROLLMENT_SETTINGS_ID = "enrollment"


class SettingsService(BaseService):
    collection_name = SETTINGS
    resource_name = "Settings"

    async def get_enrollment_settings(self) -> EnrollmentSettings:
        """Stored settings merged over the defaults"""
        stored = await self.get(ENROLLMENT_SETTINGS_ID) or {}
        stored.pop("id", None)
        return EnrollmentSettings(**{**EnrollmentSettings().model_dump(), **stored})

    async def update_enrollment_settings(self, changes: Dict[str, Any]) -> EnrollmentSettings:
        changes = {k: v for k, v in changes.items() if v is not None}
        await self.collection.document(ENROLLMENT_SETTINGS_ID).set(changes, merge=True)
        logger.info(f"Enrollment settings updated: {sorted(changes)}")
        return await self.get_enrollment_settings()

    async def is_open_for(self, enrollment_type: str) -> bool:
        current = await self.get_enrollment_settings()
        if not current.isOpen:
            return False
        if enrollment_type == "junior":
            return current.juniorHighOpen
        if enrollment_type == "senior":
            return current.seniorHighOpen
        return False
