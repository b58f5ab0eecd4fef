from typing import Any, Dict, List

from ..core.database import TEACHERS
from .base_service import BaseService


class TeacherService(BaseService):
    collection_name = TEACHERS
    resource_name = "Teacher"

    async def get_all(self) -> List[Dict[str, Any]]:
        return await self.get_multi(order_by="order", direction="asc")
