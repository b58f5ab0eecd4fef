import logging

from google.cloud import firestore

from ..core.database import USERS
from ..schemas.user_schemas import Principal, User
from .base_service import BaseService

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "student"


class UserService(BaseService):
    collection_name = USERS
    resource_name = "User"

    async def get_or_create(self, principal: Principal) -> User:
        """Load ``users/{uid}``, creating it with the student role on first sight.

        A stored record without a role is returned as-is; role checks treat
        it as unprivileged.
        """
        ref = self.collection.document(principal.uid)
        snapshot = await ref.get()
        if snapshot.exists:
            data = snapshot.to_dict() or {}
            return User(**{**principal.model_dump(), **data, "uid": principal.uid})

        user = User(**principal.model_dump(), role=DEFAULT_ROLE)
        await ref.set({**user.model_dump(), "createdAt": firestore.SERVER_TIMESTAMP})
        logger.info(f"Created user record for {principal.uid}")
        return user
