# enrollment_portal/core/security.py
"""Identity verification and role checks."""
import logging
from typing import Optional

import firebase_admin
from fastapi import Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials

from .config import settings
from .exceptions import AuthenticationRequired, PermissionDenied
from ..schemas.user_schemas import Principal, User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def has_role(role: Optional[str], required: str) -> bool:
    """A missing role never satisfies a role check."""
    return role is not None and role == required


class FirebaseIdentityProvider:
    """Verifies Firebase ID tokens and maps claims to a Principal."""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self._app = app

    def _get_app(self) -> firebase_admin.App:
        if self._app is None:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                cred = (
                    credentials.Certificate(settings.firebase_credentials_path)
                    if settings.firebase_credentials_path
                    else credentials.ApplicationDefault()
                )
                options = {'projectId': settings.firestore_project_id} if settings.firestore_project_id else None
                self._app = firebase_admin.initialize_app(cred, options)
                logger.info("Firebase app initialized")
        return self._app

    async def verify_token(self, token: str) -> Principal:
        try:
            claims = await run_in_threadpool(auth.verify_id_token, token, app=self._get_app())
        except (auth.InvalidIdTokenError, auth.CertificateFetchError, auth.UserDisabledError, ValueError) as e:
            logger.warning(f"Rejected ID token: {e}")
            raise AuthenticationRequired("Invalid or expired token")
        return Principal(
            uid=claims['uid'],
            email=claims.get('email'),
            displayName=claims.get('name'),
            photoURL=claims.get('picture'),
        )


async def get_current_user(
    request: Request,
    token: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> User:
    """Resolve the caller; first-seen principals get a student user record"""
    if token is None or not token.credentials:
        raise AuthenticationRequired()
    principal = await request.app.state.identity_provider.verify_token(token.credentials)
    return await request.app.state.user_service.get_or_create(principal)


async def require_admin(response: Response, user: User = Depends(get_current_user)) -> User:
    if not has_role(user.role, 'admin'):
        raise PermissionDenied("Admin role required")
    response.headers["Cache-Control"] = "no-store"
    return user
