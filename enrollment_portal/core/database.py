# enrollment_portal/core/database.py
"""Document store clients (Firestore)."""
from typing import Optional
import inspect
import logging

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.oauth2 import service_account

from .config import settings

logger = logging.getLogger(__name__)

ENROLLMENTS = "enrollments"
ARCHIVED_ENROLLMENTS = "archived_enrollments"
TEACHERS = "teachers"
NEWS = "news"
SETTINGS = "settings"
USERS = "users"

_async_client: Optional[firestore.AsyncClient] = None
_sync_client: Optional[firestore.Client] = None


def _client_kwargs() -> dict:
    kwargs = {}
    if settings.firestore_project_id:
        kwargs["project"] = settings.firestore_project_id
    if settings.firebase_credentials_path:
        kwargs["credentials"] = service_account.Credentials.from_service_account_file(
            settings.firebase_credentials_path
        )
    return kwargs


def get_async_client() -> firestore.AsyncClient:
    """Process-wide async client used for every read and write"""
    global _async_client
    if _async_client is None:
        _async_client = firestore.AsyncClient(**_client_kwargs())
        logger.info("Firestore async client created")
    return _async_client


def get_sync_client() -> firestore.Client:
    """Synchronous client, only needed for on_snapshot watches"""
    global _sync_client
    if _sync_client is None:
        _sync_client = firestore.Client(**_client_kwargs())
        logger.info("Firestore watch client created")
    return _sync_client


async def health_check_db(client=None) -> bool:
    """Point-read of the settings document to check connectivity"""
    client = client or get_async_client()
    try:
        await client.collection(SETTINGS).document("enrollment").get()
        return True
    except gcp_exceptions.GoogleAPICallError as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def close_db_connections():
    """Properly close the store clients"""
    global _async_client, _sync_client
    for client in (_async_client, _sync_client):
        close = getattr(client, "close", None)
        if close is None:
            continue
        result = close()
        if inspect.isawaitable(result):
            await result
    _async_client = None
    _sync_client = None
    logger.info("Database connections closed")
