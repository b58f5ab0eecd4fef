"""Health check endpoints."""
from fastapi import APIRouter, Depends, Request
import logging

from ..core.config import settings
from ..core.database import health_check_db
from ..core.encryption import FieldEncryptor
from ..core.security import require_admin
from ..schemas.user_schemas import User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/full")
async def full_health_check(request: Request, admin: User = Depends(require_admin)):
    """Store connectivity, cache statistics and encryption configuration"""
    repository = request.app.state.enrollment_repository
    encryptor: FieldEncryptor = request.app.state.encryptor
    store_ok = await health_check_db(repository.db)
    if not store_ok:
        logger.warning("Full health check: document store unreachable")
    return {
        "status": "healthy" if store_ok else "degraded",
        "store": "reachable" if store_ok else "unreachable",
        "cache": repository.cache.stats(),
        "live_listeners": len(repository.listeners),
        "encryption": {
            "enabled": encryptor.enabled,
            "configured": encryptor.is_configured(),
        },
    }
