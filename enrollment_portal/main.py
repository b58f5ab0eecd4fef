from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional
import logging
import time

from .core.cache import EnrollmentCache
from .core.config import check_encryption_key, settings
from .core.database import close_db_connections, get_async_client
from .core.encryption import FieldEncryptor
from .core.error_handlers import register_exception_handlers
from .core.logging import setup_logging
from .core.rate_limiter import RateLimiter, rate_limit_middleware
from .core.security import FirebaseIdentityProvider
from .routers import auth, enrollments, health, news, teachers
from .routers import settings as settings_router
from .services.enrollment_repository import EnrollmentRepository
from .services.enrollment_service import EnrollmentService
from .services.news_service import NewsService
from .services.settings_service import SettingsService
from .services.teacher_service import TeacherService
from .services.user_service import UserService

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": "; ".join([
        "default-src 'self'",
        "img-src 'self' data: https:",
        "connect-src 'self' https://*.googleapis.com https://*.firebaseio.com",
        "object-src 'none'",
        "base-uri 'self'",
        "frame-ancestors 'none'",
    ]),
}


def init_state(app: FastAPI, db, identity_provider=None, watch_client_factory: Optional[Callable[[], Any]] = None):
    """Build the per-process services and attach them to ``app.state``"""
    encryptor = FieldEncryptor()
    repository = EnrollmentRepository(
        db,
        cache=EnrollmentCache(ttl=settings.cache_ttl),
        watch_client_factory=watch_client_factory,
    )
    settings_service = SettingsService(db)

    app.state.encryptor = encryptor
    app.state.enrollment_repository = repository
    app.state.settings_service = settings_service
    app.state.enrollment_service = EnrollmentService(repository, encryptor, settings_service)
    app.state.teacher_service = TeacherService(db)
    app.state.news_service = NewsService(db)
    app.state.user_service = UserService(db)
    app.state.identity_provider = identity_provider or FirebaseIdentityProvider()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")
    check_encryption_key(settings)

    owns_client = not hasattr(app.state, "enrollment_repository")
    if owns_client:
        init_state(app, get_async_client())
    logger.info("Services initialized")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    app.state.enrollment_repository.close()
    if owns_client:
        await close_db_connections()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="St. Patrick Academy Enrollment Portal",
        description="Enrollment submission and administration backed by Firestore",
        version=settings.app_version,
        lifespan=lifespan
    )
    app.state.rate_limiter = RateLimiter()

    register_exception_handlers(app)

    app.middleware("http")(rate_limit_middleware)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        response.headers["X-Process-Time"] = str(process_time)
        logger.info(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s")
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(enrollments.router)
    app.include_router(teachers.router)
    app.include_router(news.router)
    app.include_router(settings_router.router)

    @app.get("/")
    async def root():
        return {
            "message": "St. Patrick Academy Enrollment Portal API",
            "version": settings.app_version,
            "status": "active"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("enrollment_portal.main:app", host="0.0.0.0", port=8000, reload=not settings.is_production)
