from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from google.api_core import exceptions as gcp_exceptions
import logging

from .config import settings

logger = logging.getLogger(__name__)


async def store_exception_handler(request: Request, exc: gcp_exceptions.GoogleAPICallError):
    """Map document store failures that reached the HTTP layer"""
    logger.error(f"Store error: {exc} - Path: {request.url.path}")
    status_code = 404 if isinstance(exc, gcp_exceptions.NotFound) else 503
    return JSONResponse(
        status_code=status_code,
        content={"error": "Document store request failed", "type": exc.__class__.__name__}
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.exception(f"Unexpected error: {str(exc)} - Path: {request.url.path}")
    message = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(
        status_code=500,
        content={"error": message, "type": "InternalError"}
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(gcp_exceptions.GoogleAPICallError, store_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
