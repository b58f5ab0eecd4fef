# enrollment_portal/core/exceptions.py
"""Custom exceptions for the enrollment portal."""
from fastapi import HTTPException
from typing import Any, Dict, Optional


class EnrollmentPortalException(HTTPException):
    """Base exception for the enrollment portal."""
    def __init__(
        self,
        status_code: int,
        detail: Any,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundError(EnrollmentPortalException):
    """Raised when a document does not exist."""
    def __init__(self, resource: str, id: Optional[str] = None):
        message = f"{resource} not found"
        if id:
            message += f" with id: {id}"
        super().__init__(status_code=404, detail=message)


class FormValidationError(EnrollmentPortalException):
    """Raised with every invalid field of a submitted form."""
    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(
            status_code=422,
            detail={
                "error": "Validation Error",
                "message": "One or more fields are invalid",
                "errors": self.errors
            }
        )


class InvalidUpdateError(EnrollmentPortalException):
    """Raised when an update would change an immutable field."""
    def __init__(self, message: str):
        super().__init__(
            status_code=400,
            detail={"error": "Invalid Update", "message": message}
        )


class InvalidCursorError(EnrollmentPortalException):
    """Raised when a page cursor names a document that no longer exists."""
    def __init__(self, cursor: str):
        super().__init__(
            status_code=400,
            detail={"error": "Invalid Cursor", "message": f"Unknown cursor: {cursor}"}
        )


class AuthenticationRequired(EnrollmentPortalException):
    """Raised when a request carries no valid identity."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            status_code=401,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"}
        )


class PermissionDenied(EnrollmentPortalException):
    """Raised when the caller lacks the required role."""
    def __init__(self, message: str = "Permission denied"):
        super().__init__(status_code=403, detail=message)


class EnrollmentClosed(EnrollmentPortalException):
    """Raised when submissions are closed for the requested level."""
    def __init__(self, message: str = "Enrollment is currently closed"):
        super().__init__(status_code=409, detail=message)


class StoreUnavailable(EnrollmentPortalException):
    """Raised when the document store cannot serve a request."""
    def __init__(self, message: str = "Document store unavailable"):
        super().__init__(
            status_code=503,
            detail={"error": "Store Unavailable", "message": message}
        )
