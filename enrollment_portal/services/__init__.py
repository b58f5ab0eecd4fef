from .enrollment_repository import EnrollmentRepository
from .enrollment_service import EnrollmentService

__all__ = ["EnrollmentRepository", "EnrollmentService"]
