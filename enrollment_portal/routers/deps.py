"""Service lookups for route handlers; instances live on ``app.state``."""
from fastapi import Request

from ..services.enrollment_repository import EnrollmentRepository
from ..services.enrollment_service import EnrollmentService
from ..services.news_service import NewsService
from ..services.settings_service import SettingsService
from ..services.teacher_service import TeacherService


def get_enrollment_service(request: Request) -> EnrollmentService:
    return request.app.state.enrollment_service


def get_enrollment_repository(request: Request) -> EnrollmentRepository:
    return request.app.state.enrollment_repository


def get_teacher_service(request: Request) -> TeacherService:
    return request.app.state.teacher_service


def get_news_service(request: Request) -> NewsService:
    return request.app.state.news_service


def get_settings_service(request: Request) -> SettingsService:
    return request.app.state.settings_service
