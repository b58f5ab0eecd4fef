from . import auth, enrollments, health, news, settings, teachers

__all__ = [
    "auth",
    "enrollments",
    "health",
    "news",
    "settings",
    "teachers",
]
