"""API routes."""

from workzen.api.routes.attendance import router as attendance_router
from workzen.api.routes.health import router as health_router
from workzen.api.routes.payruns import router as payruns_router
from workzen.api.routes.salary import router as salary_router
from workzen.api.routes.settings import router as settings_router

__all__ = [
    "attendance_router",
    "health_router",
    "payruns_router",
    "salary_router",
    "settings_router",
]
