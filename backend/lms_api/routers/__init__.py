"""
API routers for the LMS API.

This module contains all API endpoint routers:
- auth: Account endpoints (register, login, logout, password recovery)
- courses: Course catalog and lecture management
"""

from fastapi import APIRouter

# Import individual routers
from .auth import router as auth_router
from .courses import router as courses_router

# Create main API router
api_router = APIRouter()

# Include all routers with their prefixes
api_router.include_router(
    auth_router,
    prefix="/user",
    tags=["user"]
)

api_router.include_router(
    courses_router,
    prefix="/courses",
    tags=["courses"]
)

# Export all routers
__all__ = [
    "api_router",
    "auth_router",
    "courses_router"
]
