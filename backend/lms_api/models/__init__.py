"""
Database models for the LMS API.

This module contains all SQLAlchemy models for the application:
- User model for authentication, profile and password recovery
- Course and Lecture models for the catalog
"""

from lms_api.core.database import Base

# Import all models to ensure they're registered with SQLAlchemy
from .media import MediaReference
from .user import User
from .course import Course, Lecture

# Export all models
__all__ = [
    "Base",
    "MediaReference",
    "User",
    "Course",
    "Lecture",
]
