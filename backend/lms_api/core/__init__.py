"""
Core module for the LMS API.

This module contains core functionality including:
- Configuration management
- Database connections
- Security utilities (JWT, password hashing, recovery tokens)
- Error types
"""

from .config import settings
from .database import get_db, engine, SessionLocal
from .security import (
    TokenIssuer,
    TokenConfig,
    SessionCookie,
    verify_password,
    get_password_hash,
)

__all__ = [
    "settings",
    "get_db",
    "engine",
    "SessionLocal",
    "TokenIssuer",
    "TokenConfig",
    "SessionCookie",
    "verify_password",
    "get_password_hash",
]
