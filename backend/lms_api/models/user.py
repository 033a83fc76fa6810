"""
User model for the LMS API.

Defines the User table with authentication fields, the avatar media
reference and the password-recovery token fields.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Integer, String, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy.sql import func

from lms_api.core.database import Base
from lms_api.core.security import get_password_hash, verify_password
from .media import MediaReference


class User(Base):
    """
    User model for authentication and profile management.
    """
    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Authentication fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile fields
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_public_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar_secure_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Password recovery: SHA-256 of the emailed token, and when it stops working
    forgot_password_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    forgot_password_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Table constraints
    __table_args__ = (
        CheckConstraint(
            "(forgot_password_token IS NULL) = (forgot_password_expiry IS NULL)",
            name="check_recovery_fields_paired"
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"

    @validates("email")
    def normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()

    @property
    def avatar(self) -> MediaReference:
        return MediaReference(self.avatar_public_id, self.avatar_secure_url)

    @avatar.setter
    def avatar(self, ref: MediaReference) -> None:
        self.avatar_public_id = ref.public_id
        self.avatar_secure_url = ref.secure_url

    def set_password(self, password: str) -> None:
        """Hash and store a new password."""
        self.hashed_password = get_password_hash(password)

    def check_password(self, password: str) -> bool:
        return verify_password(password, self.hashed_password)

    def set_recovery_token(self, token_hash: str, expires_at: datetime) -> None:
        """Store a recovery token, replacing any previous one."""
        self.forgot_password_token = token_hash
        self.forgot_password_expiry = expires_at

    def clear_recovery_token(self) -> None:
        self.forgot_password_token = None
        self.forgot_password_expiry = None

    @property
    def has_recovery_token(self) -> bool:
        return self.forgot_password_token is not None
