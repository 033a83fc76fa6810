"""
Security utilities for the LMS API.

Handles password hashing, session (JWT) tokens, password-recovery tokens
and the session cookie.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional

from fastapi import Response
from jose import JWTError, jwt
from passlib.context import CryptContext

if TYPE_CHECKING:
    from lms_api.models.user import User


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        bool: True if password matches, False otherwise
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The plain text password to hash

    Returns:
        str: The hashed password
    """
    return pwd_context.hash(password)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from the database."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class TokenConfig:
    secret_key: str
    algorithm: str = "HS256"
    session_lifetime: timedelta = timedelta(days=7)
    recovery_window: timedelta = timedelta(minutes=15)
    recovery_entropy_bytes: int = 20


class TokenIssuer:
    """
    Issues and verifies session tokens and password-recovery tokens.

    Session tokens are stateless JWTs. Recovery tokens are random values;
    only their SHA-256 digest is stored on the user together with an expiry.
    """

    def __init__(self, config: TokenConfig, clock: Callable[[], datetime] = utcnow):
        self.config = config
        self._clock = clock

    def issue_session_token(self, user_id: int) -> str:
        """
        Create a signed session token for a user.

        Args:
            user_id: The id of the authenticated user

        Returns:
            str: The encoded JWT
        """
        now = self._clock()
        to_encode = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.config.session_lifetime,
        }
        return jwt.encode(
            to_encode,
            self.config.secret_key,
            algorithm=self.config.algorithm
        )

    def verify_session_token(self, token: str) -> Optional[int]:
        """
        Verify a session token.

        Returns:
            Optional[int]: The user id if the token is valid, None otherwise
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm]
            )
            return int(payload["sub"])
        except (JWTError, KeyError, TypeError, ValueError):
            return None

    @staticmethod
    def hash_recovery_token(plain_token: str) -> str:
        return hashlib.sha256(plain_token.encode("utf-8")).hexdigest()

    def issue_recovery_token(self, user: "User") -> str:
        """
        Generate a recovery token and store its hash and expiry on the user.

        The caller is responsible for committing the user. The returned
        plaintext is never persisted.

        Args:
            user: The user requesting a password reset

        Returns:
            str: The plaintext recovery token
        """
        plain_token = secrets.token_bytes(self.config.recovery_entropy_bytes).hex()
        user.set_recovery_token(
            self.hash_recovery_token(plain_token),
            self._clock() + self.config.recovery_window,
        )
        return plain_token

    def verify_recovery_token(self, plain_token: str, user: "User") -> bool:
        """
        Check a plaintext recovery token against the user's stored hash.

        Both the hash and the expiry must match; an expired token is
        rejected even when the hash is correct.
        """
        if not plain_token or not user.has_recovery_token:
            return False
        expiry = user.forgot_password_expiry
        if expiry is None:
            return False
        hash_ok = hmac.compare_digest(
            self.hash_recovery_token(plain_token), user.forgot_password_token
        )
        return hash_ok and self._clock() < as_utc(expiry)

    def now(self) -> datetime:
        return self._clock()


@dataclass(frozen=True)
class SessionCookie:
    """Attributes of the cookie carrying the session token."""
    name: str = "token"
    max_age: int = 7 * 24 * 60 * 60
    httponly: bool = True
    secure: bool = True
    samesite: str = "lax"

    def apply(self, response: Response, token: str) -> None:
        response.set_cookie(
            key=self.name,
            value=token,
            max_age=self.max_age,
            httponly=self.httponly,
            secure=self.secure,
            samesite=self.samesite,
        )

    def clear(self, response: Response) -> None:
        response.set_cookie(
            key=self.name,
            value="",
            max_age=0,
            httponly=self.httponly,
            secure=self.secure,
            samesite=self.samesite,
        )
