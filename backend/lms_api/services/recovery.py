"""
Password recovery and password change.

Forgot-password stores the hash of a fresh recovery token on the user and
emails the plaintext inside a reset link. If the email cannot be sent the
token is cleared again, so no user ever holds a live token they were not
told about. Reset-password finds the user by token hash and expiry in a
single query and consumes the token.
"""

import logging
from html import escape

from sqlalchemy.orm import Session

from lms_api.core.errors import (
    AuthError,
    InvalidOrExpiredToken,
    MessageDeliveryFailed,
    NotFound,
    ValidationFailed,
)
from lms_api.core.security import TokenIssuer
from lms_api.models.user import User
from .mailer import Mailer


logger = logging.getLogger(__name__)


RESET_SUBJECT = "Reset Password"


def reset_password_url(frontend_url: str, plain_token: str) -> str:
    return f"{frontend_url.rstrip('/')}/reset-password/{plain_token}"


def reset_password_body(url: str) -> str:
    link = escape(url, quote=True)
    return (
        f'<p>You can reset your password by clicking '
        f'<a href="{link}" target="_blank">Reset your password</a>.</p>'
        f'<p>If the above link does not work, copy and paste this link into a new tab: {link}</p>'
        f'<p>If you have not requested this, kindly ignore this email.</p>'
    )


class RecoveryFlow:
    """
    Forgot / reset / change password.

    Args:
        db: Database session
        tokens: Issues and hashes recovery tokens
        mailer: Delivers the reset link
        frontend_url: Base URL of the web client hosting the reset page
    """

    def __init__(self, db: Session, tokens: TokenIssuer, mailer: Mailer, frontend_url: str):
        self.db = db
        self.tokens = tokens
        self.mailer = mailer
        self.frontend_url = frontend_url

    def forgot_password(self, email: str) -> None:
        """
        Issue a recovery token and email the reset link.

        Raises:
            NotFound: no user has this email
            MessageDeliveryFailed: the email could not be sent; the token
                has been cleared again
        """
        email = (email or "").strip().lower()
        if not email:
            raise ValidationFailed("Email is required")

        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            raise NotFound("Email is not registered", status_code=400)

        plain_token = self.tokens.issue_recovery_token(user)
        self.db.commit()

        url = reset_password_url(self.frontend_url, plain_token)
        try:
            self.mailer.send(user.email, RESET_SUBJECT, reset_password_body(url))
        except Exception as e:
            logger.error(f"Reset email to user {user.id} failed: {e}")
            user.clear_recovery_token()
            self.db.commit()
            raise MessageDeliveryFailed() from e

        logger.info(f"Reset password link sent to user {user.id}")

    def reset_password(self, plain_token: str, new_password: str) -> User:
        """
        Set a new password using a recovery token, consuming the token.

        Raises:
            InvalidOrExpiredToken: no user holds this token, or it expired
        """
        if not new_password:
            raise ValidationFailed("Password is required")
        if not plain_token:
            raise InvalidOrExpiredToken()

        token_hash = self.tokens.hash_recovery_token(plain_token)
        user = self.db.query(User).filter(
            User.forgot_password_token == token_hash,
            User.forgot_password_expiry > self.tokens.now()
        ).first()
        if not user:
            raise InvalidOrExpiredToken()

        user.set_password(new_password)
        user.clear_recovery_token()
        self.db.commit()
        logger.info(f"Password reset for user {user.id}")
        return user

    def change_password(self, user_id: int, old_password: str, new_password: str) -> User:
        """
        Change the password of an authenticated user.

        Raises:
            NotFound: the user no longer exists
            AuthError: the old password is wrong
        """
        if not old_password or not new_password:
            raise ValidationFailed("Old password and new password are required")

        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("Invalid user id or user does not exist", status_code=400)

        if not user.check_password(old_password):
            raise AuthError("Invalid old password")

        user.set_password(new_password)
        self.db.commit()
        return user
