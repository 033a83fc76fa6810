"""
User accounts: registration, login, profile and profile updates.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lms_api.core.errors import AuthError, Conflict, NotFound, ValidationFailed
from lms_api.core.security import TokenIssuer
from lms_api.models.media import MediaReference
from lms_api.models.user import User
from .media import AttributeSlot, MediaAssetCoordinator, StagedFile
from .media_store import UploadOptions


logger = logging.getLogger(__name__)


class AccountService:
    """
    Args:
        db: Database session
        tokens: Issues session tokens on register/login
        media: Coordinates avatar uploads
        avatar_options: Upload options for avatars
        default_avatar_url: Avatar shown until the user uploads one
    """

    def __init__(
        self,
        db: Session,
        tokens: TokenIssuer,
        media: MediaAssetCoordinator,
        avatar_options: UploadOptions,
        default_avatar_url: str
    ):
        self.db = db
        self.tokens = tokens
        self.media = media
        self.avatar_options = avatar_options
        self.default_avatar_url = default_avatar_url

    def register(
        self,
        full_name: str,
        email: str,
        password: str,
        avatar: Optional[StagedFile] = None
    ) -> Tuple[User, str]:
        """
        Create a user, upload the optional avatar and open a session.

        The user row is committed before the upload, so an upload failure
        leaves a registered user with the default avatar.

        Returns:
            Tuple[User, str]: The new user and a session token

        Raises:
            Conflict: the email is already registered
            MediaUploadFailed: the avatar upload failed
        """
        full_name = (full_name or "").strip()
        email = (email or "").strip().lower()
        if not full_name or not email or not password:
            raise ValidationFailed()

        if self.db.query(User).filter(User.email == email).first():
            raise Conflict("Email already exists")

        user = User(email=email, full_name=full_name)
        user.set_password(password)
        user.avatar = MediaReference(email, self.default_avatar_url)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict("Email already exists") from e
        logger.info(f"User registered: {user.id}")

        if avatar is not None:
            self.media.attach(AttributeSlot(user, "avatar"), avatar, self.avatar_options)
            self.db.commit()

        self.db.refresh(user)
        return user, self.tokens.issue_session_token(user.id)

    def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Raises:
            AuthError: unknown email or wrong password (same message)
        """
        if not email or not password:
            raise ValidationFailed()

        user = self.db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not user.check_password(password):
            raise AuthError("Email or password does not match")

        return user, self.tokens.issue_session_token(user.id)

    def get_profile(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def update_user(
        self,
        user_id: int,
        full_name: Optional[str] = None,
        avatar: Optional[StagedFile] = None
    ) -> User:
        """
        Update the display name and/or replace the avatar.

        The old avatar is destroyed before the new one is uploaded.
        """
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("Invalid user id or user does not exist", status_code=400)

        # A blank name leaves the current one in place
        full_name = (full_name or "").strip()
        if full_name:
            user.full_name = full_name

        self.media.replace(AttributeSlot(user, "avatar"), avatar, self.avatar_options)
        self.db.commit()
        self.db.refresh(user)
        return user
