"""
FastAPI dependency providers.

Long-lived collaborators (token issuer, media store, mailer, cleanup
scheduler) are built once from settings; services are built per request
around the request's database session. Tests replace any of these through
``app.dependency_overrides``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from lms_api.core.config import settings
from lms_api.core.database import get_db
from lms_api.core.errors import NotAuthenticated
from lms_api.core.security import SessionCookie, TokenIssuer
from lms_api.models.user import User
from lms_api.services.accounts import AccountService
from lms_api.services.catalog import CatalogService
from lms_api.services.mailer import DisabledMailer, Mailer, SMTPMailer
from lms_api.services.media import CleanupScheduler, MediaAssetCoordinator, UploadStaging
from lms_api.services.media_store import (
    CloudinaryMediaStore,
    MediaStore,
    UnconfiguredMediaStore,
    avatar_options,
    lecture_options,
    thumbnail_options,
)
from lms_api.services.recovery import RecoveryFlow


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(settings.token_config())


@lru_cache
def get_session_cookie() -> SessionCookie:
    return settings.session_cookie()


@lru_cache
def get_media_store() -> MediaStore:
    if not settings.media_store_configured:
        return UnconfiguredMediaStore()
    return CloudinaryMediaStore(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
    )


@lru_cache
def get_mailer() -> Mailer:
    if not settings.emails_enabled:
        return DisabledMailer()
    return SMTPMailer(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        from_email=settings.EMAILS_FROM_EMAIL,
        from_name=settings.EMAILS_FROM_NAME,
        user=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_TLS,
    )


@lru_cache
def get_cleanup_scheduler() -> CleanupScheduler:
    return CleanupScheduler(max_workers=settings.CLEANUP_WORKERS)


@lru_cache
def get_staging() -> UploadStaging:
    return UploadStaging(Path(settings.UPLOAD_DIR), max_size=settings.MAX_UPLOAD_SIZE)


def get_coordinator(
    store: MediaStore = Depends(get_media_store),
    cleanup: CleanupScheduler = Depends(get_cleanup_scheduler)
) -> MediaAssetCoordinator:
    return MediaAssetCoordinator(store, cleanup)


def get_recovery_flow(
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
    mailer: Mailer = Depends(get_mailer)
) -> RecoveryFlow:
    return RecoveryFlow(db, tokens, mailer, settings.FRONTEND_URL)


def get_account_service(
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
    media: MediaAssetCoordinator = Depends(get_coordinator)
) -> AccountService:
    return AccountService(
        db,
        tokens,
        media,
        avatar_options=avatar_options(settings.MEDIA_FOLDER, settings.AVATAR_SIZE),
        default_avatar_url=settings.DEFAULT_AVATAR_URL,
    )


def get_catalog_service(
    db: Session = Depends(get_db),
    media: MediaAssetCoordinator = Depends(get_coordinator)
) -> CatalogService:
    return CatalogService(
        db,
        media,
        thumbnail_options=thumbnail_options(settings.MEDIA_FOLDER),
        lecture_options=lecture_options(settings.MEDIA_FOLDER, settings.LECTURE_CHUNK_SIZE),
    )


def _session_token(request: Request, cookie: SessionCookie) -> Optional[str]:
    token = request.cookies.get(cookie.name)
    if token:
        return token
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
    cookie: SessionCookie = Depends(get_session_cookie)
) -> User:
    """
    Get current authenticated user from the session cookie or a bearer token.
    """
    user_id = tokens.verify_session_token(_session_token(request, cookie) or "")
    if user_id is None:
        raise NotAuthenticated()

    user = db.get(User, user_id)
    if user is None:
        raise NotAuthenticated()
    return user
