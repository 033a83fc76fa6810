"""
User router for the LMS API.

Handles registration, login, logout, profile, password recovery and
profile updates.
"""

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool

from lms_api.core.errors import AuthError
from lms_api.core.security import SessionCookie
from lms_api.deps import (
    get_account_service,
    get_coordinator,
    get_current_user,
    get_recovery_flow,
    get_session_cookie,
    get_staging,
)
from lms_api.models.user import User
from lms_api.schemas.common import MessageResponse
from lms_api.schemas.user import (
    ForgotPasswordRequest,
    PasswordChange,
    ResetPasswordRequest,
    UserEnvelope,
    UserLogin,
    UserResponse,
)
from lms_api.services.accounts import AccountService
from lms_api.services.media import MediaAssetCoordinator, UploadStaging
from lms_api.services.recovery import RecoveryFlow


router = APIRouter()


@router.post("/register", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def register(
    response: Response,
    full_name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    accounts: AccountService = Depends(get_account_service),
    media: MediaAssetCoordinator = Depends(get_coordinator),
    staging: UploadStaging = Depends(get_staging),
    cookie: SessionCookie = Depends(get_session_cookie)
) -> UserEnvelope:
    """
    Register a new user, optionally with an avatar image.
    """
    staged = await staging.save(avatar)
    with media.guard(staged):
        user, token = await run_in_threadpool(
            accounts.register, full_name, email, password, staged
        )

    cookie.apply(response, token)
    return UserEnvelope(
        message="User registered successfully",
        user=UserResponse.model_validate(user)
    )


@router.post("/login", response_model=UserEnvelope)
async def login(
    credentials: UserLogin,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    cookie: SessionCookie = Depends(get_session_cookie)
) -> UserEnvelope:
    user, token = await run_in_threadpool(accounts.login, credentials.email, credentials.password)
    cookie.apply(response, token)
    return UserEnvelope(
        message="User logged in successfully",
        user=UserResponse.model_validate(user)
    )


@router.get("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    cookie: SessionCookie = Depends(get_session_cookie)
) -> MessageResponse:
    cookie.clear(response)
    return MessageResponse(message="User logged out successfully")


@router.get("/me", response_model=UserEnvelope)
async def get_profile(
    current_user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service)
) -> UserEnvelope:
    user = accounts.get_profile(current_user.id)
    return UserEnvelope(message="User details", user=UserResponse.model_validate(user))


@router.post("/reset", response_model=MessageResponse)
async def forgot_password(
    request_data: ForgotPasswordRequest,
    recovery: RecoveryFlow = Depends(get_recovery_flow)
) -> MessageResponse:
    """
    Email a password reset link to a registered user.
    """
    await run_in_threadpool(recovery.forgot_password, request_data.email)
    return MessageResponse(
        message=f"Reset password token has been sent to {request_data.email} successfully"
    )


@router.post("/reset/{reset_token}", response_model=MessageResponse)
async def reset_password(
    reset_token: str,
    reset_data: ResetPasswordRequest,
    recovery: RecoveryFlow = Depends(get_recovery_flow)
) -> MessageResponse:
    await run_in_threadpool(recovery.reset_password, reset_token, reset_data.password)
    return MessageResponse(message="Password changed successfully")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    recovery: RecoveryFlow = Depends(get_recovery_flow)
) -> MessageResponse:
    await run_in_threadpool(
        recovery.change_password,
        current_user.id,
        password_data.old_password,
        password_data.new_password
    )
    return MessageResponse(message="Password changed successfully")


@router.put("/update/{user_id}", response_model=UserEnvelope)
async def update_user(
    user_id: int,
    full_name: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    media: MediaAssetCoordinator = Depends(get_coordinator),
    staging: UploadStaging = Depends(get_staging)
) -> UserEnvelope:
    """
    Update the display name and/or avatar of the logged in user.
    """
    if user_id != current_user.id:
        raise AuthError("You can only update your own profile", status_code=status.HTTP_403_FORBIDDEN)

    staged = await staging.save(avatar)
    with media.guard(staged):
        user = await run_in_threadpool(
            accounts.update_user, user_id, full_name=full_name, avatar=staged
        )

    return UserEnvelope(
        message="User details updated successfully",
        user=UserResponse.model_validate(user)
    )
