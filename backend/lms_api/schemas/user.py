"""
Request and response schemas for user accounts and password recovery.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from .common import MediaReferenceOut, MessageResponse


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class UserLogin(BaseModel):
    email: NonBlankStr = Field(..., max_length=255)
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: NonBlankStr = Field(..., max_length=255)


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=1)


class PasswordChange(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    avatar: MediaReferenceOut
    created_at: Optional[datetime] = None


class UserEnvelope(MessageResponse):
    user: UserResponse
