"""
Pydantic schemas for request validation and response serialization.
"""

from .common import MessageResponse, MediaReferenceOut
from .user import (
    UserLogin,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    PasswordChange,
    UserResponse,
    UserEnvelope,
)
from .course import (
    CourseUpdate,
    LectureResponse,
    CourseResponse,
    CourseDetail,
    CourseEnvelope,
    CourseListEnvelope,
    LectureListEnvelope,
)

__all__ = [
    "MessageResponse",
    "MediaReferenceOut",
    "UserLogin",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "PasswordChange",
    "UserResponse",
    "UserEnvelope",
    "CourseUpdate",
    "LectureResponse",
    "CourseResponse",
    "CourseDetail",
    "CourseEnvelope",
    "CourseListEnvelope",
    "LectureListEnvelope",
]
