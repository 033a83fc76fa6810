"""
Request and response schemas for courses and lectures.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .common import MediaReferenceOut, MessageResponse


class CourseUpdate(BaseModel):
    """
    Partial course update. Only fields present in the request are applied;
    the lecture count is derived and cannot be set.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    created_by: Optional[str] = Field(None, max_length=255)

    @field_validator("title", "description", "category", "created_by")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("must not be null")
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class LectureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    lecture: MediaReferenceOut = Field(validation_alias=AliasChoices("lecture", "media"))


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    category: str
    created_by: str
    thumbnail: MediaReferenceOut
    lecture_count: int
    created_at: Optional[datetime] = None


class CourseDetail(CourseResponse):
    lectures: List[LectureResponse] = []


class CourseEnvelope(MessageResponse):
    course: CourseDetail


class CourseListEnvelope(MessageResponse):
    courses: List[CourseResponse]


class LectureListEnvelope(MessageResponse):
    lectures: List[LectureResponse]
