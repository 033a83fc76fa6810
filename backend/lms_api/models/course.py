"""
Course models for the LMS API.

Defines Course and Lecture. A course owns an ordered list of lectures and
keeps a lecture count that always matches that list.
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy import Integer, String, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.sql import func

from lms_api.core.database import Base
from .media import MediaReference


class Course(Base):
    """
    Course model holding catalog information and its lectures.
    """
    __tablename__ = "courses"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Basic information
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    # Visual elements
    thumbnail_public_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    thumbnail_secure_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Derived from lectures, see recount_lectures()
    lecture_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

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

    # Relationships
    lectures: Mapped[List["Lecture"]] = relationship(
        "Lecture",
        back_populates="course",
        order_by="Lecture.order_index",
        collection_class=ordering_list("order_index"),
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("lecture_count >= 0", name="check_lecture_count_positive"),
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, title='{self.title}')>"

    @property
    def thumbnail(self) -> MediaReference:
        return MediaReference(self.thumbnail_public_id, self.thumbnail_secure_url)

    @thumbnail.setter
    def thumbnail(self, ref: MediaReference) -> None:
        self.thumbnail_public_id = ref.public_id
        self.thumbnail_secure_url = ref.secure_url

    def recount_lectures(self) -> None:
        self.lecture_count = len(self.lectures)

    def find_lecture(self, lecture_id: int) -> Optional["Lecture"]:
        for lecture in self.lectures:
            if lecture.id == lecture_id:
                return lecture
        return None


class Lecture(Base):
    """
    Lecture belonging to exactly one course, optionally carrying a video.
    """
    __tablename__ = "lectures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Empty when the lecture was created without a video
    media_public_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    media_secure_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    course = relationship("Course", back_populates="lectures")

    def __repr__(self) -> str:
        return f"<Lecture(id={self.id}, course_id={self.course_id}, title='{self.title}')>"

    @property
    def media(self) -> MediaReference:
        return MediaReference(self.media_public_id, self.media_secure_url)

    @media.setter
    def media(self, ref: MediaReference) -> None:
        self.media_public_id = ref.public_id
        self.media_secure_url = ref.secure_url
