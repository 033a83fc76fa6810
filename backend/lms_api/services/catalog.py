"""
Course catalog operations.

Lectures are appended to and removed from their course here; every such
change recounts ``Course.lecture_count`` before committing.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from lms_api.core.errors import NotFound, ValidationFailed
from lms_api.models.course import Course, Lecture
from lms_api.models.media import MediaReference
from .media import AttributeSlot, DetachedSlot, MediaAssetCoordinator, StagedFile
from .media_store import UploadOptions


logger = logging.getLogger(__name__)


class CatalogService:
    """
    Args:
        db: Database session
        media: Coordinates thumbnail and lecture video uploads
        thumbnail_options: Upload options for course thumbnails
        lecture_options: Upload options for lecture videos
    """

    def __init__(
        self,
        db: Session,
        media: MediaAssetCoordinator,
        thumbnail_options: UploadOptions,
        lecture_options: UploadOptions
    ):
        self.db = db
        self.media = media
        self.thumbnail_options = thumbnail_options
        self.lecture_options = lecture_options

    def _get_course(self, course_id: int, message: str = "Course with given id does not exist",
                    status_code: Optional[int] = None) -> Course:
        course = self.db.get(Course, course_id)
        if not course:
            raise NotFound(message, status_code=status_code)
        return course

    def list_courses(self) -> List[Course]:
        return self.db.query(Course).order_by(Course.created_at.desc(), Course.id.desc()).all()

    def get_lectures(self, course_id: int) -> List[Lecture]:
        return list(self._get_course(course_id, "Invalid course id", status_code=400).lectures)

    def create_course(
        self,
        title: str,
        description: str,
        category: str,
        created_by: str,
        thumbnail: Optional[StagedFile] = None
    ) -> Course:
        """
        Create a course and upload its optional thumbnail.

        Raises:
            ValidationFailed: a required field is blank
            MediaUploadFailed: the thumbnail upload failed; the course stays
                without thumbnail
        """
        if not all(v and v.strip() for v in (title, description, category, created_by)):
            raise ValidationFailed()

        course = Course(
            title=title,
            description=description,
            category=category,
            created_by=created_by,
            lecture_count=0
        )
        self.db.add(course)
        self.db.commit()

        if thumbnail is not None:
            self.media.attach(AttributeSlot(course, "thumbnail"), thumbnail, self.thumbnail_options)
            self.db.commit()

        self.db.refresh(course)
        logger.info(f"Course created: {course.id}")
        return course

    def update_course(self, course_id: int, changes: Dict[str, Any]) -> Course:
        """
        Apply an already validated partial update.

        ``changes`` comes from ``CourseUpdate.model_dump(exclude_unset=True)``.
        """
        course = self._get_course(course_id)
        for field, value in changes.items():
            setattr(course, field, value)
        self.db.commit()
        self.db.refresh(course)
        return course

    def remove_course(self, course_id: int) -> None:
        """
        Delete a course after releasing its thumbnail and lecture videos.

        Media store failures are logged and do not stop the delete.
        """
        course = self._get_course(course_id)
        self.media.release(AttributeSlot(course, "thumbnail"))
        for lecture in course.lectures:
            self.media.release(AttributeSlot(lecture, "media"), self.lecture_options.resource_type)
        self.db.delete(course)
        self.db.commit()
        logger.info(f"Course removed: {course_id}")

    def add_lecture(
        self,
        course_id: int,
        title: str,
        description: str,
        video: Optional[StagedFile] = None
    ) -> Course:
        """
        Append a lecture, uploading its video first when one is given.

        Raises:
            ValidationFailed: title or description is blank
            NotFound: unknown course
            MediaUploadFailed: the video upload failed; no lecture is added
        """
        if not (title and title.strip()) or not (description and description.strip()):
            raise ValidationFailed("Title and Description are required")

        course = self._get_course(course_id, "Invalid course id or course not found.", status_code=400)

        slot = DetachedSlot()
        ref: MediaReference = self.media.attach(slot, video, self.lecture_options)

        lecture = Lecture(title=title, description=description)
        lecture.media = ref
        course.lectures.append(lecture)
        course.recount_lectures()
        self.db.commit()
        self.db.refresh(course)
        logger.info(f"Lecture {lecture.id} added to course {course.id}")
        return course

    def remove_lecture(self, course_id: int, lecture_id: int) -> Course:
        """
        Release a lecture's video and remove the lecture from its course.

        A failed destroy is logged; the lecture is removed regardless.

        Raises:
            NotFound: unknown course or lecture
        """
        course = self._get_course(course_id, "Invalid ID or Course does not exist.")
        lecture = course.find_lecture(lecture_id)
        if lecture is None:
            raise NotFound("Lecture does not exist.")

        self.media.release(AttributeSlot(lecture, "media"), self.lecture_options.resource_type)

        course.lectures.remove(lecture)
        course.recount_lectures()
        self.db.commit()
        self.db.refresh(course)
        logger.info(f"Lecture {lecture_id} removed from course {course_id}")
        return course
