"""
Courses router for the LMS API.

Public catalog listing plus course and lecture management for logged in
users.
"""

from typing import Optional
from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile, status
from starlette.concurrency import run_in_threadpool

from lms_api.deps import get_catalog_service, get_coordinator, get_current_user, get_staging
from lms_api.schemas.common import MessageResponse
from lms_api.schemas.course import (
    CourseDetail,
    CourseEnvelope,
    CourseListEnvelope,
    CourseResponse,
    CourseUpdate,
    LectureListEnvelope,
    LectureResponse,
)
from lms_api.services.catalog import CatalogService
from lms_api.services.media import MediaAssetCoordinator, UploadStaging


router = APIRouter()


@router.get("", response_model=CourseListEnvelope)
async def list_courses(
    catalog: CatalogService = Depends(get_catalog_service)
) -> CourseListEnvelope:
    """
    List all courses, without their lectures.
    """
    return CourseListEnvelope(
        message="All courses",
        courses=[CourseResponse.model_validate(c) for c in catalog.list_courses()]
    )


@router.post(
    "",
    response_model=CourseEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_user)]
)
async def create_course(
    title: str = Form(...),
    description: str = Form(...),
    category: str = Form(...),
    created_by: str = Form(...),
    thumbnail: Optional[UploadFile] = File(None),
    catalog: CatalogService = Depends(get_catalog_service),
    media: MediaAssetCoordinator = Depends(get_coordinator),
    staging: UploadStaging = Depends(get_staging)
) -> CourseEnvelope:
    staged = await staging.save(thumbnail)
    with media.guard(staged):
        course = await run_in_threadpool(
            catalog.create_course, title, description, category, created_by, staged
        )

    return CourseEnvelope(
        message="Course created successfully",
        course=CourseDetail.model_validate(course)
    )


@router.delete("", response_model=MessageResponse, dependencies=[Depends(get_current_user)])
async def remove_lecture(
    course_id: int = Query(..., alias="courseId"),
    lecture_id: int = Query(..., alias="lectureId"),
    catalog: CatalogService = Depends(get_catalog_service)
) -> MessageResponse:
    """
    Remove a lecture from a course and release its video.
    """
    await run_in_threadpool(catalog.remove_lecture, course_id, lecture_id)
    return MessageResponse(message="Course lecture removed successfully")


@router.get("/{course_id}", response_model=LectureListEnvelope)
async def get_lectures(
    course_id: int,
    catalog: CatalogService = Depends(get_catalog_service)
) -> LectureListEnvelope:
    lectures = catalog.get_lectures(course_id)
    return LectureListEnvelope(
        message="Course lectures fetched successfully",
        lectures=[LectureResponse.model_validate(lecture) for lecture in lectures]
    )


@router.put("/{course_id}", response_model=CourseEnvelope, dependencies=[Depends(get_current_user)])
async def update_course(
    course_id: int,
    changes: CourseUpdate = Body(...),
    catalog: CatalogService = Depends(get_catalog_service)
) -> CourseEnvelope:
    course = catalog.update_course(course_id, changes.model_dump(exclude_unset=True))
    return CourseEnvelope(
        message="Course updated successfully",
        course=CourseDetail.model_validate(course)
    )


@router.delete("/{course_id}", response_model=MessageResponse, dependencies=[Depends(get_current_user)])
async def remove_course(
    course_id: int,
    catalog: CatalogService = Depends(get_catalog_service)
) -> MessageResponse:
    await run_in_threadpool(catalog.remove_course, course_id)
    return MessageResponse(message="Course deleted successfully")


@router.post("/{course_id}", response_model=CourseEnvelope, dependencies=[Depends(get_current_user)])
async def add_lecture(
    course_id: int,
    title: str = Form(...),
    description: str = Form(...),
    lecture: Optional[UploadFile] = File(None),
    catalog: CatalogService = Depends(get_catalog_service),
    media: MediaAssetCoordinator = Depends(get_coordinator),
    staging: UploadStaging = Depends(get_staging)
) -> CourseEnvelope:
    """
    Append a lecture to a course, uploading its video when one is attached.
    """
    staged = await staging.save(lecture)
    with media.guard(staged):
        course = await run_in_threadpool(catalog.add_lecture, course_id, title, description, staged)

    return CourseEnvelope(
        message="Course lecture added successfully",
        course=CourseDetail.model_validate(course)
    )
