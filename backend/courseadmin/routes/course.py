"""Course endpoints.

Create and update accept either `multipart/form-data` (with `image` / `pdf`
file parts) or JSON (with media given as URLs).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool
from sqlmodel import Session

from .. import models, schemas
from ..auth import require_admin, require_auth, require_teacher, require_teacher_or_admin
from ..database import get_session
from ..responses import envelope, page_data
from ..services import CourseService
from ..storage import get_media_storage
from .forms import read_payload, validate

router = APIRouter()

MEDIA_FIELDS = ("image", "pdf")
LIST_FIELDS = ("cash_numbers",)


@router.get("", dependencies=[Depends(require_auth)])
def list_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    level_id: Optional[str] = None,
    teacher_id: Optional[str] = None,
    session: Session = Depends(get_session),
):
    items, total = CourseService(session).list(page, limit, search=search, level_id=level_id, teacher_id=teacher_id)
    return envelope(page_data(items, total, page, limit), "Courses fetched successfully")


@router.get("/my-courses")
def my_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    level_id: Optional[str] = None,
    session: Session = Depends(get_session),
    teacher: models.User = Depends(require_teacher),
):
    items, total = CourseService(session).list(page, limit, search=search, level_id=level_id, teacher_id=teacher.id)
    return envelope(page_data(items, total, page, limit), "Courses fetched successfully")


@router.get("/{course_id}", dependencies=[Depends(require_auth)])
def get_course(course_id: str, session: Session = Depends(get_session)):
    course = CourseService(session).get(course_id)
    return envelope(schemas.CourseDetail.model_validate(course), "Course fetched successfully")


@router.post("")
async def create_course(
    request: Request,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
    storage=Depends(get_media_storage),
):
    data, media = await read_payload(request, MEDIA_FIELDS, LIST_FIELDS)
    payload = validate(schemas.CourseIn, data)
    service = CourseService(session, storage)
    course = await run_in_threadpool(service.create, user, payload, media["image"], media["pdf"])
    return envelope(schemas.CourseDetail.model_validate(course), "Course created successfully", status_code=201)


@router.patch("/{course_id}")
async def update_course(
    course_id: str,
    request: Request,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
    storage=Depends(get_media_storage),
):
    data, media = await read_payload(request, MEDIA_FIELDS, LIST_FIELDS)
    payload = validate(schemas.CoursePatch, data)
    service = CourseService(session, storage)
    course = await run_in_threadpool(service.update, user, course_id, payload, media["image"], media["pdf"])
    return envelope(schemas.CourseDetail.model_validate(course), "Course updated successfully")


@router.delete("/{course_id}", dependencies=[Depends(require_admin)])
def delete_course(course_id: str, session: Session = Depends(get_session), storage=Depends(get_media_storage)):
    CourseService(session, storage).delete(course_id)
    return envelope(None, "Course deleted successfully")
