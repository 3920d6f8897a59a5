"""Lesson endpoints.

Create and update accept multipart forms (`video`, `pdf`, `thumbnail` file
parts) or JSON with media given as URLs; writes need the teacher owning the
course or an admin.
"""

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool
from sqlmodel import Session

from .. import models, schemas
from ..auth import require_auth, require_teacher_or_admin
from ..database import get_session
from ..responses import envelope
from ..services import LessonService
from ..storage import get_media_storage
from .forms import read_payload, validate

router = APIRouter()

MEDIA_FIELDS = ("video", "pdf", "thumbnail")


@router.post("")
async def create_lesson(
    request: Request,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
    storage=Depends(get_media_storage),
):
    data, media = await read_payload(request, MEDIA_FIELDS)
    payload = validate(schemas.LessonIn, data)
    service = LessonService(session, storage)
    lesson = await run_in_threadpool(service.create, user, payload, media)
    return envelope(schemas.LessonOut.model_validate(lesson), "Lesson created successfully", status_code=201)


@router.post("/reorder")
def reorder_lessons(
    payload: schemas.LessonReorderIn,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
):
    lessons = LessonService(session).reorder(user, payload.chapter_id, payload.lesson_ids)
    return envelope([schemas.LessonOut.model_validate(lesson) for lesson in lessons], "Lessons reordered successfully")


@router.get("", dependencies=[Depends(require_auth)])
def list_lessons(chapter_id: str = Query(..., min_length=1), session: Session = Depends(get_session)):
    lessons = LessonService(session).list(chapter_id)
    return envelope([schemas.LessonOut.model_validate(lesson) for lesson in lessons], "Lessons fetched successfully")


@router.get("/{lesson_id}", dependencies=[Depends(require_auth)])
def get_lesson(lesson_id: str, session: Session = Depends(get_session)):
    lesson = LessonService(session).get(lesson_id)
    return envelope(schemas.LessonDetail.model_validate(lesson), "Lesson fetched successfully")


@router.patch("/{lesson_id}")
async def update_lesson(
    lesson_id: str,
    request: Request,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
    storage=Depends(get_media_storage),
):
    data, media = await read_payload(request, MEDIA_FIELDS)
    payload = validate(schemas.LessonPatch, data)
    service = LessonService(session, storage)
    lesson = await run_in_threadpool(service.update, user, lesson_id, payload, media)
    return envelope(schemas.LessonOut.model_validate(lesson), "Lesson updated successfully")


@router.delete("/{lesson_id}")
def delete_lesson(
    lesson_id: str,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
    storage=Depends(get_media_storage),
):
    LessonService(session, storage).delete(user, lesson_id)
    return envelope(None, "Lesson deleted successfully")
