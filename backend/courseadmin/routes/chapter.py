"""Chapter endpoints. Writes need the owning teacher or an admin."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models, schemas
from ..auth import require_auth, require_teacher_or_admin
from ..database import get_session
from ..responses import envelope
from ..services import ChapterService
from ..storage import get_media_storage

router = APIRouter()


@router.post("")
def create_chapter(
    payload: schemas.ChapterIn,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
):
    chapter = ChapterService(session).create(user, payload)
    return envelope(schemas.ChapterOut.model_validate(chapter), "Chapter created successfully", status_code=201)


@router.post("/reorder")
def reorder_chapters(
    payload: schemas.ChapterReorderIn,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
):
    chapters = ChapterService(session).reorder(user, payload.course_id, payload.chapter_ids)
    return envelope([schemas.ChapterSummary.model_validate(c) for c in chapters], "Chapters reordered successfully")


@router.get("", dependencies=[Depends(require_auth)])
def list_chapters(course_id: str = Query(..., min_length=1), session: Session = Depends(get_session)):
    chapters = ChapterService(session).list(course_id)
    return envelope([schemas.ChapterOut.model_validate(c) for c in chapters], "Chapters fetched successfully")


@router.get("/{chapter_id}", dependencies=[Depends(require_auth)])
def get_chapter(chapter_id: str, session: Session = Depends(get_session)):
    chapter = ChapterService(session).get(chapter_id)
    return envelope(schemas.ChapterDetail.model_validate(chapter), "Chapter fetched successfully")


@router.patch("/{chapter_id}")
def update_chapter(
    chapter_id: str,
    payload: schemas.ChapterPatch,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
):
    chapter = ChapterService(session).update(user, chapter_id, payload)
    return envelope(schemas.ChapterOut.model_validate(chapter), "Chapter updated successfully")


@router.delete("/{chapter_id}")
def delete_chapter(
    chapter_id: str,
    session: Session = Depends(get_session),
    user: models.User = Depends(require_teacher_or_admin),
    storage=Depends(get_media_storage),
):
    ChapterService(session, storage).delete(user, chapter_id)
    return envelope(None, "Chapter deleted successfully")
