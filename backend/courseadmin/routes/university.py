"""University endpoints. Reads need a session; writes need `ADMIN`."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import schemas
from ..auth import require_admin, require_auth
from ..database import get_session
from ..responses import envelope, page_data
from ..services import UniversityService
from ..storage import get_media_storage

router = APIRouter()


@router.get("", dependencies=[Depends(require_auth)])
def list_universities(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    session: Session = Depends(get_session),
):
    items, total = UniversityService(session).list(page, limit, search=search)
    rows = [schemas.UniversityOut.model_validate(u) for u in items]
    return envelope(page_data(rows, total, page, limit), "Universities fetched successfully")


@router.get("/{university_id}", dependencies=[Depends(require_auth)])
def get_university(university_id: str, session: Session = Depends(get_session)):
    university = UniversityService(session).get(university_id)
    return envelope(schemas.UniversityOut.model_validate(university), "University fetched successfully")


@router.post("", dependencies=[Depends(require_admin)])
def create_university(payload: schemas.UniversityIn, session: Session = Depends(get_session)):
    university = UniversityService(session).create(payload)
    return envelope(schemas.UniversityOut.model_validate(university), "University created successfully", status_code=201)


@router.patch("/{university_id}", dependencies=[Depends(require_admin)])
def update_university(university_id: str, payload: schemas.UniversityPatch, session: Session = Depends(get_session)):
    university = UniversityService(session).update(university_id, payload)
    return envelope(schemas.UniversityOut.model_validate(university), "University updated successfully")


@router.delete("/{university_id}", dependencies=[Depends(require_admin)])
def delete_university(university_id: str, session: Session = Depends(get_session), storage=Depends(get_media_storage)):
    UniversityService(session, storage).delete(university_id)
    return envelope(None, "University deleted successfully")
