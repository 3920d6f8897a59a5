"""College endpoints. Reads need a session; writes need `ADMIN`."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import schemas
from ..auth import require_admin, require_auth
from ..database import get_session
from ..responses import envelope, page_data
from ..services import CollegeService
from ..storage import get_media_storage

router = APIRouter()


@router.get("", dependencies=[Depends(require_auth)])
def list_colleges(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    university_id: Optional[str] = None,
    session: Session = Depends(get_session),
):
    items, total = CollegeService(session).list(page, limit, search=search, university_id=university_id)
    rows = [schemas.CollegeOut.model_validate(c) for c in items]
    return envelope(page_data(rows, total, page, limit), "Colleges fetched successfully")


@router.get("/{college_id}", dependencies=[Depends(require_auth)])
def get_college(college_id: str, session: Session = Depends(get_session)):
    college = CollegeService(session).get(college_id)
    return envelope(schemas.CollegeOut.model_validate(college), "College fetched successfully")


@router.post("", dependencies=[Depends(require_admin)])
def create_college(payload: schemas.CollegeIn, session: Session = Depends(get_session)):
    college = CollegeService(session).create(payload)
    return envelope(schemas.CollegeOut.model_validate(college), "College created successfully", status_code=201)


@router.patch("/{college_id}", dependencies=[Depends(require_admin)])
def update_college(college_id: str, payload: schemas.CollegePatch, session: Session = Depends(get_session)):
    college = CollegeService(session).update(college_id, payload)
    return envelope(schemas.CollegeOut.model_validate(college), "College updated successfully")


@router.delete("/{college_id}", dependencies=[Depends(require_admin)])
def delete_college(college_id: str, session: Session = Depends(get_session), storage=Depends(get_media_storage)):
    CollegeService(session, storage).delete(college_id)
    return envelope(None, "College deleted successfully")
