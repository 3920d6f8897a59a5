"""Level endpoints. Reads need a session; writes need `ADMIN`."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import schemas
from ..auth import require_admin, require_auth
from ..database import get_session
from ..responses import envelope
from ..services import LevelService
from ..storage import get_media_storage

router = APIRouter()


@router.get("", dependencies=[Depends(require_auth)])
def list_levels(department_id: str = Query(..., min_length=1), session: Session = Depends(get_session)):
    items = LevelService(session).list(department_id)
    return envelope([schemas.LevelOut.model_validate(lvl) for lvl in items], "Levels fetched successfully")


@router.get("/{level_id}", dependencies=[Depends(require_auth)])
def get_level(level_id: str, session: Session = Depends(get_session)):
    level = LevelService(session).get(level_id)
    return envelope(schemas.LevelOut.model_validate(level), "Level fetched successfully")


@router.post("", dependencies=[Depends(require_admin)])
def create_level(payload: schemas.LevelIn, session: Session = Depends(get_session)):
    level = LevelService(session).create(payload)
    return envelope(schemas.LevelOut.model_validate(level), "Level created successfully", status_code=201)


@router.patch("/{level_id}", dependencies=[Depends(require_admin)])
def update_level(level_id: str, payload: schemas.LevelPatch, session: Session = Depends(get_session)):
    level = LevelService(session).update(level_id, payload)
    return envelope(schemas.LevelOut.model_validate(level), "Level updated successfully")


@router.delete("/{level_id}", dependencies=[Depends(require_admin)])
def delete_level(level_id: str, session: Session = Depends(get_session), storage=Depends(get_media_storage)):
    LevelService(session, storage).delete(level_id)
    return envelope(None, "Level deleted successfully")
