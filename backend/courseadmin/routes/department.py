"""Department endpoints. Reads need a session; writes need `ADMIN`."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import schemas
from ..auth import require_admin, require_auth
from ..database import get_session
from ..responses import envelope
from ..services import DepartmentService
from ..storage import get_media_storage

router = APIRouter()


@router.get("", dependencies=[Depends(require_auth)])
def list_departments(college_id: str = Query(..., min_length=1), session: Session = Depends(get_session)):
    items = DepartmentService(session).list(college_id)
    return envelope([schemas.DepartmentOut.model_validate(d) for d in items], "Departments fetched successfully")


@router.get("/{department_id}", dependencies=[Depends(require_auth)])
def get_department(department_id: str, session: Session = Depends(get_session)):
    department = DepartmentService(session).get(department_id)
    return envelope(schemas.DepartmentOut.model_validate(department), "Department fetched successfully")


@router.post("", dependencies=[Depends(require_admin)])
def create_department(payload: schemas.DepartmentIn, session: Session = Depends(get_session)):
    department = DepartmentService(session).create(payload)
    return envelope(schemas.DepartmentOut.model_validate(department), "Department created successfully", status_code=201)


@router.patch("/{department_id}", dependencies=[Depends(require_admin)])
def update_department(department_id: str, payload: schemas.DepartmentPatch, session: Session = Depends(get_session)):
    department = DepartmentService(session).update(department_id, payload)
    return envelope(schemas.DepartmentOut.model_validate(department), "Department updated successfully")


@router.delete("/{department_id}", dependencies=[Depends(require_admin)])
def delete_department(department_id: str, session: Session = Depends(get_session), storage=Depends(get_media_storage)):
    DepartmentService(session, storage).delete(department_id)
    return envelope(None, "Department deleted successfully")
