"""Admin endpoints for accounts, teachers, students and recovery requests.

Every route requires the `ADMIN` role.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models, schemas
from ..auth import require_admin
from ..database import get_session
from ..responses import envelope, page_data
from ..services import AdminService

router = APIRouter(dependencies=[Depends(require_admin)])

BanFilter = Literal["all", "true", "false"]


def _banned(value: BanFilter) -> Optional[bool]:
    return None if value == "all" else value == "true"


# ---- users --------------------------------------------------------------------

@router.post("/users")
def create_user(payload: schemas.CreateUserIn, session: Session = Depends(get_session)):
    user = AdminService(session).create_user(payload)
    return envelope(schemas.UserOut.model_validate(user), "User created successfully", status_code=201)


@router.get("/users")
def list_users(role: Optional[models.UserRole] = None, session: Session = Depends(get_session)):
    users = AdminService(session).list_users(role)
    return envelope([schemas.UserOut.model_validate(u) for u in users], "Users fetched successfully")


@router.get("/users/{user_id}")
def get_user(user_id: str, session: Session = Depends(get_session)):
    user = AdminService(session).get_user(user_id)
    return envelope(schemas.UserDetail.model_validate(user), "User fetched successfully")


@router.patch("/users/{user_id}")
def update_user(
    user_id: str,
    payload: schemas.UpdateUserIn,
    session: Session = Depends(get_session),
    admin: models.User = Depends(require_admin),
):
    user = AdminService(session).update_user(admin, user_id, payload)
    return envelope(schemas.UserOut.model_validate(user), "User updated successfully")


@router.patch("/users/{user_id}/password")
def change_password(user_id: str, payload: schemas.ChangePasswordIn, session: Session = Depends(get_session)):
    AdminService(session).change_password(user_id, payload.password)
    return envelope(None, "Password updated successfully")


@router.delete("/users/{user_id}")
def delete_user(user_id: str, session: Session = Depends(get_session), admin: models.User = Depends(require_admin)):
    AdminService(session).delete_user(admin, user_id)
    return envelope(None, "User deleted successfully")


@router.patch("/users/{user_id}/ban")
def ban_user(
    user_id: str,
    payload: schemas.BanIn,
    session: Session = Depends(get_session),
    admin: models.User = Depends(require_admin),
):
    user = AdminService(session).ban(admin, user_id, payload.reason)
    return envelope(schemas.UserOut.model_validate(user), "User banned successfully")


@router.patch("/users/{user_id}/unban")
def unban_user(user_id: str, session: Session = Depends(get_session)):
    user = AdminService(session).unban(user_id)
    return envelope(schemas.UserOut.model_validate(user), "User unbanned successfully")


# ---- teachers and students ----------------------------------------------------

@router.get("/teachers")
def list_teachers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    is_banned: BanFilter = "all",
    search: Optional[str] = None,
    session: Session = Depends(get_session),
):
    items, total = AdminService(session).list_teachers(page, limit, is_banned=_banned(is_banned), search=search)
    rows = [schemas.TeacherRow.model_validate(u) for u in items]
    return envelope(page_data(rows, total, page, limit), "Teachers fetched successfully")


@router.get("/students")
def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    is_banned: BanFilter = "all",
    search: Optional[str] = None,
    level_id: Optional[str] = None,
    department_id: Optional[str] = None,
    college_id: Optional[str] = None,
    university_id: Optional[str] = None,
    session: Session = Depends(get_session),
):
    items, total = AdminService(session).list_students(
        page,
        limit,
        is_banned=_banned(is_banned),
        search=search,
        level_id=level_id,
        department_id=department_id,
        college_id=college_id,
        university_id=university_id,
    )
    rows = [schemas.StudentRow.model_validate(u) for u in items]
    return envelope(page_data(rows, total, page, limit), "Students fetched successfully")


@router.patch("/students/bulk-level")
def bulk_student_level(payload: schemas.BulkStudentLevelIn, session: Session = Depends(get_session)):
    count = AdminService(session).bulk_set_level(payload.user_ids, payload.level_id)
    return envelope({"count": count}, f"Updated {count} student(s)")


@router.get("/students/{user_id}")
def get_student(user_id: str, session: Session = Depends(get_session)):
    user = AdminService(session).get_student(user_id)
    return envelope(schemas.StudentDetail.model_validate(user), "Student fetched successfully")


@router.patch("/students/{user_id}/level")
def set_student_level(user_id: str, payload: schemas.StudentLevelIn, session: Session = Depends(get_session)):
    user = AdminService(session).set_student_level(user_id, payload.level_id)
    return envelope(schemas.StudentDetail.model_validate(user), "Student level updated")


# ---- recovery requests --------------------------------------------------------

@router.get("/recovery-requests")
def list_recovery_requests(session: Session = Depends(get_session)):
    requests = AdminService(session).list_recovery_requests()
    return envelope([schemas.RecoveryRequestOut.model_validate(r) for r in requests], "Recovery requests fetched")


@router.patch("/recovery-requests/{request_id}/approve")
def approve_recovery(request_id: str, payload: Optional[schemas.AdminNoteIn] = None, session: Session = Depends(get_session)):
    request = AdminService(session).approve_recovery(request_id, payload.admin_note if payload else None)
    return envelope(schemas.RecoveryRequestOut.model_validate(request), "Recovery request approved")


@router.patch("/recovery-requests/{request_id}/reject")
def reject_recovery(request_id: str, payload: Optional[schemas.AdminNoteIn] = None, session: Session = Depends(get_session)):
    request = AdminService(session).reject_recovery(request_id, payload.admin_note if payload else None)
    return envelope(schemas.RecoveryRequestOut.model_validate(request), "Recovery request rejected")
