"""Account services: authentication, password reset, device recovery and admin user management."""

import logging
from typing import List, Optional, Sequence, Tuple

import jwt
from sqlmodel import Session

from .. import models, repositories, schemas
from ..config import settings
from ..exceptions import AuthenticationError, ConflictError, NotFoundError
from ..security import (
    create_reset_token,
    create_session_token,
    decode_reset_token,
    hash_password,
    password_fingerprint,
    verify_password,
)
from .common import conflict_on_integrity

logger = logging.getLogger("courseadmin.accounts")

DEVICE_MISMATCH = "This account is bound to another device"


class AuthService:
    """Signup, login with device binding, password reset and recovery requests."""

    def __init__(self, session: Session):
        self.session = session
        self.users = repositories.UserRepository(session)
        self.recovery = repositories.RecoveryRepository(session)

    def signup(self, data: schemas.SignupIn) -> Tuple[models.User, str]:
        """Create a student account and return it with a session token."""
        email = data.email.lower()
        if self.users.get_by_email(email):
            raise ConflictError("Email already registered")
        user = models.User(
            email=email,
            name=data.name,
            password_hash=hash_password(data.password),
            role=models.UserRole.USER,
            email_verified=True,
        )
        with conflict_on_integrity(self.session, "Email already registered"):
            self.users.add(user)
            self.session.commit()
        self.session.refresh(user)
        logger.info("signup user_id=%s", user.id)
        return user, create_session_token(user)

    def login(self, data: schemas.LoginIn) -> Tuple[models.User, str]:
        """Verify credentials and return `(user, session token)`.

        Students (`USER`) are bound to the first device they log in from;
        later logins must present the same `device_id`.
        """
        user = self.users.get_by_email(data.email)
        if not user or not verify_password(data.password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        if user.is_banned:
            raise PermissionError(user.ban_reason or "Account is banned")
        if user.role == models.UserRole.USER:
            if user.device_id is None:
                if data.device_id:
                    user.device_id = data.device_id
                    self.users.add(user)
                    self.session.commit()
                    logger.info("device bound user_id=%s", user.id)
            elif user.device_id != data.device_id:
                logger.info("device mismatch user_id=%s", user.id)
                raise PermissionError(DEVICE_MISMATCH)
        return user, create_session_token(user)

    def forgot_password(self, email: str) -> Optional[str]:
        """Issue a reset token for a known email; unknown emails are silently ignored.

        Outbound email is not wired: in dev the reset link is written to the log.
        """
        user = self.users.get_by_email(email)
        if not user:
            return None
        token = create_reset_token(user)
        if settings.ENV == "dev":
            logger.info("password reset link for user_id=%s: /reset-password?token=%s", user.id, token)
        return token

    def reset_password(self, token: str, new_password: str) -> models.User:
        try:
            payload = decode_reset_token(token)
        except jwt.InvalidTokenError as exc:
            raise ValueError("Invalid or expired reset token") from exc
        user = self.users.get(payload["sub"])
        # the fingerprint changes with the password, so a token works once
        if not user or payload.get("fp") != password_fingerprint(user.password_hash):
            raise ValueError("Invalid or expired reset token")
        user.password_hash = hash_password(new_password)
        self.users.add(user)
        self.session.commit()
        logger.info("password reset user_id=%s", user.id)
        return user

    def request_recovery(self, data: schemas.RecoveryRequestIn) -> models.RecoveryRequest:
        """File a device recovery request for a banned account."""
        user = self.users.get_by_email(data.email)
        if not user:
            raise NotFoundError("User not found")
        if not user.is_banned:
            raise ValueError("Account is not banned")
        if self.recovery.pending_for_user(user.id):
            raise ConflictError("You already have a pending recovery request")
        request = models.RecoveryRequest(user_id=user.id, message=data.message, new_device_id=data.device_id)
        self.recovery.add(request)
        self.session.commit()
        self.session.refresh(request)
        logger.info("recovery requested user_id=%s request_id=%s", user.id, request.id)
        return request

    def recovery_status(self, email: str) -> models.RecoveryRequest:
        user = self.users.get_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        request = self.recovery.latest_for_user(user.id)
        if not request:
            raise NotFoundError("No recovery request found")
        return request


class AdminService:
    """User, teacher, student and recovery management for admins."""

    def __init__(self, session: Session):
        self.session = session
        self.users = repositories.UserRepository(session)
        self.recovery = repositories.RecoveryRepository(session)
        self.levels = repositories.LevelRepository(session)

    # ---- users --------------------------------------------------------------

    def get_user(self, user_id: str) -> models.User:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(self, role: Optional[models.UserRole] = None) -> List[models.User]:
        return self.users.list_all(role)

    def create_user(self, data: schemas.CreateUserIn) -> models.User:
        email = data.email.lower()
        if self.users.get_by_email(email):
            raise ConflictError("Email already registered")
        user = models.User(
            email=email,
            name=data.name,
            password_hash=hash_password(data.password),
            role=models.UserRole(data.role),
            email_verified=True,
        )
        with conflict_on_integrity(self.session, "Email already registered"):
            self.users.add(user)
            self.session.commit()
        self.session.refresh(user)
        logger.info("user created user_id=%s role=%s", user.id, user.role.value)
        return user

    def ensure_admin(self, email: str, name: str, password: str) -> models.User:
        """Create an admin account, or promote and re-key an existing one.

        Admins cannot be created through the API; this backs the CLI bootstrap.
        """
        schemas.check_password_policy(password)
        user = self.users.get_by_email(email)
        if user is None:
            user = models.User(email=email.lower(), name=name, password_hash="", email_verified=True)
        user.role = models.UserRole.ADMIN
        user.name = name
        user.password_hash = hash_password(password)
        user.is_banned = False
        user.ban_reason = None
        self.users.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("admin ensured user_id=%s", user.id)
        return user

    def update_user(self, actor: models.User, user_id: str, data: schemas.UpdateUserIn) -> models.User:
        user = self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            changes["email"] = changes["email"].lower()
            other = self.users.get_by_email(changes["email"])
            if other and other.id != user.id:
                raise ConflictError("Email already registered")
        if "role" in changes:
            new_role = models.UserRole(changes["role"])
            if user.id == actor.id and new_role != user.role:
                raise ValueError("You cannot change your own role")
            if user.role == models.UserRole.TEACHER and new_role != user.role and self.users.count_courses(user.id):
                raise ConflictError("Teacher still owns courses; reassign them first")
            changes["role"] = new_role
        for key, value in changes.items():
            setattr(user, key, value)
        with conflict_on_integrity(self.session, "Email already registered"):
            self.users.add(user)
            self.session.commit()
        self.session.refresh(user)
        return user

    def change_password(self, user_id: str, password: str) -> models.User:
        user = self.get_user(user_id)
        user.password_hash = hash_password(password)
        self.users.add(user)
        self.session.commit()
        logger.info("password changed by admin user_id=%s", user.id)
        return user

    def delete_user(self, actor: models.User, user_id: str) -> None:
        user = self.get_user(user_id)
        if user.id == actor.id:
            raise ValueError("You cannot delete your own account")
        owned = self.users.count_courses(user.id)
        if owned:
            raise ConflictError(f"Teacher still owns {owned} course(s); reassign or delete them first")
        self.users.delete(user)
        self.session.commit()
        logger.info("user deleted user_id=%s by=%s", user_id, actor.id)

    def ban(self, actor: models.User, user_id: str, reason: str) -> models.User:
        user = self.get_user(user_id)
        if user.id == actor.id:
            raise ValueError("You cannot ban yourself")
        if user.role == models.UserRole.ADMIN:
            raise ValueError("Admins cannot be banned")
        user.is_banned = True
        user.ban_reason = reason
        self.users.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("user banned user_id=%s by=%s", user.id, actor.id)
        return user

    def unban(self, user_id: str) -> models.User:
        """Lift a ban and release the device binding so the next login binds afresh."""
        user = self.get_user(user_id)
        user.is_banned = False
        user.ban_reason = None
        user.device_id = None
        self.users.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("user unbanned user_id=%s", user.id)
        return user

    # ---- teachers and students ---------------------------------------------

    def list_teachers(self, page: int, limit: int, is_banned: Optional[bool] = None, search: Optional[str] = None):
        return self.users.search_page(models.UserRole.TEACHER, page, limit, is_banned=is_banned, search=search)

    def list_students(
        self,
        page: int,
        limit: int,
        is_banned: Optional[bool] = None,
        search: Optional[str] = None,
        level_id: Optional[str] = None,
        department_id: Optional[str] = None,
        college_id: Optional[str] = None,
        university_id: Optional[str] = None,
    ):
        """Page through students, filtered by the most specific hierarchy id given."""
        if level_id:
            level_ids = level_id
        elif department_id:
            level_ids = self.levels.ids_in_department(department_id)
        elif college_id:
            level_ids = self.levels.ids_in_college(college_id)
        elif university_id:
            level_ids = self.levels.ids_in_university(university_id)
        else:
            level_ids = None
        return self.users.search_page(
            models.UserRole.USER, page, limit, is_banned=is_banned, search=search, level_ids=level_ids
        )

    def get_student(self, user_id: str) -> models.User:
        user = self.users.get(user_id)
        if not user or user.role != models.UserRole.USER:
            raise NotFoundError("Student not found")
        return user

    def _check_level(self, level_id: Optional[str]) -> None:
        if level_id is not None and not self.levels.get(level_id):
            raise NotFoundError("Level not found")

    def set_student_level(self, user_id: str, level_id: Optional[str]) -> models.User:
        user = self.get_student(user_id)
        self._check_level(level_id)
        user.level_id = level_id
        self.users.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def bulk_set_level(self, user_ids: Sequence[str], level_id: Optional[str]) -> int:
        """Move many students to `level_id`; ids that are not students are skipped."""
        self._check_level(level_id)
        students = self.users.students_by_ids(user_ids)
        for user in students:
            user.level_id = level_id
            self.session.add(user)
        self.session.commit()
        logger.info("bulk level update count=%d level_id=%s", len(students), level_id)
        return len(students)

    # ---- recovery requests -------------------------------------------------

    def list_recovery_requests(self) -> List[models.RecoveryRequest]:
        return self.recovery.list_pending()

    def _pending_request(self, request_id: str) -> models.RecoveryRequest:
        request = self.recovery.get(request_id)
        if not request:
            raise NotFoundError("Recovery request not found")
        if request.status != models.RecoveryStatus.PENDING:
            raise ConflictError(f"Recovery request already {request.status.value.lower()}")
        return request

    def approve_recovery(self, request_id: str, admin_note: Optional[str]) -> models.RecoveryRequest:
        """Approve a request: unban the user and clear the device binding."""
        request = self._pending_request(request_id)
        request.status = models.RecoveryStatus.APPROVED
        request.admin_note = admin_note
        user = request.user
        user.is_banned = False
        user.ban_reason = None
        user.device_id = None
        self.session.add(user)
        self.recovery.add(request)
        self.session.commit()
        self.session.refresh(request)
        logger.info("recovery approved request_id=%s user_id=%s", request.id, user.id)
        return request

    def reject_recovery(self, request_id: str, admin_note: Optional[str]) -> models.RecoveryRequest:
        request = self._pending_request(request_id)
        request.status = models.RecoveryStatus.REJECTED
        request.admin_note = admin_note
        self.recovery.add(request)
        self.session.commit()
        self.session.refresh(request)
        logger.info("recovery rejected request_id=%s", request.id)
        return request
