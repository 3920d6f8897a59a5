"""Authentication endpoints: signup, login, logout, password reset and device recovery."""

from fastapi import APIRouter, Depends, Query
from pydantic import EmailStr
from sqlmodel import Session

from .. import models, schemas
from ..auth import clear_session_cookie, require_auth, set_session_cookie
from ..database import get_session
from ..responses import envelope
from ..services import AuthService
from ..utils.rate_limit import throttle

router = APIRouter()


@router.post("/signup")
def signup(payload: schemas.SignupIn, session: Session = Depends(get_session)):
    user, token = AuthService(session).signup(payload)
    data = {"user": schemas.UserOut.model_validate(user), "token": token}
    response = envelope(data, "Account created successfully", status_code=201)
    set_session_cookie(response, token)
    return response


@router.post("/login", dependencies=[Depends(throttle("login"))])
def login(payload: schemas.LoginIn, session: Session = Depends(get_session)):
    user, token = AuthService(session).login(payload)
    data = {"user": schemas.UserOut.model_validate(user), "token": token}
    response = envelope(data, "Login successful")
    set_session_cookie(response, token)
    return response


@router.post("/logout")
def logout():
    response = envelope(None, "Logged out")
    clear_session_cookie(response)
    return response


@router.get("/me")
def me(user: models.User = Depends(require_auth)):
    return envelope(schemas.UserOut.model_validate(user), "Current user")


@router.post("/forgot-password")
def forgot_password(payload: schemas.ForgotPasswordIn, session: Session = Depends(get_session)):
    AuthService(session).forgot_password(payload.email)
    # same answer for unknown emails
    return envelope(None, "If the email exists, a reset link will be sent")


@router.post("/reset-password")
def reset_password(payload: schemas.ResetPasswordIn, session: Session = Depends(get_session)):
    AuthService(session).reset_password(payload.token, payload.new_password)
    return envelope(None, "Password reset successfully")


@router.post("/recovery/request", dependencies=[Depends(throttle("recovery"))])
def request_recovery(payload: schemas.RecoveryRequestIn, session: Session = Depends(get_session)):
    request = AuthService(session).request_recovery(payload)
    return envelope({"request_id": request.id}, "Recovery request submitted successfully", status_code=201)


@router.get("/recovery/status")
def recovery_status(email: EmailStr = Query(...), session: Session = Depends(get_session)):
    request = AuthService(session).recovery_status(email)
    return envelope(schemas.RecoveryStatusOut.model_validate(request), "Recovery status")
