"""Session cookie handling and FastAPI security dependencies.

`get_current_user` accepts the session token from the HttpOnly cookie or,
for API clients, from an `Authorization: Bearer` header. The user row is
re-loaded on every request so bans and role changes apply to sessions that
are already open.

Role checks are expressed as dependencies (`require_admin`,
`require_teacher`, ...) and attached to routes; services still enforce
ownership rules that depend on the record being touched.
"""

import jwt
from fastapi import Depends, HTTPException, Request, Response, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .database import get_session
from .security import decode_session_token

bearer_scheme = HTTPBearer(auto_error=False)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_HOURS * 3600,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated, non-banned user.

    Raises HTTPException 401 when no valid session is presented and 403
    (carrying the ban reason) when the account is banned.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_session_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid session")
    user = repositories.UserRepository(session).get(payload["sub"])
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if user.is_banned:
        raise HTTPException(status_code=403, detail=user.ban_reason or "Account is banned")
    return user


def require_roles(*roles: models.UserRole):
    """Build a dependency admitting only users whose role is in `roles`."""
    allowed = frozenset(roles)

    def _check(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _check


require_auth = get_current_user
require_admin = require_roles(models.UserRole.ADMIN)
require_teacher = require_roles(models.UserRole.TEACHER)
require_teacher_or_admin = require_roles(models.UserRole.TEACHER, models.UserRole.ADMIN)
