"""Password hashing and signed tokens.

Session tokens and password-reset tokens are both JWTs signed with
`SESSION_SECRET`; they are told apart by the `purpose` claim so one can
never be replayed as the other.
"""

import hashlib
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from .config import settings

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_PURPOSE = "session"
RESET_PURPOSE = "password_reset"


def hash_password(password: str) -> str:
    return PWD_CTX.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return PWD_CTX.verify(password, password_hash)


def _encode(claims: dict, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**claims, "iat": int(now.timestamp()), "exp": int((now + ttl).timestamp())}
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)


def _decode(token: str, purpose: str) -> dict:
    """Verify signature, expiry and purpose; raise `jwt.InvalidTokenError` otherwise."""
    payload = jwt.decode(token, settings.SESSION_SECRET, algorithms=[settings.SESSION_ALGORITHM])
    if payload.get("purpose") != purpose or not payload.get("sub"):
        raise jwt.InvalidTokenError("wrong token purpose")
    return payload


def create_session_token(user) -> str:
    """Sign a session token for `user` valid for SESSION_TTL_HOURS."""
    claims = {"sub": user.id, "role": user.role.value, "purpose": SESSION_PURPOSE}
    return _encode(claims, timedelta(hours=settings.SESSION_TTL_HOURS))


def decode_session_token(token: str) -> dict:
    return _decode(token, SESSION_PURPOSE)


def password_fingerprint(password_hash: str) -> str:
    """Short digest of the stored hash; it changes whenever the password does."""
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def create_reset_token(user) -> str:
    claims = {"sub": user.id, "purpose": RESET_PURPOSE, "fp": password_fingerprint(user.password_hash)}
    return _encode(claims, timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES))


def decode_reset_token(token: str) -> dict:
    return _decode(token, RESET_PURPOSE)
