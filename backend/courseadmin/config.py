"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    ENV: str
    DATABASE_URL: str
    SESSION_SECRET: str
    SESSION_ALGORITHM: str
    SESSION_TTL_HOURS: int
    SESSION_COOKIE_NAME: str
    COOKIE_SECURE: bool
    PASSWORD_RESET_TTL_MINUTES: int
    MAX_UPLOAD_BYTES: int
    MAX_VIDEO_UPLOAD_BYTES: int
    ALLOW_INSECURE_SECRET: bool
    ALLOW_DEV_CORS: bool
    CORS_ORIGINS: list
    SUPABASE_URL: str
    SUPABASE_SERVICE_ROLE_KEY: str
    MEDIA_BUCKET: str
    LOGIN_RATE_LIMIT_PER_MIN: int
    TRUST_PROXY_HEADERS: bool
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'app.db'}")
        self.SESSION_SECRET = os.getenv("SESSION_SECRET", "change_me_for_prod")
        self.SESSION_ALGORITHM = os.getenv("SESSION_ALGORITHM", "HS256")
        self.SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "168"))
        self.SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")
        self.COOKIE_SECURE = _flag("COOKIE_SECURE", "true")
        self.PASSWORD_RESET_TTL_MINUTES = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "60"))
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))  # 10 MB default
        self.MAX_VIDEO_UPLOAD_BYTES = int(os.getenv("MAX_VIDEO_UPLOAD_BYTES", str(200 * 1024 * 1024)))
        self.ALLOW_INSECURE_SECRET = _flag("ALLOW_INSECURE_SECRET", "false")
        self.ALLOW_DEV_CORS = _flag("ALLOW_DEV_CORS", "true")
        self.CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]
        self.SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip()
        self.SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip()
        self.MEDIA_BUCKET = os.getenv("MEDIA_BUCKET", "media")
        self.LOGIN_RATE_LIMIT_PER_MIN = int(os.getenv("LOGIN_RATE_LIMIT_PER_MIN", "20"))
        # only behind a proxy that overwrites X-Forwarded-For
        self.TRUST_PROXY_HEADERS = _flag("TRUST_PROXY_HEADERS", "false")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self._validate()

    @property
    def media_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY)

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_SECRET and self.SESSION_SECRET == "change_me_for_prod":
            raise RuntimeError("SESSION_SECRET must be set to a non-default value in non-dev environments")
        if self.SESSION_TTL_HOURS <= 0:
            raise RuntimeError("SESSION_TTL_HOURS must be positive")


settings = Settings()
