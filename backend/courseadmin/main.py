"""FastAPI application entrypoint.

This module builds the course administration API: it wires CORS, the
request-logging middleware, the exception handlers that translate domain
errors into the standard response envelope, and mounts the per-entity
routers under `/api`.

Route groups:
- /api/auth        signup, login, logout, password reset, device recovery
- /api/admin       users, teachers, students, recovery requests
- /api/university, /api/college, /api/department, /api/level
- /api/course, /api/chapter, /api/lesson
"""

import json
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import create_db_and_tables
from .exceptions import AuthenticationError, ConflictError, MediaRejected, NotFoundError, StorageUnavailable
from .responses import envelope, failure
from .routes import api_router

app = FastAPI(title="Course Admin API")
logger = logging.getLogger("courseadmin.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Wide-open CORS keeps local frontends working without extra config in dev.
if settings.ALLOW_DEV_CORS and settings.ENV == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

create_db_and_tables()


def _log_line(request: Request, req_id: str, started: float, **extra) -> str:
    return json.dumps(
        {
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
            "client": request.client.host if request.client else "unknown",
            **extra,
        },
        ensure_ascii=True,
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("request_failed %s", _log_line(request, req_id, started))
        raise
    response.headers["X-Request-ID"] = req_id
    if request.url.path.startswith("/api"):
        logger.info("request_done %s", _log_line(request, req_id, started, status_code=response.status_code))
    return response


# ---- exception handlers -------------------------------------------------------

def _field_path(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header", "cookie")]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    first = errors[0] if errors else {"loc": [], "msg": "Invalid request"}
    msg = str(first["msg"]).removeprefix("Value error, ")
    message = f"{_field_path(first['loc'])}: {msg}"
    logger.info("validation error on %s: %s", request.url.path, message)
    return failure(400, message, "validation_error", data={"errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return failure(exc.status_code, str(exc.detail), "http_error", headers=getattr(exc, "headers", None))


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return failure(401, str(exc), "unauthorized")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return failure(404, str(exc), "not_found")


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return failure(409, str(exc), "conflict")


@app.exception_handler(PermissionError)
async def permission_handler(request: Request, exc: PermissionError):
    return failure(403, str(exc), "forbidden")


@app.exception_handler(MediaRejected)
async def media_rejected_handler(request: Request, exc: MediaRejected):
    error = "payload_too_large" if exc.status_code == 413 else "unsupported_media"
    return failure(exc.status_code, str(exc), error)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return failure(400, str(exc), "bad_request")


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    logger.warning("storage unavailable on %s: %s", request.url.path, exc)
    return failure(503, str(exc), "storage_unavailable")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled error on %s", request.url.path, exc_info=exc)
    return failure(500, "An unexpected error occurred", "internal_error")


# ---- routes -------------------------------------------------------------------

@app.get("/health")
def health():
    # bare body for load balancer liveness checks
    return {"status": "ok"}


@app.get("/api")
def api_root():
    return envelope({"status": "ok"}, "API is running")


app.include_router(api_router, prefix="/api")
