"""Domain exceptions raised by services and mapped to HTTP in `main`.

Services stay free of FastAPI imports: they raise these (or the builtin
`ValueError` / `PermissionError`) and the application translates them into
the standard response envelope.
"""


class NotFoundError(LookupError):
    """A referenced record does not exist."""


class ConflictError(Exception):
    """The request clashes with current state (duplicate, stale order, pending request)."""


class MediaRejected(ValueError):
    """An upload failed size or content checks."""

    def __init__(self, message: str, status_code: int = 415):
        super().__init__(message)
        self.status_code = status_code


class StorageUnavailable(RuntimeError):
    """The media host is not configured or refused the operation."""


class AuthenticationError(Exception):
    """Credentials or session are missing or invalid."""
