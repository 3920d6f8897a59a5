"""Response envelope helpers.

Every endpoint answers with the same JSON shape so clients can branch on
`success` without inspecting the status code:

    {"success": bool, "message": str, "data": any, "error": str | null, "status_code": int}
"""

import math
from typing import Any, Optional, Sequence

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(data: Any = None, message: str = "OK", status_code: int = 200) -> JSONResponse:
    """Wrap `data` (models are encoded via `jsonable_encoder`) in a success envelope."""
    body = {
        "success": True,
        "message": message,
        "data": jsonable_encoder(data),
        "error": None,
        "status_code": status_code,
    }
    return JSONResponse(status_code=status_code, content=body)


def failure(status_code: int, message: str, error: str, data: Optional[dict] = None, headers=None) -> JSONResponse:
    body = {
        "success": False,
        "message": message,
        "data": data,
        "error": error,
        "status_code": status_code,
    }
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def page_data(items: Sequence[Any], total: int, page: int, limit: int) -> dict:
    """Build the `data` payload of a paginated listing."""
    return {
        "items": list(items),
        "metadata": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
    }
