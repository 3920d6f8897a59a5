"""Request body parsing for endpoints that accept multipart forms or JSON.

Course and lesson writes carry files, so their handlers read the raw
request instead of declaring a body model; the scalar fields are then
validated with the regular schemas and media slots become `MediaInput`s.
"""

import json
from typing import Dict, Iterable, Optional, Tuple, Type, TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from ..utils.media import MediaInput, media_from_form, media_from_value

S = TypeVar("S", bound=BaseModel)

FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _form_list(values: list) -> list:
    """Repeated form fields, or a single field holding a JSON array."""
    strings = [v for v in values if isinstance(v, str)]
    if len(strings) == 1 and strings[0].lstrip().startswith("["):
        try:
            decoded = json.loads(strings[0])
        except ValueError:
            return strings
        if isinstance(decoded, list):
            return decoded
    return strings


async def read_payload(
    request: Request, media_fields: Iterable[str], list_fields: Iterable[str] = ()
) -> Tuple[dict, Dict[str, Optional[MediaInput]]]:
    """Split a request body into `(scalar fields, media slots)`."""
    media_fields = tuple(media_fields)
    list_fields = tuple(list_fields)
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_TYPES):
        form = await request.form()
        data = {}
        for key in set(form.keys()):
            if key in media_fields:
                continue
            if key in list_fields:
                data[key] = _form_list(form.getlist(key))
            else:
                data[key] = form.get(key)
        media = {name: await media_from_form(form, name) for name in media_fields}
        return data, media

    try:
        body = await request.json()
    except ValueError as exc:
        raise ValueError("Request body must be JSON or multipart form data") from exc
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    data = {k: v for k, v in body.items() if k not in media_fields}
    media = {name: media_from_value(name, body[name]) if name in body else None for name in media_fields}
    return data, media


def validate(schema: Type[S], data: dict) -> S:
    """Validate `data` with `schema`, reporting failures like body validation errors."""
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc
