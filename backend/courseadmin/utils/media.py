"""Media slot values and their upload lifecycle.

A media slot on a course or lesson (cover image, PDF, video, thumbnail)
receives one of:

- `Pending`: bytes uploaded with this request, not yet on the host
- `Stored`: a URL that already exists (our host or an external link)
- `Cleared`: the client asked to empty the slot

`None` in place of a value means the slot was not sent and stays as is.

`MediaPlan` validates and uploads pending files, then either deletes the
objects they replaced (once the database commit succeeded) or deletes the
freshly uploaded objects (when anything inside the block raised).
"""

import io
import logging
import mimetypes
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse
from uuid import uuid4

import pdfplumber
from PIL import Image
from starlette.datastructures import UploadFile

from ..config import settings
from ..exceptions import MediaRejected

logger = logging.getLogger("courseadmin.media")

VIDEO_EXTENSIONS = {".mp4", ".webm", ".mov", ".mkv", ".m4v", ".avi"}
IMAGE_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png", "GIF": ".gif", "WEBP": ".webp", "BMP": ".bmp"}


@dataclass(frozen=True)
class Pending:
    data: bytes
    filename: str
    content_type: Optional[str] = None


@dataclass(frozen=True)
class Stored:
    url: str


@dataclass(frozen=True)
class Cleared:
    pass


MediaInput = Union[Pending, Stored, Cleared]


@dataclass(frozen=True)
class CheckedUpload:
    data: bytes
    ext: str
    content_type: str


def media_from_value(name: str, value) -> Optional[MediaInput]:
    """Interpret a JSON or text form value for slot `name`.

    An empty string or JSON null clears the slot; any other string must be
    an absolute http(s) URL.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return Cleared()
    if not isinstance(value, str):
        raise ValueError(f"{name}: expected a URL string")
    url = value.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{name}: must be an http(s) URL")
    return Stored(url)


async def media_from_form(form, name: str) -> Optional[MediaInput]:
    """Read slot `name` from a parsed multipart form."""
    if name not in form:
        return None
    value = form.get(name)
    if isinstance(value, UploadFile):
        data = await value.read()
        if not data and not value.filename:
            # browsers send an empty part for an untouched file input
            return None
        return Pending(data=data, filename=value.filename or name, content_type=value.content_type)
    return media_from_value(name, value)


def _extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def check_upload(kind: str, upload: Pending) -> CheckedUpload:
    """Validate size and content of `upload` for a slot of `kind`.

    Raises `MediaRejected` with 413 for oversized files and 415 when the
    bytes do not match the slot kind.
    """
    limit = settings.MAX_VIDEO_UPLOAD_BYTES if kind == "video" else settings.MAX_UPLOAD_BYTES
    if len(upload.data) > limit:
        raise MediaRejected(f"{upload.filename}: file too large (max {limit} bytes)", status_code=413)
    if not upload.data:
        raise MediaRejected(f"{upload.filename}: empty file")

    if kind == "image":
        try:
            with Image.open(io.BytesIO(upload.data)) as img:
                fmt = img.format
                img.verify()
        except Exception as exc:
            raise MediaRejected(f"{upload.filename}: not a valid image") from exc
        ext = IMAGE_EXTENSIONS.get(fmt or "", _extension(upload.filename) or ".img")
        return CheckedUpload(upload.data, ext, Image.MIME.get(fmt or "", "application/octet-stream"))

    if kind == "pdf":
        if upload.data[:4] != b"%PDF":
            raise MediaRejected(f"{upload.filename}: not a PDF document")
        try:
            with pdfplumber.open(io.BytesIO(upload.data)) as pdf:
                page_count = len(pdf.pages)
        except Exception as exc:
            raise MediaRejected(f"{upload.filename}: unreadable PDF document") from exc
        if page_count == 0:
            raise MediaRejected(f"{upload.filename}: PDF has no pages")
        return CheckedUpload(upload.data, ".pdf", "application/pdf")

    if kind == "video":
        ext = _extension(upload.filename)
        ctype = (upload.content_type or "").lower()
        if not ctype.startswith("video/") and ext not in VIDEO_EXTENSIONS:
            raise MediaRejected(f"{upload.filename}: not a video file")
        if not ctype.startswith("video/"):
            ctype = mimetypes.guess_type(upload.filename)[0] or "video/mp4"
        if ext not in VIDEO_EXTENSIONS:
            ext = mimetypes.guess_extension(ctype) or ".mp4"
        return CheckedUpload(upload.data, ext, ctype)

    raise ValueError(f"unknown media kind: {kind}")


class MediaPlan:
    """Upload, commit and clean up the media of one request.

    Usage::

        with MediaPlan(storage, "courses") as plan:
            values = plan.stage({"image_url": ("image", image)}, current=course)
            ...apply values, commit...

    Leaving the block normally deletes replaced or retired objects; leaving
    it with an exception deletes this request's uploads and re-raises.
    """

    def __init__(self, storage, folder: str = "media"):
        self.storage = storage
        self.folder = folder
        self.uploaded: List[str] = []
        self.obsolete: List[str] = []

    def __enter__(self) -> "MediaPlan":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            for key in self.uploaded:
                self._delete_key(key)
        else:
            for url in self.obsolete:
                self._delete_url(url)
        return False

    def stage(self, slots: Dict[str, Tuple[str, Optional[MediaInput]]], current=None) -> Dict[str, Optional[str]]:
        """Resolve slot inputs to the URLs to persist.

        `slots` maps a model attribute to `(kind, media)`. Every pending file
        is validated before the first upload starts. Returns only the
        attributes that change; previous values of `current` that get
        replaced are queued for deletion.

        A `Stored` URL pointing at our own host is accepted only when it is
        the slot's current value; hosted objects enter a record by upload.
        """
        for attr, (_kind, media) in slots.items():
            if isinstance(media, Stored) and self.storage.key_from_url(media.url) is not None:
                previous = getattr(current, attr, None) if current is not None else None
                if media.url != previous:
                    raise ValueError(f"{attr}: hosted media must be uploaded, not linked")
        checked = {
            attr: check_upload(kind, media)
            for attr, (kind, media) in slots.items()
            if isinstance(media, Pending)
        }
        values: Dict[str, Optional[str]] = {}
        for attr, (_kind, media) in slots.items():
            if media is None:
                continue
            if isinstance(media, Pending):
                values[attr] = self._upload(checked[attr])
            elif isinstance(media, Stored):
                values[attr] = media.url
            else:
                values[attr] = None
            previous = getattr(current, attr, None) if current is not None else None
            if previous and previous != values[attr]:
                self.obsolete.append(previous)
        return values

    def retire(self, *urls: Optional[str]) -> None:
        """Queue existing URLs for deletion after a successful commit."""
        self.obsolete.extend(u for u in urls if u)

    def _upload(self, upload: CheckedUpload) -> str:
        key = f"{self.folder}/{uuid4().hex}{upload.ext}"
        url = self.storage.put_object(key=key, body=upload.data, content_type=upload.content_type)
        self.uploaded.append(key)
        return url

    def _delete_url(self, url: str) -> None:
        key = self.storage.key_from_url(url)
        if key is None:
            # external link (YouTube, CDN); not ours to delete
            return
        self._delete_key(key)

    def _delete_key(self, key: str) -> None:
        try:
            self.storage.delete_object(key=key)
            logger.info("media deleted key=%s", key)
        except Exception as exc:
            logger.warning("media delete failed key=%s error=%s: %s", key, exc.__class__.__name__, exc)
