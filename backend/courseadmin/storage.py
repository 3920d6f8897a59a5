"""Media host adapters.

Uploaded course and lesson media live in a public Supabase Storage bucket.
Services talk to the host only through `MediaStorage`, so tests can swap in
an in-memory fake via `app.dependency_overrides[get_media_storage]`.

The Supabase client is expected to expose `.storage.from_(bucket)` returning
an object with `upload(path, file, file_options)`, `get_public_url(path)` and
`remove([paths])`.
"""

import logging
from functools import lru_cache
from typing import Any, Optional, Protocol
from urllib.parse import unquote, urlparse

from .config import settings
from .exceptions import StorageUnavailable

logger = logging.getLogger("courseadmin.storage")


class MediaStorage(Protocol):
    """Operations the media lifecycle needs from a host."""

    def put_object(self, *, key: str, body: bytes, content_type: str) -> str: ...

    def delete_object(self, *, key: str) -> None: ...

    def key_from_url(self, url: str) -> Optional[str]: ...


class SupabaseMediaStorage:
    """`MediaStorage` backed by a public Supabase Storage bucket."""

    def __init__(self, client: Any, bucket: str, base_url: str):
        self._client = client
        self.bucket = bucket
        self._public_prefix = f"{base_url.rstrip('/')}/storage/v1/object/public/{bucket}/"

    def _bucket(self) -> Any:
        return self._client.storage.from_(self.bucket)

    def put_object(self, *, key: str, body: bytes, content_type: str) -> str:
        """Upload `body` under `key` and return its public URL."""
        try:
            self._bucket().upload(key, body, {"content-type": content_type, "upsert": "false"})
        except Exception as exc:
            raise StorageUnavailable(f"Upload failed: {exc.__class__.__name__}") from exc
        url = self._bucket().get_public_url(key)
        # some client versions append an empty query string
        return str(url).rstrip("?")

    def delete_object(self, *, key: str) -> None:
        self._bucket().remove([key.lstrip("/")])

    def key_from_url(self, url: str) -> Optional[str]:
        """Return the object key for a URL on this bucket, `None` for foreign URLs."""
        if not url or not url.startswith(self._public_prefix):
            return None
        key = unquote(urlparse(url).path.split(f"/object/public/{self.bucket}/", 1)[-1])
        return key or None


class NullMediaStorage:
    """Fallback used when Supabase credentials are not configured.

    Uploads fail with `StorageUnavailable`; there is nothing of ours to
    delete, so every URL is treated as foreign.
    """

    def put_object(self, *, key: str, body: bytes, content_type: str) -> str:
        raise StorageUnavailable("Media storage is not configured")

    def delete_object(self, *, key: str) -> None:
        raise StorageUnavailable("Media storage is not configured")

    def key_from_url(self, url: str) -> Optional[str]:
        return None


@lru_cache(maxsize=1)
def _configured_storage() -> MediaStorage:
    if not settings.media_configured:
        logger.info("media storage not configured; uploads are disabled")
        return NullMediaStorage()
    from supabase import create_client

    client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    logger.info("media storage wired to bucket %s", settings.MEDIA_BUCKET)
    return SupabaseMediaStorage(client, settings.MEDIA_BUCKET, settings.SUPABASE_URL)


def get_media_storage() -> MediaStorage:
    """FastAPI dependency returning the process-wide media host adapter."""
    return _configured_storage()
