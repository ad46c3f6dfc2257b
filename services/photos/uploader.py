"""Write processed photos to bucket storage under a tenant-prefixed path."""

from __future__ import annotations

import logging
import re
import secrets
import time
from dataclasses import dataclass

from services.photos.errors import PhotoUploadError
from services.storage.object_store import LocalObjectStore, StorageError

LOGGER = logging.getLogger(__name__)

OBJECT_EXTENSION = "jpg"

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    path: str
    public_url: str


def sanitize_tag(tag: str) -> str:
    return _WHITESPACE.sub("_", tag.lower())


def build_object_name(tag: str, timestamp_ms: int | None = None) -> str:
    """Return `{tag}_{epoch_ms}_{suffix}.jpg`.

    The random suffix keeps sequential uploads within the same millisecond
    from colliding (storage refuses to overwrite).
    """
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{sanitize_tag(tag)}_{timestamp_ms}_{secrets.token_hex(3)}.{OBJECT_EXTENSION}"


def build_object_path(company_id: str, base_path: str, filename: str) -> str:
    parts = [company_id.strip("/"), base_path.strip("/"), filename]
    return "/".join(part for part in parts if part)


async def store_photo(
    storage: LocalObjectStore,
    bucket: str,
    company_id: str,
    base_path: str,
    tag: str,
    data: bytes,
) -> StoredObject:
    """Upload `data` and resolve its public URL.

    Raises:
        PhotoUploadError: If the upload is rejected or no public URL can be built.
    """
    path = build_object_path(company_id, base_path, build_object_name(tag))
    try:
        await storage.upload(bucket, path, data, upsert=False)
    except StorageError as exc:
        raise PhotoUploadError(f"Upload failed: {exc}") from exc

    try:
        public_url = storage.get_public_url(bucket, path)
    except StorageError as exc:
        await _discard(storage, bucket, path)
        raise PhotoUploadError("Failed to get public URL") from exc
    if not public_url:
        await _discard(storage, bucket, path)
        raise PhotoUploadError("Failed to get public URL")

    return StoredObject(bucket=bucket, path=path, public_url=public_url)


async def _discard(storage: LocalObjectStore, bucket: str, path: str) -> None:
    try:
        await storage.remove(bucket, [path])
    except StorageError as exc:
        LOGGER.warning("Could not remove unreachable object %s/%s: %s", bucket, path, exc)
