"""Delete a photo row together with its stored object."""

from __future__ import annotations

import logging

from dal.photo_dal import PhotoDAL
from services.photos.errors import PhotoNotFoundError
from services.storage.object_store import LocalObjectStore, StorageError

LOGGER = logging.getLogger(__name__)


async def delete_photo(
    photo_dal: PhotoDAL,
    storage: LocalObjectStore,
    photo_id: str,
    photo_url: str,
    bucket: str,
) -> None:
    """Remove the stored object, then the media_photos row.

    The storage delete is best-effort: a failure there is logged and the row
    is still removed.

    Raises:
        ValueError: If `photo_url` does not point into `bucket`.
        PhotoNotFoundError: If no row exists for `photo_id`.
    """
    path = storage.path_from_public_url(bucket, photo_url)

    try:
        await storage.remove(bucket, [path])
    except StorageError as exc:
        LOGGER.warning("Storage delete failed for %s/%s: %s", bucket, path, exc)

    deleted = await photo_dal.delete_photo(photo_id)
    if not deleted:
        raise PhotoNotFoundError(f"Photo {photo_id} not found.")
    LOGGER.info("Deleted photo %s (%s/%s)", photo_id, bucket, path)
