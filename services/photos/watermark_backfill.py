"""Apply QR watermarks to photos stored before watermarking existed.

The job walks media_photos in pages so an operator can resume it with the
returned `next_offset`. Each processed photo gets a new `_qr_wm` object;
the row is pointed at it and the old object is removed.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from dal.photo_dal import PhotoDAL, utc_now_iso
from models.photo_record import PhotoRecord
from services.photos.errors import WatermarkError
from services.photos.proof_uploads import bucket_for_url
from services.photos.qr_cache import QRCodeCache
from services.photos.watermarker import QRWatermarker
from services.storage.object_store import LocalObjectStore, StorageError

LOGGER = logging.getLogger(__name__)

WATERMARK_SUFFIX = "_qr_wm"
DEFAULT_BATCH_SIZE = 2
MAX_BATCH_SIZE = 50

_EXTENSION = re.compile(r"\.[^.]+$")


@dataclass
class BackfillReport:
    total_images_scanned: int = 0
    watermarked_count: int = 0
    skipped_already_done: int = 0
    skipped_missing_qr: int = 0
    skipped_missing_image: int = 0
    failed_count: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    next_offset: Optional[int] = None
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_already_watermarked(metadata: Optional[Dict[str, Any]], photo_url: Optional[str]) -> bool:
    if metadata and metadata.get("qr_watermarked") is True:
        return True
    return bool(photo_url and WATERMARK_SUFFIX in photo_url)


def watermarked_path(path: str) -> str:
    """Return the sibling object path `<dir>/<name>_qr_wm.jpg`."""
    directory, filename = posixpath.split(path)
    base = _EXTENSION.sub("", filename).replace(WATERMARK_SUFFIX, "")
    new_name = f"{base}{WATERMARK_SUFFIX}.jpg"
    return posixpath.join(directory, new_name) if directory else new_name


class WatermarkBackfill:
    """Re-process stored photos page by page.

    Only photos of `company_id` are scanned.

    Args:
        company_id: Tenant whose photos are processed.
        photo_dal: Source of photo rows and target of URL updates.
        storage: Object store holding the photos.
        qr_cache: Asset QR lookup.
        watermarker: QR compositor.
    """

    def __init__(
        self,
        company_id: str,
        photo_dal: PhotoDAL,
        storage: LocalObjectStore,
        qr_cache: QRCodeCache,
        watermarker: QRWatermarker,
    ) -> None:
        self.company_id = company_id
        self.photo_dal = photo_dal
        self.storage = storage
        self.qr_cache = qr_cache
        self.watermarker = watermarker

    async def run(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        offset: int = 0,
        force_reprocess: bool = False,
        dry_run: bool = False,
    ) -> BackfillReport:
        """Process one page of photos starting at `offset`.

        Raises:
            ValueError: If `batch_size` or `offset` is out of range.
        """
        if batch_size < 1 or batch_size > MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}.")
        if offset < 0:
            raise ValueError("offset must not be negative.")

        LOGGER.info(
            "Starting QR watermark backfill company=%s batch_size=%d offset=%d force=%s dry_run=%s",
            self.company_id,
            batch_size,
            offset,
            force_reprocess,
            dry_run,
        )
        report = BackfillReport(dry_run=dry_run)
        photos = await self.photo_dal.list_page(self.company_id, batch_size, offset)

        for photo in photos:
            report.total_images_scanned += 1
            await self._process(photo, report, force_reprocess, dry_run)

        if len(photos) == batch_size:
            report.next_offset = offset + batch_size
        LOGGER.info("QR watermark backfill finished: %s", report.to_dict())
        return report

    async def _process(
        self,
        photo: PhotoRecord,
        report: BackfillReport,
        force_reprocess: bool,
        dry_run: bool,
    ) -> None:
        if not force_reprocess and is_already_watermarked(photo.metadata, photo.photo_url):
            report.skipped_already_done += 1
            return

        qr_url = await self.qr_cache.get(photo.company_id, photo.asset_id)
        if not qr_url:
            report.skipped_missing_qr += 1
            return

        bucket = bucket_for_url(photo.photo_url or "")
        if not bucket:
            report.skipped_missing_image += 1
            return
        try:
            path = self.storage.path_from_public_url(bucket, photo.photo_url)
        except ValueError:
            report.skipped_missing_image += 1
            return
        if not await self.storage.exists(bucket, path):
            report.skipped_missing_image += 1
            return

        if dry_run:
            report.watermarked_count += 1
            return

        try:
            await self._apply(photo, bucket, path, qr_url)
        except (StorageError, WatermarkError, LookupError) as exc:
            LOGGER.warning("Backfill failed for photo %s: %s", photo.id, exc)
            report.failed_count += 1
            report.errors.append({"id": photo.id, "error": str(exc)})
            return
        report.watermarked_count += 1

    async def _apply(self, photo: PhotoRecord, bucket: str, path: str, qr_url: str) -> None:
        original = await self.storage.download(bucket, path)
        watermarked = await self.watermarker.apply(original, qr_url)

        new_path = watermarked_path(path)
        await self.storage.upload(bucket, new_path, watermarked, upsert=True)
        new_url = self.storage.get_public_url(bucket, new_path)

        metadata = dict(photo.metadata)
        metadata["qr_watermarked"] = True
        metadata["qr_watermarked_at"] = utc_now_iso()
        if not await self.photo_dal.update_photo_url(photo.id, new_url, metadata):
            await self.storage.remove(bucket, [new_path])
            raise LookupError(f"Photo {photo.id} disappeared during backfill.")

        if new_path != path:
            try:
                await self.storage.remove(bucket, [path])
            except StorageError as exc:
                LOGGER.warning("Could not remove pre-watermark object %s/%s: %s", bucket, path, exc)
