"""Single-photo intake pipeline.

Stages run strictly in order: analyze, compress, watermark, upload,
validate, save. Compression, watermarking and validation degrade
gracefully; an upload or database failure aborts the file and leaves no
orphaned object behind.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from dal.photo_dal import PhotoDAL
from dal.timeline_dal import TimelineDAL
from models.photo_record import PhotoMetadata, PhotoRecord
from models.upload_models import PhotoUploadResult, PhotoValidationResult, UploadConfig, UploadStage
from services.auth.session import SessionProvider
from services.openai.quality_validator import PhotoQualityValidator
from services.photos.compensation import CompensationLog
from services.photos.compressor import compress_image, optimal_compression_settings
from services.photos.errors import CompressionError, PhotoPersistenceError, PhotoUploadError, WatermarkError
from services.photos.persistence import (
    build_photo_metadata,
    category_for_tag,
    record_upload_event,
    save_photo_record,
)
from services.photos.progress import report
from services.photos.qr_cache import QRCodeCache
from services.photos.tag_detector import TagDetection, detect_photo_tag
from services.photos.uploader import StoredObject, store_photo
from services.photos.watermarker import QRWatermarker
from services.storage.object_store import LocalObjectStore

LOGGER = logging.getLogger(__name__)


class PhotoUploadPipeline:
    """Run one photo through tagging, processing, storage and persistence.

    Args:
        storage: Object store the processed image is written to.
        photo_dal: Data access for the media_photos table.
        session: Identity used to stamp `uploaded_by`.
        timeline_dal: Optional campaign timeline writer.
        qr_cache: Optional asset QR lookup; watermarking is skipped without it.
        watermarker: Optional QR compositor; watermarking is skipped without it.
        validator: Optional AI quality scorer; validation is skipped without it.
    """

    def __init__(
        self,
        *,
        storage: LocalObjectStore,
        photo_dal: PhotoDAL,
        session: SessionProvider,
        timeline_dal: Optional[TimelineDAL] = None,
        qr_cache: Optional[QRCodeCache] = None,
        watermarker: Optional[QRWatermarker] = None,
        validator: Optional[PhotoQualityValidator] = None,
    ) -> None:
        self.storage = storage
        self.photo_dal = photo_dal
        self.session = session
        self.timeline_dal = timeline_dal
        self.qr_cache = qr_cache
        self.watermarker = watermarker
        self.validator = validator

    async def upload_photo(
        self,
        config: UploadConfig,
        company_id: str,
        filename: str,
        data: bytes,
        metadata: PhotoMetadata,
        progress=None,
    ) -> PhotoUploadResult:
        """Process and store one photo.

        Args:
            config: Bucket, path and feature switches for this call.
            company_id: Tenant the photo is stored under.
            filename: Original client filename; drives tag detection.
            data: Raw image bytes.
            metadata: Asset/campaign context and caller extras.
            progress: Optional emitter (`ProgressStream` or a scoped view of one).

        Returns:
            PhotoUploadResult for the saved photo.

        Raises:
            ValueError: If the asset id is missing or the file is empty or too large.
            PhotoUploadError: If the storage write fails.
            PhotoPersistenceError: If the database insert fails.
        """
        if not metadata.asset_id:
            raise ValueError("asset_id is required for photo uploads.")
        if not data:
            raise ValueError(f"{filename} is empty.")
        if len(data) > config.max_size_bytes:
            raise ValueError(f"{filename} exceeds the {config.max_size_bytes // (1024 * 1024)}MB limit.")

        degradations: List[str] = []

        report(progress, UploadStage.ANALYZING, 10, "Analyzing photo...")
        detection = await asyncio.to_thread(detect_photo_tag, filename, data)
        LOGGER.debug("Detected tag %s for %s (gps=%s)", detection.tag, filename, detection.has_gps)

        processed = data
        if config.enable_compression:
            report(progress, UploadStage.COMPRESSING, 25, "Compressing image...")
            processed = await self._compress(filename, processed, degradations)

        watermarked = False
        if config.enable_watermark:
            processed, watermarked = await self._watermark(
                company_id, metadata.asset_id, filename, processed, degradations, progress
            )

        stored = await self._upload(config, company_id, detection, processed, progress)

        compensation = CompensationLog()
        compensation.register(
            f"remove {stored.bucket}/{stored.path}",
            lambda: self.storage.remove(stored.bucket, [stored.path]),
        )

        # Until the row exists, any failure (cancellation included) must remove the stored object.
        try:
            validation = await self._validate_stage(config, stored, detection, degradations, progress)
            report(progress, UploadStage.SAVING, 85, "Saving to database...")
            record = await self._build_record(
                company_id, stored, detection, validation, metadata, degradations, watermarked
            )
            saved = await save_photo_record(self.photo_dal, record, compensation)
        except PhotoPersistenceError:
            report(progress, UploadStage.ERROR, 100, "Failed to save photo record")
            raise
        except BaseException as exc:
            LOGGER.error("Upload of %s aborted before its record was saved: %r", filename, exc)
            await compensation.compensate()
            raise

        await record_upload_event(self.timeline_dal, saved, detection.tag)

        report(progress, UploadStage.COMPLETE, 100, "Upload complete!")
        return PhotoUploadResult(
            id=saved.id,
            url=saved.photo_url,
            storage_path=stored.path,
            tag=detection.tag,
            category=saved.category,
            latitude=detection.latitude,
            longitude=detection.longitude,
            validation=validation,
            watermarked=watermarked,
            degradations=degradations,
        )

    async def _validate_stage(
        self,
        config: UploadConfig,
        stored: StoredObject,
        detection: TagDetection,
        degradations: List[str],
        progress,
    ) -> Optional[PhotoValidationResult]:
        if not config.enable_validation or self.validator is None:
            return None
        report(progress, UploadStage.VALIDATING, 70, "Validating photo quality...")
        return await self._validate(stored.public_url, detection.tag, degradations)

    async def _build_record(
        self,
        company_id: str,
        stored: StoredObject,
        detection: TagDetection,
        validation: Optional[PhotoValidationResult],
        metadata: PhotoMetadata,
        degradations: List[str],
        watermarked: bool,
    ) -> PhotoRecord:
        user = await self.session.get_current_user()
        photo_metadata = build_photo_metadata(
            detection.tag,
            detection.latitude,
            detection.longitude,
            validation,
            metadata,
            degradations,
        )
        if watermarked:
            photo_metadata.setdefault("qr_watermarked", True)
        return PhotoRecord(
            id="",
            company_id=company_id,
            asset_id=metadata.asset_id,
            campaign_id=metadata.campaign_id,
            client_id=metadata.client_id,
            photo_url=stored.public_url,
            category=category_for_tag(detection.tag),
            uploaded_by=user.id if user else None,
            metadata=photo_metadata,
        )

    async def _compress(self, filename: str, data: bytes, degradations: List[str]) -> bytes:
        settings = optimal_compression_settings(len(data))
        try:
            compressed = await asyncio.to_thread(compress_image, data, settings)
        except CompressionError as exc:
            LOGGER.warning("Compression failed for %s, using original: %s", filename, exc)
            degradations.append("compression_failed")
            return data
        LOGGER.debug("Compressed %s from %d to %d bytes", filename, len(data), len(compressed))
        return compressed

    async def _watermark(
        self,
        company_id: str,
        asset_id: str,
        filename: str,
        data: bytes,
        degradations: List[str],
        progress,
    ) -> Tuple[bytes, bool]:
        if self.qr_cache is None or self.watermarker is None:
            return data, False
        try:
            qr_url = await self.qr_cache.get(company_id, asset_id)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("QR lookup failed for asset %s: %s", asset_id, exc)
            degradations.append("watermark_failed")
            return data, False
        if not qr_url:
            return data, False

        report(progress, UploadStage.WATERMARKING, 35, "Applying QR watermark...")
        try:
            watermarked = await self.watermarker.apply(data, qr_url)
        except WatermarkError as exc:
            LOGGER.warning("QR watermark failed for %s, continuing without it: %s", filename, exc)
            degradations.append("watermark_failed")
            return data, False
        return watermarked, True

    async def _upload(
        self,
        config: UploadConfig,
        company_id: str,
        detection: TagDetection,
        data: bytes,
        progress,
    ) -> StoredObject:
        report(progress, UploadStage.UPLOADING, 40, "Uploading to storage...")
        try:
            stored = await store_photo(
                self.storage,
                config.bucket,
                company_id,
                config.base_path,
                detection.tag,
                data,
            )
        except PhotoUploadError as exc:
            LOGGER.error("Upload failed for %s: %s", detection.tag, exc)
            report(progress, UploadStage.ERROR, 100, str(exc))
            raise
        report(progress, UploadStage.UPLOADING, 60, "Upload complete")
        return stored

    async def _validate(
        self,
        photo_url: str,
        tag: str,
        degradations: List[str],
    ) -> Optional[PhotoValidationResult]:
        try:
            return await self.validator.validate(photo_url, tag)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Photo validation failed for %s: %s", photo_url, exc)
            degradations.append("validation_failed")
            return None
