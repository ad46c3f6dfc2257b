"""Preset upload configurations for asset and operations proof photos."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from models.photo_record import PhotoMetadata
from models.upload_models import BatchItemResult, PhotoUploadResult, UploadConfig
from services.photos.batch import upload_photo_batch
from services.photos.pipeline import PhotoUploadPipeline
from services.photos.progress import ProgressStream
from utils.media_validation import ASSET_PROOF_MAX_FILES, OPERATIONS_PROOF_MAX_FILES

ASSET_PROOF_BUCKET = "media-assets"
OPERATIONS_PROOF_BUCKET = "operations-photos"
PROOF_BUCKETS = (ASSET_PROOF_BUCKET, OPERATIONS_PROOF_BUCKET)

PROOF_MAX_SIZE_BYTES = 10 * 1024 * 1024


def asset_proof_config(asset_id: str) -> UploadConfig:
    return UploadConfig(
        bucket=ASSET_PROOF_BUCKET,
        base_path=f"{asset_id}/proofs",
        enable_compression=True,
        enable_validation=True,
        max_size_bytes=PROOF_MAX_SIZE_BYTES,
    )


def operations_proof_config(campaign_id: str, asset_id: str) -> UploadConfig:
    return UploadConfig(
        bucket=OPERATIONS_PROOF_BUCKET,
        base_path=f"{campaign_id}/{asset_id}",
        enable_compression=True,
        enable_validation=True,
        max_size_bytes=PROOF_MAX_SIZE_BYTES,
    )


async def upload_asset_proof(
    pipeline: PhotoUploadPipeline,
    company_id: str,
    asset_id: str,
    filename: str,
    data: bytes,
    extra: Optional[dict] = None,
    progress=None,
) -> PhotoUploadResult:
    """Upload one proof photo for a media asset outside any campaign."""
    metadata = PhotoMetadata(asset_id=asset_id, extra=dict(extra or {}))
    return await pipeline.upload_photo(
        asset_proof_config(asset_id), company_id, filename, data, metadata, progress
    )


async def upload_asset_proofs(
    pipeline: PhotoUploadPipeline,
    company_id: str,
    asset_id: str,
    files: Sequence[Tuple[str, bytes]],
    extra: Optional[dict] = None,
    progress: Optional[ProgressStream] = None,
) -> List[BatchItemResult]:
    """Upload up to 10 asset proof photos.

    Raises:
        ValueError: If more files are given than the asset proof limit allows.
    """
    if len(files) > ASSET_PROOF_MAX_FILES:
        raise ValueError(f"At most {ASSET_PROOF_MAX_FILES} files can be uploaded at once.")
    metadata = PhotoMetadata(asset_id=asset_id, extra=dict(extra or {}))
    return await upload_photo_batch(
        pipeline, asset_proof_config(asset_id), company_id, files, metadata, progress
    )


async def upload_operations_proofs(
    pipeline: PhotoUploadPipeline,
    company_id: str,
    campaign_id: str,
    asset_id: str,
    files: Sequence[Tuple[str, bytes]],
    client_id: Optional[str] = None,
    photo_type: Optional[str] = None,
    extra: Optional[dict] = None,
    progress: Optional[ProgressStream] = None,
) -> List[BatchItemResult]:
    """Upload up to 20 installation proof photos for a campaign asset.

    Raises:
        ValueError: If more files are given than the operations proof limit allows.
    """
    if len(files) > OPERATIONS_PROOF_MAX_FILES:
        raise ValueError(f"At most {OPERATIONS_PROOF_MAX_FILES} files can be uploaded at once.")
    metadata = PhotoMetadata(
        asset_id=asset_id,
        campaign_id=campaign_id,
        client_id=client_id,
        photo_type=photo_type,
        extra=dict(extra or {}),
    )
    return await upload_photo_batch(
        pipeline, operations_proof_config(campaign_id, asset_id), company_id, files, metadata, progress
    )


def bucket_for_url(photo_url: str) -> Optional[str]:
    """Return the proof bucket a public URL points into, if any."""
    for bucket in PROOF_BUCKETS:
        if f"/{bucket}/" in photo_url:
            return bucket
    return None
