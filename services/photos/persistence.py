"""Write photo rows and campaign timeline entries for stored uploads."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from dal.photo_dal import PhotoDAL
from dal.timeline_dal import TimelineDAL
from models.photo_record import PhotoMetadata, PhotoRecord
from models.timeline_event import TimelineEvent
from models.upload_models import PhotoUploadResult, PhotoValidationResult
from services.photos.compensation import CompensationLog
from services.photos.errors import PhotoPersistenceError

LOGGER = logging.getLogger(__name__)

PROOF_CATEGORY = "Proof"
GENERAL_CATEGORY = "General"

_PROOF_TAGS = {"Traffic", "Newspaper", "Geo-Tagged"}

DEFAULT_MIN_SCORE = 60.0


def category_for_tag(tag: Optional[str]) -> str:
    return PROOF_CATEGORY if tag in _PROOF_TAGS else GENERAL_CATEGORY


def build_photo_metadata(
    tag: str,
    latitude: Optional[float],
    longitude: Optional[float],
    validation: Optional[PhotoValidationResult],
    metadata: PhotoMetadata,
    degradations: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Build the JSON blob stored with a photo row.

    Caller extras are merged last and override derived keys. Keys with no
    value are left out; the issue and suggestion lists are always present.
    """
    blob: Dict[str, Any] = {
        "photo_tag": tag,
        "photo_type": metadata.photo_type,
        "latitude": latitude,
        "longitude": longitude,
        "validation_score": validation.score if validation is not None else None,
        "validation_issues": list(validation.issues) if validation is not None else [],
        "validation_suggestions": list(validation.suggestions) if validation is not None else [],
    }
    if degradations:
        blob["degradations"] = list(degradations)
    blob.update(metadata.extra)
    return {key: value for key, value in blob.items() if value is not None}


async def save_photo_record(
    photo_dal: PhotoDAL,
    record: PhotoRecord,
    compensation: CompensationLog,
) -> PhotoRecord:
    """Insert the photo row, undoing earlier side effects if the insert fails.

    Raises:
        PhotoPersistenceError: If the insert fails. Compensations have run by then.
    """
    try:
        saved = await photo_dal.insert_photo(record)
    except Exception as exc:
        LOGGER.error("Database insert failed for %s: %s", record.photo_url, exc)
        await compensation.compensate()
        raise PhotoPersistenceError(f"Failed to save photo record: {exc}") from exc
    compensation.discard()
    return saved


async def record_upload_event(timeline_dal: Optional[TimelineDAL], record: PhotoRecord, tag: str) -> None:
    """Append a `photo_uploaded` event when the photo belongs to a campaign.

    Failures are logged and swallowed; the photo itself is already saved.
    """
    if timeline_dal is None or not record.campaign_id:
        return
    event = TimelineEvent(
        id=None,
        campaign_id=record.campaign_id,
        company_id=record.company_id,
        event_type="photo_uploaded",
        event_title="Photo uploaded",
        event_description=f"{tag} photo uploaded for asset {record.asset_id}",
        created_by=record.uploaded_by,
        metadata={"photo_id": record.id, "asset_id": record.asset_id, "photo_tag": tag, "photo_url": record.photo_url},
    )
    try:
        await timeline_dal.append_event(event)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.warning("Failed to log timeline event for photo %s: %s", record.id, exc)


def quality_warnings(result: PhotoUploadResult, min_score: float = DEFAULT_MIN_SCORE) -> List[str]:
    """Return user-facing warnings for an upload that succeeded with caveats."""
    warnings: List[str] = []
    if "compression_failed" in result.degradations:
        warnings.append("Photo could not be compressed; the original file was stored.")
    if "watermark_failed" in result.degradations:
        warnings.append("QR watermark could not be applied.")
    if "validation_failed" in result.degradations:
        warnings.append("Quality check could not be run.")
    validation = result.validation
    if validation is not None and validation.score < min_score:
        warnings.append(f"Low quality score ({validation.score:.0f}/100).")
        warnings.extend(validation.issues)
    return warnings
