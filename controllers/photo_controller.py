"""Request orchestration for proof photo uploads, listing, deletion and backfill."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse

from dal.asset_dal import AssetDAL
from dal.photo_dal import PhotoDAL
from dal.timeline_dal import TimelineDAL
from models.upload_models import BatchItemResult
from services.auth.session import SessionProvider, session_from_request
from services.photos.deletion import delete_photo
from services.photos.errors import PhotoNotFoundError
from services.photos.latest_photos import derive_latest_photos, proof_status
from services.photos.persistence import quality_warnings
from services.photos.pipeline import PhotoUploadPipeline
from services.photos.progress import ProgressStream, format_sse
from services.photos.proof_uploads import (
    PROOF_MAX_SIZE_BYTES,
    bucket_for_url,
    upload_asset_proofs,
    upload_operations_proofs,
)
from services.photos.watermark_backfill import WatermarkBackfill
from utils.media_validation import (
    ASSET_PROOF_MAX_FILES,
    OPERATIONS_PROOF_MAX_FILES,
    read_image_uploads,
    validate_file_count,
)

LOGGER = logging.getLogger(__name__)

LATEST_PHOTOS_SCAN_LIMIT = 20


def build_pipeline(request: Request, session: SessionProvider) -> PhotoUploadPipeline:
    """Assemble a pipeline from the shared clients on `app.state`."""
    state = request.app.state
    db_initializer = state.db_initializer
    return PhotoUploadPipeline(
        storage=state.storage,
        photo_dal=PhotoDAL(db_initializer),
        session=session,
        timeline_dal=TimelineDAL(db_initializer),
        qr_cache=state.qr_cache,
        watermarker=state.watermarker,
        validator=getattr(state, "validator", None),
    )


async def ensure_asset_access(request: Request, asset_id: str, company_id: str) -> None:
    """Reject uploads against an asset registered to another company.

    Raises:
        HTTPException(404): If the asset belongs to a different company.
    """
    asset = await AssetDAL(request.app.state.db_initializer).get_asset(asset_id)
    if asset is not None and asset.company_id != company_id:
        raise HTTPException(status_code=404, detail="Asset not found")


def _log_batch_failure(task: "asyncio.Task") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.error("Streaming batch upload failed: %s", exc)


def summarize_batch(items: Sequence[BatchItemResult]) -> Dict[str, Any]:
    """Serialize batch results with per-file quality warnings."""
    results: List[Dict[str, Any]] = []
    for item in items:
        payload = item.to_dict()
        payload["warnings"] = quality_warnings(item.result) if item.result else []
        results.append(payload)
    uploaded = sum(1 for item in items if item.ok)
    return {"uploaded": uploaded, "failed": len(items) - uploaded, "results": results}


async def upload_asset_proof_photos(
    request: Request,
    asset_id: str,
    files: List[UploadFile],
) -> Dict[str, Any]:
    """Upload asset proof photos and return per-file results."""
    session = session_from_request(request)
    validate_file_count(files, ASSET_PROOF_MAX_FILES)
    await ensure_asset_access(request, asset_id, session.company_id)
    uploads = await read_image_uploads(files, PROOF_MAX_SIZE_BYTES)

    pipeline = build_pipeline(request, session)
    items = await upload_asset_proofs(pipeline, session.company_id, asset_id, uploads)
    return summarize_batch(items)


async def upload_operations_proof_photos(
    request: Request,
    campaign_id: str,
    asset_id: str,
    files: List[UploadFile],
    client_id: Optional[str] = None,
    photo_type: Optional[str] = None,
) -> Dict[str, Any]:
    """Upload installation proof photos for a campaign asset."""
    session = session_from_request(request)
    validate_file_count(files, OPERATIONS_PROOF_MAX_FILES)
    await ensure_asset_access(request, asset_id, session.company_id)
    uploads = await read_image_uploads(files, PROOF_MAX_SIZE_BYTES)

    pipeline = build_pipeline(request, session)
    items = await upload_operations_proofs(
        pipeline,
        session.company_id,
        campaign_id,
        asset_id,
        uploads,
        client_id=client_id,
        photo_type=photo_type,
    )
    return summarize_batch(items)


async def stream_operations_proof_photos(
    request: Request,
    campaign_id: str,
    asset_id: str,
    files: List[UploadFile],
    client_id: Optional[str] = None,
    photo_type: Optional[str] = None,
) -> StreamingResponse:
    """Upload operations proofs while streaming progress as server-sent events.

    Uploads are read and validated before the stream opens, so bad requests
    still fail with a plain HTTP error.
    """
    session = session_from_request(request)
    validate_file_count(files, OPERATIONS_PROOF_MAX_FILES)
    await ensure_asset_access(request, asset_id, session.company_id)
    uploads = await read_image_uploads(files, PROOF_MAX_SIZE_BYTES)
    pipeline = build_pipeline(request, session)
    stream = ProgressStream()

    async def run_batch() -> List[BatchItemResult]:
        try:
            return await upload_operations_proofs(
                pipeline,
                session.company_id,
                campaign_id,
                asset_id,
                uploads,
                client_id=client_id,
                photo_type=photo_type,
                progress=stream,
            )
        finally:
            stream.close()

    async def event_source():
        task = asyncio.create_task(run_batch())
        task.add_done_callback(_log_batch_failure)
        async for event in stream:
            yield format_sse("progress", event.to_dict())
        try:
            items = await task
        except Exception as exc:  # pylint: disable=broad-exception-caught
            yield format_sse("batch.error", {"detail": str(exc)})
            return
        yield format_sse("batch.complete", summarize_batch(items))

    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


async def list_photos(
    request: Request,
    asset_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> Dict[str, Any]:
    """List the tenant's photos, newest first."""
    session = session_from_request(request)
    photo_dal = PhotoDAL(request.app.state.db_initializer)
    records = await photo_dal.list_photos(
        company_id=session.company_id,
        asset_id=asset_id,
        campaign_id=campaign_id,
        limit=limit,
        offset=offset,
    )
    return {"photos": [record.to_dict() for record in records], "limit": limit, "offset": offset}


async def remove_photo(request: Request, photo_id: str) -> Dict[str, Any]:
    """Delete a photo row and its stored object."""
    session = session_from_request(request)
    photo_dal = PhotoDAL(request.app.state.db_initializer)

    record = await photo_dal.get_photo(photo_id)
    if record is None or record.company_id != session.company_id:
        raise HTTPException(status_code=404, detail="Photo not found")

    bucket = bucket_for_url(record.photo_url)
    if bucket is None:
        raise HTTPException(status_code=400, detail="Invalid photo URL format")

    try:
        await delete_photo(photo_dal, request.app.state.storage, photo_id, record.photo_url, bucket)
    except PhotoNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"id": photo_id, "deleted": True}


async def get_latest_photos(request: Request, campaign_id: str, asset_id: str) -> Dict[str, Any]:
    """Return the newest photo URL per proof slot for a campaign asset."""
    session = session_from_request(request)
    photo_dal = PhotoDAL(request.app.state.db_initializer)
    records = await photo_dal.list_photos(
        company_id=session.company_id,
        asset_id=asset_id,
        campaign_id=campaign_id,
        limit=LATEST_PHOTOS_SCAN_LIMIT,
    )
    latest = derive_latest_photos(records)
    return {
        "campaign_id": campaign_id,
        "asset_id": asset_id,
        "photos": latest,
        "status": proof_status(latest),
        "uploaded": sum(1 for url in latest.values() if url),
        "total": len(latest),
    }


async def run_watermark_backfill(
    request: Request,
    batch_size: int,
    offset: int,
    force_reprocess: bool,
    dry_run: bool,
) -> Dict[str, Any]:
    """Run one page of the QR watermark backfill. Admins and directors only."""
    session = session_from_request(request)
    user = await session.get_current_user()
    if user is None or not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")

    state = request.app.state
    backfill = WatermarkBackfill(
        session.company_id,
        PhotoDAL(state.db_initializer),
        state.storage,
        state.qr_cache,
        state.watermarker,
    )
    report = await backfill.run(
        batch_size=batch_size,
        offset=offset,
        force_reprocess=force_reprocess,
        dry_run=dry_run,
    )
    payload = report.to_dict()
    payload["message"] = (
        "Dry run complete - no changes made" if dry_run else f"Processed {report.watermarked_count} images"
    )
    return payload
