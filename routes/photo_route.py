"""FastAPI routes for proof photo uploads and maintenance."""

from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile
from pydantic import BaseModel, Field

from controllers.photo_controller import (
    get_latest_photos,
    list_photos,
    remove_photo,
    run_watermark_backfill,
    stream_operations_proof_photos,
    upload_asset_proof_photos,
    upload_operations_proof_photos,
)

router = APIRouter(prefix="/api/photos")


class BackfillPayload(BaseModel):
    batch_size: int = Field(default=2, ge=1, le=50)
    offset: int = Field(default=0, ge=0)
    force_reprocess: bool = False
    dry_run: bool = False


@router.post("/assets/{asset_id}/proofs")
async def post_asset_proofs(request: Request, asset_id: str, files: List[UploadFile] = File(...)):
    """Upload proof photos for a media asset."""
    try:
        return await upload_asset_proof_photos(request, asset_id, files)
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/operations/{campaign_id}/{asset_id}/proofs")
async def post_operations_proofs(
    request: Request,
    campaign_id: str,
    asset_id: str,
    files: List[UploadFile] = File(...),
    client_id: Optional[str] = Form(None),
    photo_type: Optional[str] = Form(None),
):
    """Upload installation proof photos for a campaign asset."""
    try:
        return await upload_operations_proof_photos(
            request, campaign_id, asset_id, files, client_id=client_id, photo_type=photo_type
        )
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/operations/{campaign_id}/{asset_id}/proofs/stream")
async def post_operations_proofs_stream(
    request: Request,
    campaign_id: str,
    asset_id: str,
    files: List[UploadFile] = File(...),
    client_id: Optional[str] = Form(None),
    photo_type: Optional[str] = Form(None),
):
    """Same as the plain upload, but streams progress as server-sent events."""
    try:
        return await stream_operations_proof_photos(
            request, campaign_id, asset_id, files, client_id=client_id, photo_type=photo_type
        )
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("")
async def get_photos(
    request: Request,
    asset_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
):
    try:
        return await list_photos(request, asset_id=asset_id, campaign_id=campaign_id, limit=limit, offset=offset)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{photo_id}")
async def delete_photo_route(request: Request, photo_id: str):
    """Delete a photo and its stored image."""
    try:
        return await remove_photo(request, photo_id)
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/campaigns/{campaign_id}/assets/{asset_id}/latest")
async def get_latest_photos_route(request: Request, campaign_id: str, asset_id: str):
    try:
        return await get_latest_photos(request, campaign_id, asset_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/watermark-backfill")
async def post_watermark_backfill(request: Request, payload: BackfillPayload):
    """Re-apply QR watermarks to one page of stored photos."""
    try:
        return await run_watermark_backfill(
            request,
            batch_size=payload.batch_size,
            offset=payload.offset,
            force_reprocess=payload.force_reprocess,
            dry_run=payload.dry_run,
        )
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
