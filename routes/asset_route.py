"""FastAPI routes for media assets and campaign timelines."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from controllers.asset_controller import (
    get_asset,
    get_campaign_timeline,
    register_asset,
    update_asset_qr,
)

router = APIRouter(prefix="/api")


class AssetPayload(BaseModel):
    id: str
    asset_code: Optional[str] = None
    qr_code_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class QRPayload(BaseModel):
    qr_code_url: Optional[str] = None


@router.post("/assets")
async def post_asset(request: Request, payload: AssetPayload):
    """Register an asset (or update it) for the caller's company."""
    try:
        return await register_asset(
            request,
            payload.id,
            asset_code=payload.asset_code,
            qr_code_url=payload.qr_code_url,
            latitude=payload.latitude,
            longitude=payload.longitude,
        )
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.put("/assets/{asset_id}/qr")
async def put_asset_qr(request: Request, asset_id: str, payload: QRPayload):
    try:
        return await update_asset_qr(request, asset_id, payload.qr_code_url)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/assets/{asset_id}")
async def get_asset_route(request: Request, asset_id: str):
    try:
        return await get_asset(request, asset_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/campaigns/{campaign_id}/timeline")
async def get_campaign_timeline_route(
    request: Request,
    campaign_id: str,
    limit: int = Query(default=100, ge=1, le=500),
):
    """Return the campaign's audit timeline, newest first."""
    try:
        return await get_campaign_timeline(request, campaign_id, limit=limit)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
