"""Media asset registration and campaign timeline reads."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request

from dal.asset_dal import AssetDAL
from dal.timeline_dal import TimelineDAL
from models.asset_record import AssetRecord
from services.auth.session import session_from_request


async def _owned_asset(asset_dal: AssetDAL, asset_id: str, company_id: str) -> AssetRecord:
    asset = await asset_dal.get_asset(asset_id)
    if asset is None or asset.company_id != company_id:
        raise HTTPException(status_code=404, detail="Asset not found")
    return asset


async def register_asset(
    request: Request,
    asset_id: str,
    asset_code: Optional[str] = None,
    qr_code_url: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> Dict[str, Any]:
    """Create or update an asset for the caller's company."""
    session = session_from_request(request)
    asset_dal = AssetDAL(request.app.state.db_initializer)

    existing = await asset_dal.get_asset(asset_id)
    if existing is not None and existing.company_id != session.company_id:
        raise HTTPException(status_code=409, detail="Asset id belongs to another company")

    record = AssetRecord(
        id=asset_id,
        company_id=session.company_id,
        asset_code=asset_code,
        qr_code_url=qr_code_url,
        latitude=latitude,
        longitude=longitude,
    )
    await asset_dal.upsert_asset(record)
    request.app.state.qr_cache.invalidate(asset_id)
    return record.to_dict()


async def update_asset_qr(request: Request, asset_id: str, qr_code_url: Optional[str]) -> Dict[str, Any]:
    """Replace an asset's QR code URL and drop the cached lookup."""
    session = session_from_request(request)
    asset_dal = AssetDAL(request.app.state.db_initializer)
    await _owned_asset(asset_dal, asset_id, session.company_id)

    await asset_dal.set_qr_code_url(asset_id, qr_code_url)
    request.app.state.qr_cache.invalidate(asset_id)
    return {"id": asset_id, "qr_code_url": qr_code_url}


async def get_asset(request: Request, asset_id: str) -> Dict[str, Any]:
    session = session_from_request(request)
    asset_dal = AssetDAL(request.app.state.db_initializer)
    asset = await _owned_asset(asset_dal, asset_id, session.company_id)
    return asset.to_dict()


async def get_campaign_timeline(request: Request, campaign_id: str, limit: int = 100) -> Dict[str, Any]:
    """Return the newest timeline events of a campaign for the caller's company."""
    session = session_from_request(request)
    timeline_dal = TimelineDAL(request.app.state.db_initializer)
    events = await timeline_dal.list_events(campaign_id, company_id=session.company_id, limit=limit)
    return {"campaign_id": campaign_id, "events": [event.to_dict() for event in events]}
