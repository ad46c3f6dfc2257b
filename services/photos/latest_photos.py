"""Derive the latest proof photo per slot for a campaign asset.

A campaign asset has four proof slots: newspaper, geotag, traffic1 and
traffic2. Each slot shows the most recently uploaded matching photo, so
field teams never pick a "latest" photo by hand.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from models.photo_record import PhotoRecord

SLOTS = ("newspaper", "geotag", "traffic1", "traffic2")

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def empty_latest_photos() -> Dict[str, Optional[str]]:
    return {slot: None for slot in SLOTS}


def normalize_photo_type(category: Optional[str]) -> Optional[str]:
    """Map a free-form category or tag to a slot name, or None."""
    value = (category or "").lower()

    if "newspaper" in value or value == "news":
        return "newspaper"
    if "geo" in value or value in ("gps", "location"):
        return "geotag"
    if any(key in value for key in ("traffic1", "traffic_left", "traffic-1")) or value == "traffic left":
        return "traffic1"
    if any(key in value for key in ("traffic2", "traffic_right", "traffic-2")) or value == "traffic right":
        return "traffic2"
    if "traffic" in value and "1" not in value and "2" not in value:
        return "traffic1"
    return None


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def photo_type_of(record: PhotoRecord) -> Optional[str]:
    """Slot for a stored photo: the caller's photo_type, then the detected tag, then the category."""
    for candidate in (
        record.metadata.get("photo_type"),
        record.metadata.get("photo_tag"),
        record.category,
    ):
        slot = normalize_photo_type(candidate)
        if slot:
            return slot
    return None


def derive_latest_photos(records: Iterable[PhotoRecord]) -> Dict[str, Optional[str]]:
    """Return the URL with the greatest `uploaded_at` for each slot."""
    latest = empty_latest_photos()
    timestamps: Dict[str, datetime] = {}
    for record in records:
        if not record.photo_url:
            continue
        slot = photo_type_of(record)
        if slot is None:
            continue
        uploaded_at = _parse_timestamp(record.uploaded_at)
        current = timestamps.get(slot)
        if current is None or uploaded_at > current:
            latest[slot] = record.photo_url
            timestamps[slot] = uploaded_at
    return latest


def parse_photos_json(photos: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    """Read the legacy per-asset photos JSON, accepting its historical key names."""
    if not isinstance(photos, dict):
        return empty_latest_photos()
    return {
        "newspaper": photos.get("newspaper") or photos.get("news") or None,
        "geotag": photos.get("geo") or photos.get("geotag") or photos.get("gps") or None,
        "traffic1": photos.get("traffic1") or photos.get("traffic_left") or photos.get("trafficLeft") or None,
        "traffic2": photos.get("traffic2") or photos.get("traffic_right") or photos.get("trafficRight") or None,
    }


def proof_status(latest: Dict[str, Optional[str]], current_status: Optional[str] = None) -> str:
    """Return `Ready for QA` once newspaper, geotag and a traffic view exist."""
    if current_status in ("Verified", "Failed"):
        return current_status
    has_traffic = bool(latest.get("traffic1") or latest.get("traffic2"))
    if latest.get("newspaper") and latest.get("geotag") and has_traffic:
        return "Ready for QA"
    return "Pending"
