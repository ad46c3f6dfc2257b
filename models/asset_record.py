from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class AssetRecord:
    """Row of the media_assets table as far as photo intake needs it."""

    id: str
    company_id: str
    asset_code: Optional[str] = None
    qr_code_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "asset_code": self.asset_code,
            "qr_code_url": self.qr_code_url,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
