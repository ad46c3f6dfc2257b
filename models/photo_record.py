from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional

PhotoTag = Literal["Newspaper", "Traffic", "Geo-Tagged", "Other"]

PHOTO_TAGS = ("Newspaper", "Traffic", "Geo-Tagged", "Other")


@dataclass
class PhotoRecord:
    """In-memory representation of a row in the media_photos table.

    Attributes:
        id: UUID primary key.
        company_id: Owning tenant.
        asset_id: Media asset the proof belongs to.
        photo_url: Public storage URL of the stored image.
        category: Category derived from the photo tag (Proof/General).
        campaign_id: Optional campaign context.
        client_id: Optional client context.
        uploaded_by: Id of the user who uploaded the photo.
        metadata: JSON blob with tag, GPS, validation and caller extras.
        approval_status: Review state; new uploads start as `pending`.
        uploaded_at: ISO-8601 UTC timestamp of the insert.
    """

    id: str
    company_id: str
    asset_id: str
    photo_url: str
    category: str
    campaign_id: Optional[str] = None
    client_id: Optional[str] = None
    uploaded_by: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    approval_status: Optional[str] = "pending"
    uploaded_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "asset_id": self.asset_id,
            "campaign_id": self.campaign_id,
            "client_id": self.client_id,
            "photo_url": self.photo_url,
            "category": self.category,
            "uploaded_by": self.uploaded_by,
            "metadata": dict(self.metadata),
            "approval_status": self.approval_status,
            "uploaded_at": self.uploaded_at,
        }


@dataclass
class PhotoMetadata:
    """Caller-supplied context for an upload.

    `extra` is merged last into the stored metadata blob, so caller keys win
    over derived ones.
    """

    asset_id: Optional[str] = None
    campaign_id: Optional[str] = None
    client_id: Optional[str] = None
    photo_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def as_blob(self) -> Dict[str, Any]:
        blob: Dict[str, Any] = {
            "asset_id": self.asset_id,
            "campaign_id": self.campaign_id,
            "client_id": self.client_id,
            "photo_type": self.photo_type,
        }
        blob.update(self.extra)
        return {key: value for key, value in blob.items() if value is not None}
