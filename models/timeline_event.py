from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class TimelineEvent:
    """Append-only audit entry in the campaign_timeline table.

    Attributes:
        id: UUID primary key (None before insert).
        campaign_id: Campaign the event is logged against.
        company_id: Owning tenant.
        event_type: Machine-readable type, e.g. `photo_uploaded`.
        event_title: Short human-readable title.
        event_description: Longer description for history display.
        created_by: User who triggered the event.
        metadata: Free-form JSON payload.
        event_time: ISO-8601 UTC timestamp.
    """

    id: Optional[str]
    campaign_id: str
    company_id: str
    event_type: str
    event_title: Optional[str] = None
    event_description: Optional[str] = None
    created_by: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    event_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "company_id": self.company_id,
            "event_type": self.event_type,
            "event_title": self.event_title,
            "event_description": self.event_description,
            "created_by": self.created_by,
            "metadata": dict(self.metadata),
            "event_time": self.event_time,
        }
