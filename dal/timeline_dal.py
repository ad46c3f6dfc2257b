"""Async Data Access Layer for the append-only campaign_timeline table."""

from __future__ import annotations

import json
import uuid
from typing import Any, List, Optional

import aiosqlite

from dal.photo_dal import utc_now_iso
from models.timeline_event import TimelineEvent
from utils.database_init import AsyncDatabaseInitializer


class TimelineDAL:
    """Append and read campaign timeline events. Events are never updated."""

    _COLUMNS = (
        "id",
        "campaign_id",
        "company_id",
        "event_type",
        "event_title",
        "event_description",
        "created_by",
        "metadata",
        "event_time",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def append_event(self, event: TimelineEvent) -> TimelineEvent:
        """Insert `event` and return it with its id and timestamp filled in."""
        event.id = event.id or str(uuid.uuid4())
        event.event_time = event.event_time or utc_now_iso()
        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO campaign_timeline ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    event.id,
                    event.campaign_id,
                    event.company_id,
                    event.event_type,
                    event.event_title,
                    event.event_description,
                    event.created_by,
                    json.dumps(event.metadata or {}),
                    event.event_time,
                ),
            )
            await conn.commit()
        return event

    async def list_events(
        self, campaign_id: str, company_id: Optional[str] = None, limit: int = 100
    ) -> List[TimelineEvent]:
        """Return the newest events for a campaign, optionally for one company only."""
        where = "WHERE campaign_id = ?"
        params: List[Any] = [campaign_id]
        if company_id is not None:
            where += " AND company_id = ?"
            params.append(company_id)
        params.append(limit)
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM campaign_timeline {where} "
                "ORDER BY event_time DESC LIMIT ?",
                tuple(params),
            )
            rows = await cur.fetchall()
            return [self._row_to_event(r) for r in rows]

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> TimelineEvent:
        try:
            metadata = json.loads(row["metadata"]) if row["metadata"] else {}
        except json.JSONDecodeError:
            metadata = {}
        return TimelineEvent(
            id=row["id"],
            campaign_id=row["campaign_id"],
            company_id=row["company_id"],
            event_type=row["event_type"],
            event_title=row["event_title"],
            event_description=row["event_description"],
            created_by=row["created_by"],
            metadata=metadata,
            event_time=row["event_time"],
        )
