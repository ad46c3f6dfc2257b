"""Async Data Access Layer for the media_photos table.

Provides PhotoDAL with async CRUD operations compatible with
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiosqlite

from models.photo_record import PhotoRecord
from utils.database_init import AsyncDatabaseInitializer


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PhotoDAL:
    """Data access layer for proof photo records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection` with `aiosqlite.Row` rows).
    """

    _COLUMNS = (
        "id",
        "company_id",
        "asset_id",
        "campaign_id",
        "client_id",
        "photo_url",
        "category",
        "uploaded_by",
        "metadata",
        "approval_status",
        "uploaded_at",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)
    _PLACEHOLDERS = ", ".join("?" for _ in _COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def insert_photo(self, record: PhotoRecord) -> PhotoRecord:
        """Insert a media_photos row and return the stored record.

        A UUID and `uploaded_at` are assigned when the record lacks them.
        """
        record.id = record.id or str(uuid.uuid4())
        record.uploaded_at = record.uploaded_at or utc_now_iso()

        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO media_photos ({self._COLUMN_LIST}) VALUES ({self._PLACEHOLDERS})",
                (
                    record.id,
                    record.company_id,
                    record.asset_id,
                    record.campaign_id,
                    record.client_id,
                    record.photo_url,
                    record.category,
                    record.uploaded_by,
                    json.dumps(record.metadata or {}),
                    record.approval_status,
                    record.uploaded_at,
                ),
            )
            await conn.commit()
        return record

    async def get_photo(self, photo_id: str) -> Optional[PhotoRecord]:
        """Return the PhotoRecord for `photo_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM media_photos WHERE id = ?",
                (photo_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def list_photos(
        self,
        *,
        company_id: Optional[str] = None,
        asset_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[PhotoRecord]:
        """List photos filtered by equality on the given columns, newest first."""
        filters = {"company_id": company_id, "asset_id": asset_id, "campaign_id": campaign_id}
        clauses = [f"{col} = ?" for col, val in filters.items() if val is not None]
        params: List[Any] = [val for val in filters.values() if val is not None]
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        params.extend([limit, offset])

        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM media_photos{where} "
                "ORDER BY uploaded_at DESC LIMIT ? OFFSET ?",
                tuple(params),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def list_page(self, company_id: str, limit: int, offset: int) -> List[PhotoRecord]:
        """Return one company's photos in insertion order for paged maintenance jobs."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM media_photos WHERE company_id = ? "
                "ORDER BY uploaded_at ASC, id ASC LIMIT ? OFFSET ?",
                (company_id, limit, offset),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def update_photo_url(self, photo_id: str, photo_url: str, metadata: Dict[str, Any]) -> bool:
        """Replace the URL and metadata of a photo. Returns True if a row was changed."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "UPDATE media_photos SET photo_url = ?, metadata = ?, updated_at = ? WHERE id = ?",
                (photo_url, json.dumps(metadata), utc_now_iso(), photo_id),
            )
            await conn.commit()
            return cur.rowcount > 0

    async def delete_photo(self, photo_id: str) -> bool:
        """Delete a media_photos row by id. Returns True if a row was deleted."""
        async with self._db.connection() as conn:
            cur = await conn.execute("DELETE FROM media_photos WHERE id = ?", (photo_id,))
            await conn.commit()
            return cur.rowcount > 0

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> PhotoRecord:
        metadata: Dict[str, Any] = {}
        if row["metadata"]:
            try:
                metadata = json.loads(row["metadata"])
            except json.JSONDecodeError:
                metadata = {}
        return PhotoRecord(
            id=row["id"],
            company_id=row["company_id"],
            asset_id=row["asset_id"],
            campaign_id=row["campaign_id"],
            client_id=row["client_id"],
            photo_url=row["photo_url"],
            category=row["category"],
            uploaded_by=row["uploaded_by"],
            metadata=metadata,
            approval_status=row["approval_status"],
            uploaded_at=row["uploaded_at"],
        )
