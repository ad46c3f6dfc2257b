"""Async Data Access Layer for the media_assets table."""

from __future__ import annotations

from typing import Optional

import aiosqlite

from models.asset_record import AssetRecord
from utils.database_init import AsyncDatabaseInitializer


class AssetDAL:
    """Read and register media assets used to look up QR codes."""

    _COLUMN_LIST = "id, company_id, asset_code, qr_code_url, latitude, longitude"

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def upsert_asset(self, record: AssetRecord) -> AssetRecord:
        """Insert the asset or replace its mutable fields when it exists."""
        async with self._db.connection() as conn:
            await conn.execute(
                f"""
                INSERT INTO media_assets ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    asset_code = excluded.asset_code,
                    qr_code_url = excluded.qr_code_url,
                    latitude = excluded.latitude,
                    longitude = excluded.longitude
                """,
                (
                    record.id,
                    record.company_id,
                    record.asset_code,
                    record.qr_code_url,
                    record.latitude,
                    record.longitude,
                ),
            )
            await conn.commit()
        return record

    async def get_asset(self, asset_id: str) -> Optional[AssetRecord]:
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM media_assets WHERE id = ?",
                (asset_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def get_qr_code_url(self, company_id: str, asset_id: str) -> Optional[str]:
        """Return the QR code URL of an asset owned by `company_id`, or None."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT qr_code_url FROM media_assets WHERE id = ? AND company_id = ?",
                (asset_id, company_id),
            )
            row = await cur.fetchone()
            return row["qr_code_url"] if row else None

    async def set_qr_code_url(self, asset_id: str, qr_code_url: Optional[str]) -> bool:
        """Update the QR URL of an existing asset. Returns True if a row was changed."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "UPDATE media_assets SET qr_code_url = ? WHERE id = ?",
                (qr_code_url, asset_id),
            )
            await conn.commit()
            return cur.rowcount > 0

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> AssetRecord:
        return AssetRecord(
            id=row["id"],
            company_id=row["company_id"],
            asset_code=row["asset_code"],
            qr_code_url=row["qr_code_url"],
            latitude=row["latitude"],
            longitude=row["longitude"],
        )
