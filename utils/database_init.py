import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS media_assets (
        id TEXT PRIMARY KEY,
        company_id TEXT NOT NULL,
        asset_code TEXT,
        qr_code_url TEXT,
        latitude REAL,
        longitude REAL,
        created_at TEXT DEFAULT (datetime('now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS media_photos (
        id TEXT PRIMARY KEY,
        company_id TEXT NOT NULL,
        asset_id TEXT NOT NULL,
        campaign_id TEXT,
        client_id TEXT,
        photo_url TEXT NOT NULL,
        category TEXT NOT NULL,
        uploaded_by TEXT,
        metadata TEXT,
        approval_status TEXT DEFAULT 'pending',
        uploaded_at TEXT NOT NULL,
        updated_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_media_photos_asset ON media_photos(company_id, asset_id)",
    "CREATE INDEX IF NOT EXISTS idx_media_photos_campaign ON media_photos(campaign_id)",
    """
    CREATE TABLE IF NOT EXISTS campaign_timeline (
        id TEXT PRIMARY KEY,
        campaign_id TEXT NOT NULL,
        company_id TEXT NOT NULL,
        event_type TEXT NOT NULL,
        event_title TEXT,
        event_description TEXT,
        created_by TEXT,
        metadata TEXT,
        event_time TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_campaign_timeline_campaign ON campaign_timeline(campaign_id)",
)


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database backing photo records and timelines.

    - The database file is located at: <db_dir>/app.db
    - `db_dir` must be a directory (it is created when missing).
    - On the first call to `ensure_database()` for a given instance the
      schema is created. When `reset=True` any existing database file is
      deleted first, so the app starts clean.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, db_dir: Path | str, *, reset: bool = False) -> None:
        db_dir = Path(db_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"Database directory {db_dir} points to a file, not a directory."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / "app.db"
        self.reset = reset

        self._initialized = False
        self._lock: Optional[asyncio.Lock] = None

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database exists at `self.db_path` with all tables.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return
        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            if self._initialized:
                return

            if self.reset and self.db_path.exists():
                try:
                    self.db_path.unlink()
                except Exception as exc:
                    raise RuntimeError(
                        f"Failed to delete existing database at {self.db_path}"
                    ) from exc

            max_attempts = 3
            for attempt in range(1, max_attempts + 1):
                try:
                    async with aiosqlite.connect(self.db_path) as db:
                        await db.execute("PRAGMA journal_mode=WAL;")
                        for statement in SCHEMA_STATEMENTS:
                            await db.execute(statement)
                        await db.commit()
                    break
                except FileNotFoundError:
                    # On some platforms a transient missing file error may occur; retry a few times.
                    if attempt >= max_attempts:
                        raise
                    await asyncio.sleep(0.1 * attempt)

            self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        Rows are returned as `aiosqlite.Row` so callers can index by column name.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        conn.row_factory = aiosqlite.Row
        try:
            yield conn
        finally:
            await conn.close()
