"""Environment-driven application configuration.

Values are read from the process environment (a `.env` file is loaded by
`main.py` through python-dotenv before this module is used).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class AppConfig:
    """Settings shared by the app factory and its services.

    Attributes:
        database_dir: Directory holding the SQLite file (`DATABASE_DIR`).
        storage_dir: Root of the local object store (`STORAGE_DIR`).
        public_base_url: Prefix used to build public storage URLs.
        openai_api_key: Optional key; quality validation is disabled without it.
        openai_model: Model used by the quality validator.
        qr_cache_size: Maximum number of asset QR lookups kept in memory.
        http_timeout_seconds: Timeout for outbound image fetches.
        reset_database: Wipe the database on startup.
        log_level: Root logging level name.
    """

    database_dir: Path
    storage_dir: Path
    public_base_url: str
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-5-mini"
    qr_cache_size: int = 256
    http_timeout_seconds: float = 20.0
    reset_database: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        env_dir = os.getenv("DATABASE_DIR")
        if env_dir is None or not env_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )
        database_dir = Path(env_dir).expanduser()
        storage_env = os.getenv("STORAGE_DIR")
        storage_dir = Path(storage_env).expanduser() if storage_env else database_dir / "storage"

        return cls(
            database_dir=database_dir,
            storage_dir=storage_dir,
            public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-5-mini"),
            qr_cache_size=_int_env("QR_CACHE_SIZE", 256),
            http_timeout_seconds=_float_env("HTTP_TIMEOUT_SECONDS", 20.0),
            reset_database=os.getenv("DATABASE_RESET_ON_START", "").lower() in ("1", "true", "yes"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
