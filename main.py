import inspect
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from dal.asset_dal import AssetDAL
from routes.asset_route import router as asset_router
from routes.photo_route import router as photo_router
from services.openai.quality_validator import PhotoQualityValidator
from services.photos.qr_cache import QRCodeCache
from services.photos.watermarker import QRWatermarker
from services.storage.object_store import LocalObjectStore
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)

STORAGE_URL_PREFIX = "/storage"


async def _close_client(client) -> None:
    """Close a client exposing `aclose` or `close`, sync or async."""
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.warning("Error while closing %s: %s", type(client).__name__, exc)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Shared clients are created in the lifespan and attached to `app.state`:
      - db_initializer: the SQLite database at DATABASE_DIR/app.db
      - storage: the local object store served under /storage
      - http_client / watermarker: QR image fetching and compositing
      - qr_cache: memoized asset QR lookups
      - openai_client / validator: AI quality scoring (None without a key)
    """
    config = config or AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    storage = LocalObjectStore(config.storage_dir, config.public_base_url, url_prefix=STORAGE_URL_PREFIX)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db_initializer = AsyncDatabaseInitializer(config.database_dir, reset=config.reset_database)
        await db_initializer.ensure_database()
        app.state.config = config
        app.state.db_initializer = db_initializer
        app.state.storage = storage

        http_client = httpx.AsyncClient(timeout=config.http_timeout_seconds, follow_redirects=True)
        app.state.http_client = http_client
        app.state.watermarker = QRWatermarker(http_client)
        app.state.qr_cache = QRCodeCache(AssetDAL(db_initializer).get_qr_code_url, config.qr_cache_size)

        openai_client = None
        if config.openai_api_key:
            try:
                openai_client = AsyncOpenAI(api_key=config.openai_api_key)
            except Exception as exc:
                raise RuntimeError("Failed to initialize OpenAI Async client") from exc
        else:
            LOGGER.warning("OPENAI_API_KEY is not set; photo quality validation is disabled.")
        app.state.openai_client = openai_client
        app.state.validator = (
            PhotoQualityValidator(openai_client, config.openai_model) if openai_client is not None else None
        )

        try:
            yield
        finally:
            await _close_client(http_client)
            if openai_client is not None:
                await _close_client(openai_client)

    app = FastAPI(lifespan=lifespan)

    # Public URLs built by the object store resolve here.
    app.mount(STORAGE_URL_PREFIX, StaticFiles(directory=storage.root), name="storage")

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports which shared clients are available.
        """
        state = request.app.state
        return {
            "ok": True,
            "db_initialized": hasattr(state, "db_initializer"),
            "storage_available": hasattr(state, "storage"),
            "validation_available": getattr(state, "validator", None) is not None,
        }

    # Register application routers
    app.include_router(photo_router)
    app.include_router(asset_router)

    return app


app = create_app()
