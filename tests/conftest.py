from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

# `main` builds its app at import time from the environment.
os.environ.setdefault("DATABASE_DIR", tempfile.mkdtemp(prefix="proof-photos-"))

from dal.asset_dal import AssetDAL  # noqa: E402
from dal.photo_dal import PhotoDAL  # noqa: E402
from dal.timeline_dal import TimelineDAL  # noqa: E402
from services.auth.session import CurrentUser, SessionProvider  # noqa: E402
from services.photos.pipeline import PhotoUploadPipeline  # noqa: E402
from services.photos.qr_cache import QRCodeCache  # noqa: E402
from services.storage.object_store import LocalObjectStore  # noqa: E402
from utils.app_config import AppConfig  # noqa: E402
from utils.database_init import AsyncDatabaseInitializer  # noqa: E402

from helpers import FakeValidator, FakeWatermarker  # noqa: E402

COMPANY_ID = "company-1"
USER_ID = "user-1"


@pytest.fixture
def db(tmp_path: Path) -> AsyncDatabaseInitializer:
    return AsyncDatabaseInitializer(tmp_path / "db")


@pytest.fixture
def storage(tmp_path: Path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "storage", "http://testserver")


@pytest.fixture
def session() -> SessionProvider:
    return SessionProvider(COMPANY_ID, CurrentUser(id=USER_ID, role="operations"))


@pytest.fixture
def make_pipeline(db, storage, session):
    """Factory for pipelines over the temp database and store; pass overrides as kwargs."""

    def _factory(**overrides) -> PhotoUploadPipeline:
        kwargs = {
            "storage": storage,
            "photo_dal": PhotoDAL(db),
            "session": session,
            "timeline_dal": TimelineDAL(db),
            "qr_cache": QRCodeCache(AssetDAL(db).get_qr_code_url),
            "watermarker": FakeWatermarker(),
            "validator": FakeValidator(),
        }
        kwargs.update(overrides)
        return PhotoUploadPipeline(**kwargs)

    return _factory


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        database_dir=tmp_path / "app-db",
        storage_dir=tmp_path / "app-storage",
        public_base_url="http://testserver",
        log_level="DEBUG",
    )
