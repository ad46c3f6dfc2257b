"""Bucket-style object storage backed by the local filesystem.

Objects live under `<root>/<bucket>/<path>` and are exposed by the app at
`<public_base_url>/storage/<bucket>/<path>`. Tenant isolation is purely by
path prefix: callers put the company id first in every object path.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Iterable, List
from urllib.parse import quote, unquote

import aiofiles
import aiofiles.os

LOGGER = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a storage operation is rejected."""


class LocalObjectStore:
    """Minimal async object store with upload, public URL and remove operations.

    Args:
        root: Directory holding one sub-directory per bucket.
        public_base_url: Scheme/host prefix used to build public URLs.
        url_prefix: Path under which the app serves the storage root.
    """

    def __init__(self, root: Path | str, public_base_url: str, url_prefix: str = "/storage") -> None:
        self.root = Path(root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")
        self.url_prefix = "/" + url_prefix.strip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        """Map a bucket/path pair onto disk, rejecting traversal and empty names."""
        if not bucket or "/" in bucket or bucket in (".", ".."):
            raise StorageError(f"Invalid bucket name: {bucket!r}")
        relative = PurePosixPath(path.lstrip("/"))
        if not relative.parts or any(part in ("..", ".", "") for part in relative.parts):
            raise StorageError(f"Invalid object path: {path!r}")
        bucket_root = self.root / bucket
        target = (bucket_root / Path(*relative.parts)).resolve()
        if not target.is_relative_to(bucket_root.resolve()):
            raise StorageError(f"Invalid object path: {path!r}")
        return target

    async def upload(self, bucket: str, path: str, data: bytes, *, upsert: bool = False) -> str:
        """Write `data` to `bucket/path` and return the stored path.

        Raises:
            StorageError: If the path is invalid, the object exists and
                `upsert` is False, or the write fails.
        """
        target = self._resolve(bucket, path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {bucket}/{path}: {exc}") from exc
        LOGGER.debug("Stored %d bytes at %s/%s", len(data), bucket, path)
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the public URL for an object path (the object need not exist yet)."""
        self._resolve(bucket, path)
        quoted = quote(path.lstrip("/"))
        return f"{self.public_base_url}{self.url_prefix}/{bucket}/{quoted}"

    def path_from_public_url(self, bucket: str, url: str) -> str:
        """Recover the object path from a public URL by splitting on `/{bucket}/`.

        Raises:
            ValueError: If the URL does not contain the bucket segment.
        """
        parts = url.split(f"/{bucket}/", 1)
        if len(parts) < 2 or not parts[1]:
            raise ValueError("Invalid photo URL format")
        return unquote(parts[1].split("?", 1)[0])

    async def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()

    async def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        try:
            async with aiofiles.open(target, "rb") as f:
                return await f.read()
        except FileNotFoundError as exc:
            raise StorageError(f"Object not found: {bucket}/{path}") from exc

    async def remove(self, bucket: str, paths: Iterable[str]) -> List[str]:
        """Delete objects and return the paths that were actually removed.

        Missing objects are ignored, so repeating a removal is safe.
        """
        removed: List[str] = []
        for path in paths:
            target = self._resolve(bucket, path)
            try:
                await aiofiles.os.remove(target)
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StorageError(f"Failed to remove {bucket}/{path}: {exc}") from exc
            removed.append(path)
        return removed
