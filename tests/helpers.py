"""Image factories and test doubles shared by the test modules."""

from __future__ import annotations

import io
from typing import List, Optional, Tuple

from PIL import Image
from PIL.TiffImagePlugin import IFDRational

from models.upload_models import PhotoValidationResult
from services.photos.errors import WatermarkError
from services.photos.watermarker import composite_qr


def _dms(value: float) -> Tuple[IFDRational, IFDRational, IFDRational]:
    degrees = int(value)
    minutes_full = (value - degrees) * 60
    minutes = int(minutes_full)
    seconds = round((minutes_full - minutes) * 60 * 100)
    return IFDRational(degrees, 1), IFDRational(minutes, 1), IFDRational(seconds, 100)


def jpeg_bytes(
    size: Tuple[int, int] = (800, 600),
    color: Tuple[int, int, int] = (0, 0, 255),
    gps: Optional[Tuple[float, float]] = None,
    quality: int = 95,
) -> bytes:
    """Return a solid-color JPEG, optionally carrying an EXIF GPS block."""
    img = Image.new("RGB", size, color)
    buf = io.BytesIO()
    if gps is None:
        img.save(buf, "JPEG", quality=quality)
        return buf.getvalue()

    latitude, longitude = gps
    exif = Image.Exif()
    exif[0x8825] = {
        1: "N" if latitude >= 0 else "S",
        2: _dms(abs(latitude)),
        3: "E" if longitude >= 0 else "W",
        4: _dms(abs(longitude)),
    }
    img.save(buf, "JPEG", quality=quality, exif=exif)
    return buf.getvalue()


def noisy_jpeg_bytes(size: Tuple[int, int] = (3000, 2000), quality: int = 100) -> bytes:
    """Return a poorly compressible JPEG."""
    img = Image.effect_noise(size, 80).convert("RGB")
    buf = io.BytesIO()
    img.save(buf, "JPEG", quality=quality)
    return buf.getvalue()


def qr_png_bytes(side: int = 100) -> bytes:
    """Return a black-and-white checker PNG standing in for a QR code."""
    img = Image.new("RGB", (side, side), (255, 255, 255))
    cell = max(1, side // 10)
    for y in range(0, side, cell):
        for x in range(0, side, cell):
            if (x // cell + y // cell) % 2 == 0:
                img.paste((0, 0, 0), (x, y, x + cell, y + cell))
    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


class FakeValidator:
    """Quality validator returning a canned result, or raising when told to."""

    def __init__(self, score: float = 88.0, fail: bool = False) -> None:
        self.score = score
        self.fail = fail
        self.calls: List[Tuple[str, str]] = []

    async def validate(self, photo_url: str, photo_tag: str) -> PhotoValidationResult:
        self.calls.append((photo_url, photo_tag))
        if self.fail:
            raise RuntimeError("validator unavailable")
        issues = [] if self.score >= 60 else ["Photo is blurry"]
        return PhotoValidationResult(
            score=self.score,
            issues=issues,
            suggestions=["Hold the camera steady"] if issues else [],
            passed=self.score >= 60,
        )


class FakeWatermarker:
    """Watermarker compositing a local QR image instead of fetching one."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: List[str] = []

    async def apply(self, photo_bytes: bytes, qr_url: str) -> bytes:
        self.calls.append(qr_url)
        if self.fail:
            raise WatermarkError("QR fetch failed")
        return composite_qr(photo_bytes, qr_png_bytes())


class FailingPhotoDAL:
    """PhotoDAL stand-in whose inserts always fail."""

    def __init__(self) -> None:
        self.attempts = 0

    async def insert_photo(self, record):
        self.attempts += 1
        raise RuntimeError("database is locked")


class FlakyStore:
    """Wraps an object store; removals fail a set number of times first."""

    def __init__(self, inner, remove_failures: int = 0) -> None:
        self._inner = inner
        self.remove_failures = remove_failures
        self.remove_calls = 0

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def remove(self, bucket, paths):
        self.remove_calls += 1
        if self.remove_failures > 0:
            self.remove_failures -= 1
            raise OSError("transient storage failure")
        return await self._inner.remove(bucket, paths)
