"""QR code watermarking for proof photos.

The QR image is fetched over HTTP and pasted into the bottom-right corner of
the photo on a white backing plate, then the result is re-encoded as JPEG.
"""
from __future__ import annotations

import asyncio
import io
import logging
from typing import Optional

import httpx
from PIL import Image, ImageOps

from services.photos.errors import WatermarkError

LOGGER = logging.getLogger(__name__)

QR_SIZE = 80
QR_PADDING = 12
QR_SCALE = 0.12
PLATE_MARGIN = 6
WATERMARK_OPACITY = 0.9
OUTPUT_QUALITY = 92


def composite_qr(photo_bytes: bytes, qr_bytes: bytes) -> bytes:
    """Composite `qr_bytes` onto `photo_bytes` and return JPEG bytes.

    The QR side is 12% of the photo's short side (never below 80 px). A white
    plate slightly larger than the QR sits behind it; plate and QR are blended
    at 90% opacity.

    Raises:
        WatermarkError: If either image cannot be decoded or the result encoded.
    """
    try:
        with Image.open(io.BytesIO(photo_bytes)) as src:
            upright = ImageOps.exif_transpose(src)
            exif = upright.info.get("exif")
            photo = upright.convert("RGBA")
        with Image.open(io.BytesIO(qr_bytes)) as qr_src:
            qr = qr_src.convert("RGBA")
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise WatermarkError(f"Unable to decode images: {exc}") from exc

    qr_side = max(QR_SIZE, int(min(photo.size) * QR_SCALE))
    plate_side = qr_side + 2 * PLATE_MARGIN
    if plate_side + QR_PADDING > min(photo.size):
        raise WatermarkError("Photo is too small to carry a QR watermark.")

    qr = qr.resize((qr_side, qr_side), Image.NEAREST)

    overlay = Image.new("RGBA", photo.size, (0, 0, 0, 0))
    plate_x = photo.width - plate_side - QR_PADDING
    plate_y = photo.height - plate_side - QR_PADDING
    overlay.paste(Image.new("RGBA", (plate_side, plate_side), (255, 255, 255, 255)), (plate_x, plate_y))
    overlay.paste(qr, (plate_x + PLATE_MARGIN, plate_y + PLATE_MARGIN), qr)

    alpha = overlay.getchannel("A").point(lambda a: int(a * WATERMARK_OPACITY))
    overlay.putalpha(alpha)
    composed = Image.alpha_composite(photo, overlay).convert("RGB")

    out = io.BytesIO()
    try:
        if exif:
            composed.save(out, format="JPEG", quality=OUTPUT_QUALITY, exif=exif)
        else:
            composed.save(out, format="JPEG", quality=OUTPUT_QUALITY)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise WatermarkError(f"Unable to encode watermarked image: {exc}") from exc
    return out.getvalue()


class QRWatermarker:
    """Fetch QR images and composite them onto photos.

    Args:
        http_client: Shared `httpx.AsyncClient`; a short-lived one is used when omitted.
        timeout: Timeout for the QR download when no client is injected.
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 20.0) -> None:
        self.http_client = http_client
        self.timeout = timeout

    async def fetch_qr(self, qr_url: str) -> bytes:
        try:
            if self.http_client is not None:
                resp = await self.http_client.get(qr_url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    resp = await client.get(qr_url)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise WatermarkError(f"Failed to fetch QR image {qr_url}: {exc}") from exc
        if not resp.content:
            raise WatermarkError(f"QR image at {qr_url} is empty.")
        return resp.content

    async def apply(self, photo_bytes: bytes, qr_url: str) -> bytes:
        """Return `photo_bytes` with the QR at `qr_url` composited on top."""
        qr_bytes = await self.fetch_qr(qr_url)
        return await asyncio.to_thread(composite_qr, photo_bytes, qr_bytes)
