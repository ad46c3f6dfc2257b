"""Size-dependent JPEG re-encoding for oversized proof photos.

Pick settings with `optimal_compression_settings`, then call
`compress_image`. Compression is blocking Pillow work, so async callers
run it through `asyncio.to_thread`.
"""
from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image, ImageOps

from services.photos.errors import CompressionError

MB = 1024 * 1024


@dataclass(frozen=True)
class CompressionSettings:
    max_dimension: int
    quality: int


def optimal_compression_settings(size_bytes: int) -> CompressionSettings:
    """Larger originals get a smaller bounding box and a lower JPEG quality."""
    if size_bytes > 5 * MB:
        return CompressionSettings(max_dimension=1600, quality=70)
    if size_bytes > 2 * MB:
        return CompressionSettings(max_dimension=1920, quality=80)
    if size_bytes > 1 * MB:
        return CompressionSettings(max_dimension=2560, quality=85)
    return CompressionSettings(max_dimension=4096, quality=90)


def compress_image(data: bytes, settings: CompressionSettings) -> bytes:
    """Downsize and re-encode `data` as JPEG.

    EXIF is carried over so GPS survives compression. The original bytes are
    returned when re-encoding does not make the file smaller.

    Raises:
        CompressionError: If the bytes cannot be decoded or encoded.
    """
    try:
        with Image.open(io.BytesIO(data)) as src:
            img = ImageOps.exif_transpose(src)
            exif = img.info.get("exif")
            if img.mode in ("RGBA", "LA", "P"):
                img = img.convert("RGBA")
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[3])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")

            img.thumbnail((settings.max_dimension, settings.max_dimension), Image.LANCZOS)

            out = io.BytesIO()
            save_kwargs = {"format": "JPEG", "quality": settings.quality, "optimize": True}
            if exif:
                save_kwargs["exif"] = exif
            img.save(out, **save_kwargs)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise CompressionError(f"Unable to compress image: {exc}") from exc

    compressed = out.getvalue()
    return compressed if len(compressed) < len(data) else data
