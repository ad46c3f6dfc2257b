"""Classify proof photos by filename keywords and embedded GPS.

Keyword rules are checked in order and the first match wins; a photo with
GPS coordinates but no keyword is treated as geo-tagged.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from models.photo_record import PhotoTag

LOGGER = logging.getLogger(__name__)

GPS_IFD = 0x8825
GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4

TAG_KEYWORDS: Tuple[Tuple[PhotoTag, Tuple[str, ...]], ...] = (
    ("Newspaper", ("news", "paper", "newspaper")),
    ("Traffic", ("traffic", "road")),
    ("Geo-Tagged", ("geo", "map", "location")),
)


@dataclass(frozen=True)
class TagDetection:
    tag: PhotoTag
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_gps(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def _to_degrees(values: Optional[Sequence[Any]], ref: Optional[str]) -> Optional[float]:
    """Convert an EXIF (degrees, minutes, seconds) triple to signed decimal degrees."""
    if not values or len(values) < 3:
        return None
    degrees, minutes, seconds = (float(v) for v in values[:3])
    result = degrees + minutes / 60.0 + seconds / 3600.0
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if ref and ref.strip().upper() in ("S", "W"):
        result = -result
    return round(result, 6)


def read_gps_coordinates(data: bytes) -> Tuple[Optional[float], Optional[float]]:
    """Return `(latitude, longitude)` from EXIF GPS data, or `(None, None)`.

    Unreadable images and malformed GPS blocks are not errors here.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            gps_info = img.getexif().get_ifd(GPS_IFD)
    except UnidentifiedImageError as exc:
        LOGGER.debug("No EXIF data found: %s", exc)
        return None, None
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.debug("EXIF parse failed: %s", exc)
        return None, None

    if not gps_info:
        return None, None

    try:
        latitude = _to_degrees(gps_info.get(GPS_LATITUDE), gps_info.get(GPS_LATITUDE_REF))
        longitude = _to_degrees(gps_info.get(GPS_LONGITUDE), gps_info.get(GPS_LONGITUDE_REF))
    except (TypeError, ValueError, ZeroDivisionError) as exc:
        LOGGER.debug("Malformed GPS block ignored: %s", exc)
        return None, None

    # Zero coordinates are treated as "not recorded", as camera apps emit 0/0 when GPS is off.
    if not latitude or not longitude:
        return None, None
    return latitude, longitude


def tag_from_filename(filename: str, has_gps: bool = False) -> PhotoTag:
    lowered = (filename or "").lower()
    for tag, keywords in TAG_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return tag
    if has_gps:
        return "Geo-Tagged"
    return "Other"


def detect_photo_tag(filename: str, data: bytes) -> TagDetection:
    """Detect the photo tag from `filename` and the GPS block of `data`.

    Coordinates are returned whatever tag wins.
    """
    latitude, longitude = read_gps_coordinates(data)
    has_gps = latitude is not None and longitude is not None
    return TagDetection(
        tag=tag_from_filename(filename, has_gps),
        latitude=latitude,
        longitude=longitude,
    )
