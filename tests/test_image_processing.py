import io

import pytest
from PIL import Image

from services.photos.compressor import CompressionSettings, compress_image, optimal_compression_settings
from services.photos.errors import CompressionError, WatermarkError
from services.photos.tag_detector import read_gps_coordinates
from services.photos.watermarker import composite_qr

from helpers import jpeg_bytes, noisy_jpeg_bytes, qr_png_bytes

MB = 1024 * 1024


@pytest.mark.parametrize(
    "size, expected",
    [
        (6 * MB, (1600, 70)),
        (3 * MB, (1920, 80)),
        (int(1.5 * MB), (2560, 85)),
        (500 * 1024, (4096, 90)),
        (5 * MB, (1920, 80)),
    ],
)
def test_compression_policy(size, expected):
    settings = optimal_compression_settings(size)
    assert (settings.max_dimension, settings.quality) == expected


def test_compress_downsizes_large_image():
    original = noisy_jpeg_bytes((3000, 2000))

    compressed = compress_image(original, CompressionSettings(max_dimension=1600, quality=70))

    assert len(compressed) < len(original)
    with Image.open(io.BytesIO(compressed)) as img:
        assert max(img.size) == 1600
        assert img.format == "JPEG"


def test_compress_keeps_original_when_not_smaller():
    original = noisy_jpeg_bytes((400, 300), quality=20)

    assert compress_image(original, CompressionSettings(max_dimension=4096, quality=100)) == original


def test_compress_preserves_gps():
    original = noisy_jpeg_bytes((2000, 1500))
    with Image.open(io.BytesIO(jpeg_bytes(gps=(17.4, 78.4)))) as tagged:
        exif = tagged.getexif()
    with Image.open(io.BytesIO(original)) as img:
        buf = io.BytesIO()
        img.save(buf, "JPEG", quality=100, exif=exif)

    compressed = compress_image(buf.getvalue(), CompressionSettings(max_dimension=800, quality=70))

    latitude, longitude = read_gps_coordinates(compressed)
    assert latitude == pytest.approx(17.4, abs=1e-4)
    assert longitude == pytest.approx(78.4, abs=1e-4)


def test_compress_flattens_transparency():
    noise = Image.effect_noise((1200, 800), 80)
    img = Image.merge("RGBA", (noise, noise, noise, Image.new("L", noise.size, 0)))
    buf = io.BytesIO()
    img.save(buf, "PNG")

    compressed = compress_image(buf.getvalue(), CompressionSettings(max_dimension=600, quality=80))

    with Image.open(io.BytesIO(compressed)) as out:
        assert out.mode == "RGB"
        r, g, b = out.getpixel((10, 10))
        assert min(r, g, b) > 240


def test_compress_rejects_garbage():
    with pytest.raises(CompressionError):
        compress_image(b"not an image", CompressionSettings(max_dimension=100, quality=50))


def test_qr_is_composited_bottom_right():
    result = composite_qr(jpeg_bytes((800, 600), color=(0, 0, 255)), qr_png_bytes())

    with Image.open(io.BytesIO(result)) as img:
        assert img.size == (800, 600)
        assert img.format == "JPEG"
        plate_r, _, _ = img.getpixel((698, 498))
        corner_r, _, corner_b = img.getpixel((10, 10))
    assert plate_r > 180
    assert corner_r < 60 and corner_b > 200


def test_qr_scales_with_image():
    result = composite_qr(jpeg_bytes((2000, 1500), color=(0, 0, 255)), qr_png_bytes())

    with Image.open(io.BytesIO(result)) as img:
        # QR side is 12% of 1500 = 180, plate adds a 6px margin each side.
        inside_plate = img.getpixel((2000 - 12 - 190, 1500 - 12 - 190))
        outside_plate = img.getpixel((2000 - 12 - 200, 1500 - 12 - 200))
    assert inside_plate[0] > 180
    assert outside_plate[0] < 60


def test_qr_rejects_tiny_photo():
    with pytest.raises(WatermarkError):
        composite_qr(jpeg_bytes((100, 100)), qr_png_bytes())


def test_qr_rejects_undecodable_qr():
    with pytest.raises(WatermarkError):
        composite_qr(jpeg_bytes(), b"<html>404</html>")
