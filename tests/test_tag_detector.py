import pytest

from services.photos.tag_detector import detect_photo_tag, read_gps_coordinates, tag_from_filename

from helpers import jpeg_bytes


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("traffic_photo.jpg", "Traffic"),
        ("Main_Road_view.JPG", "Traffic"),
        ("newspaper-proof.png", "Newspaper"),
        ("todays_paper.jpg", "Newspaper"),
        ("site_location.jpg", "Geo-Tagged"),
        ("IMG_0001.jpg", "Other"),
    ],
)
def test_tag_from_filename_keywords(filename, expected):
    assert tag_from_filename(filename) == expected


def test_first_keyword_group_wins():
    # "news" is checked before "road"
    assert tag_from_filename("news_on_road.jpg") == "Newspaper"


def test_gps_without_keyword_is_geo_tagged():
    detection = detect_photo_tag("IMG_0001.jpg", jpeg_bytes(gps=(17.4, 78.4)))

    assert detection.tag == "Geo-Tagged"
    assert detection.latitude == pytest.approx(17.4, abs=1e-4)
    assert detection.longitude == pytest.approx(78.4, abs=1e-4)


def test_keyword_beats_gps_but_keeps_coordinates():
    detection = detect_photo_tag("traffic_photo.jpg", jpeg_bytes(gps=(17.4, 78.4)))

    assert detection.tag == "Traffic"
    assert detection.has_gps


def test_southern_and_western_refs_are_negative():
    latitude, longitude = read_gps_coordinates(jpeg_bytes(gps=(-33.9, -18.4)))

    assert latitude == pytest.approx(-33.9, abs=1e-4)
    assert longitude == pytest.approx(-18.4, abs=1e-4)


def test_photo_without_exif_has_no_gps():
    detection = detect_photo_tag("IMG_0001.jpg", jpeg_bytes())

    assert detection.tag == "Other"
    assert detection.latitude is None and detection.longitude is None


def test_garbage_bytes_do_not_raise():
    detection = detect_photo_tag("geo.jpg", b"not an image")

    assert detection.tag == "Geo-Tagged"
    assert not detection.has_gps
