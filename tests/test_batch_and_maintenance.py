import asyncio

import pytest

from dal.asset_dal import AssetDAL
from dal.photo_dal import PhotoDAL
from dal.timeline_dal import TimelineDAL
from models.asset_record import AssetRecord
from models.photo_record import PhotoMetadata, PhotoRecord
from models.timeline_event import TimelineEvent
from services.photos.batch import successful_results, upload_photo_batch
from services.photos.deletion import delete_photo
from services.photos.errors import PhotoNotFoundError
from services.photos.latest_photos import (
    derive_latest_photos,
    normalize_photo_type,
    parse_photos_json,
    proof_status,
)
from services.photos.progress import ProgressStream
from services.photos.proof_uploads import (
    OPERATIONS_PROOF_BUCKET,
    bucket_for_url,
    operations_proof_config,
    upload_asset_proofs,
    upload_operations_proofs,
)
from services.photos.qr_cache import QRCodeCache
from services.photos.watermark_backfill import WatermarkBackfill, is_already_watermarked, watermarked_path

from helpers import FakeWatermarker, jpeg_bytes

COMPANY = "company-1"


def test_batch_returns_one_entry_per_input(db, make_pipeline):
    pipeline = make_pipeline()
    stream = ProgressStream()
    files = [
        ("traffic_1.jpg", jpeg_bytes()),
        ("empty.jpg", b""),
        ("newspaper.jpg", jpeg_bytes()),
    ]

    items = asyncio.run(
        upload_photo_batch(
            pipeline,
            operations_proof_config("camp-1", "asset-1"),
            COMPANY,
            files,
            PhotoMetadata(asset_id="asset-1", campaign_id="camp-1"),
            stream,
        )
    )

    assert [item.index for item in items] == [0, 1, 2]
    assert [item.ok for item in items] == [True, False, True]
    assert "empty" in items[1].error
    assert [r.tag for r in successful_results(items)] == ["Traffic", "Newspaper"]
    assert {e.file_index for e in stream.history} == {0, 2}
    assert len(asyncio.run(PhotoDAL(db).list_photos(campaign_id="camp-1"))) == 2


def test_batch_of_nothing_is_empty(make_pipeline):
    items = asyncio.run(
        upload_photo_batch(
            make_pipeline(),
            operations_proof_config("camp-1", "asset-1"),
            COMPANY,
            [],
            PhotoMetadata(asset_id="asset-1"),
        )
    )
    assert items == []
    assert successful_results(items) == []


def test_batch_where_every_file_fails(make_pipeline):
    items = asyncio.run(
        upload_photo_batch(
            make_pipeline(),
            operations_proof_config("camp-1", "asset-1"),
            COMPANY,
            [("a.jpg", b""), ("b.jpg", b"")],
            PhotoMetadata(asset_id="asset-1"),
        )
    )
    assert [item.ok for item in items] == [False, False]
    assert successful_results(items) == []


def test_proof_wrappers_enforce_file_limits(make_pipeline):
    pipeline = make_pipeline()
    eleven = [(f"{i}.jpg", b"x") for i in range(11)]
    twenty_one = [(f"{i}.jpg", b"x") for i in range(21)]

    with pytest.raises(ValueError):
        asyncio.run(upload_asset_proofs(pipeline, COMPANY, "asset-1", eleven))
    with pytest.raises(ValueError):
        asyncio.run(upload_operations_proofs(pipeline, COMPANY, "camp-1", "asset-1", twenty_one))


def test_operations_wrapper_stores_under_campaign_path(db, make_pipeline):
    items = asyncio.run(
        upload_operations_proofs(
            make_pipeline(),
            COMPANY,
            "camp-1",
            "asset-1",
            [("geo.jpg", jpeg_bytes())],
            client_id="client-1",
            photo_type="geotag",
        )
    )

    result = items[0].result
    assert result.storage_path.startswith("company-1/camp-1/asset-1/geo-tagged_")
    assert bucket_for_url(result.url) == OPERATIONS_PROOF_BUCKET
    record = asyncio.run(PhotoDAL(db).get_photo(result.id))
    assert record.campaign_id == "camp-1"
    assert record.client_id == "client-1"


def test_delete_removes_object_and_row(db, storage, make_pipeline):
    items = asyncio.run(
        upload_operations_proofs(make_pipeline(), COMPANY, "camp-1", "asset-1", [("traffic.jpg", jpeg_bytes())])
    )
    result = items[0].result
    dal = PhotoDAL(db)

    asyncio.run(delete_photo(dal, storage, result.id, result.url, OPERATIONS_PROOF_BUCKET))

    assert asyncio.run(dal.get_photo(result.id)) is None
    assert not asyncio.run(storage.exists(OPERATIONS_PROOF_BUCKET, result.storage_path))


def test_delete_missing_row_raises_not_found(db, storage):
    url = storage.get_public_url(OPERATIONS_PROOF_BUCKET, "company-1/x.jpg")

    with pytest.raises(PhotoNotFoundError):
        asyncio.run(delete_photo(PhotoDAL(db), storage, "missing", url, OPERATIONS_PROOF_BUCKET))


def test_delete_rejects_url_outside_bucket(db, storage):
    with pytest.raises(ValueError, match="Invalid photo URL format"):
        asyncio.run(
            delete_photo(PhotoDAL(db), storage, "p1", "http://elsewhere/x.jpg", OPERATIONS_PROOF_BUCKET)
        )


@pytest.mark.parametrize(
    "category, slot",
    [
        ("Newspaper", "newspaper"),
        ("news", "newspaper"),
        ("Geo-Tagged", "geotag"),
        ("gps", "geotag"),
        ("Traffic", "traffic1"),
        ("traffic_right", "traffic2"),
        ("Traffic Left", "traffic1"),
        ("traffic-2", "traffic2"),
        ("Proof", None),
        (None, None),
    ],
)
def test_normalize_photo_type(category, slot):
    assert normalize_photo_type(category) == slot


def _photo(url, category, uploaded_at, **metadata):
    return PhotoRecord(
        id=url,
        company_id=COMPANY,
        asset_id="asset-1",
        photo_url=url,
        category=category,
        metadata=metadata,
        uploaded_at=uploaded_at,
    )


def test_derive_latest_photos_keeps_newest_per_slot():
    records = [
        _photo("old-news", "Proof", "2024-01-01T00:00:00+00:00", photo_tag="Newspaper"),
        _photo("new-news", "Proof", "2024-03-01T00:00:00+00:00", photo_tag="Newspaper"),
        _photo("right", "Proof", "2024-02-01T00:00:00Z", photo_type="traffic2", photo_tag="Traffic"),
        _photo("geo", "Geo-Tagged", None),
        _photo("", "Proof", "2025-01-01T00:00:00+00:00", photo_tag="Traffic"),
        _photo("other", "General", "2025-01-01T00:00:00+00:00", photo_tag="Other"),
    ]

    latest = derive_latest_photos(records)

    assert latest == {"newspaper": "new-news", "geotag": "geo", "traffic1": None, "traffic2": "right"}
    assert proof_status(latest) == "Ready for QA"
    assert proof_status(latest, "Failed") == "Failed"


def test_parse_photos_json_accepts_legacy_keys():
    assert parse_photos_json({"news": "n", "gps": "g", "trafficLeft": "t1"}) == {
        "newspaper": "n",
        "geotag": "g",
        "traffic1": "t1",
        "traffic2": None,
    }
    assert parse_photos_json(None)["newspaper"] is None
    assert proof_status(parse_photos_json({"news": "n"})) == "Pending"


def test_watermark_helpers():
    assert is_already_watermarked({"qr_watermarked": True}, "x.jpg")
    assert is_already_watermarked({}, "a/b_qr_wm.jpg")
    assert not is_already_watermarked(None, "a/b.jpg")
    assert watermarked_path("c/a/traffic_1_abc.jpg") == "c/a/traffic_1_abc_qr_wm.jpg"
    assert watermarked_path("c/a/traffic_1_abc_qr_wm.png") == "c/a/traffic_1_abc_qr_wm.jpg"


def _seed_for_backfill(db, make_pipeline):
    """Store three photos without watermarks: two for a QR asset, one without QR."""
    pipeline = make_pipeline(qr_cache=None, watermarker=None, validator=None)
    asyncio.run(
        AssetDAL(db).upsert_asset(
            AssetRecord(id="asset-1", company_id=COMPANY, qr_code_url="https://qr.example/asset-1.png")
        )
    )
    asyncio.run(AssetDAL(db).upsert_asset(AssetRecord(id="asset-2", company_id=COMPANY)))
    first = asyncio.run(
        upload_operations_proofs(pipeline, COMPANY, "camp-1", "asset-1", [("traffic.jpg", jpeg_bytes())])
    )
    asyncio.run(upload_operations_proofs(pipeline, COMPANY, "camp-1", "asset-2", [("geo.jpg", jpeg_bytes())]))
    asyncio.run(
        upload_operations_proofs(pipeline, COMPANY, "camp-1", "asset-1", [("newspaper.jpg", jpeg_bytes())])
    )
    return first[0].result


def _backfill(db, storage, watermarker=None, company_id=COMPANY):
    return WatermarkBackfill(
        company_id,
        PhotoDAL(db),
        storage,
        QRCodeCache(AssetDAL(db).get_qr_code_url),
        watermarker or FakeWatermarker(),
    )


def test_backfill_dry_run_changes_nothing(db, storage, make_pipeline):
    first = _seed_for_backfill(db, make_pipeline)
    watermarker = FakeWatermarker()

    report = asyncio.run(_backfill(db, storage, watermarker).run(batch_size=10, dry_run=True))

    assert report.total_images_scanned == 3
    assert report.watermarked_count == 2
    assert report.skipped_missing_qr == 1
    assert report.next_offset is None
    assert watermarker.calls == []
    assert asyncio.run(PhotoDAL(db).get_photo(first.id)).photo_url == first.url


def test_backfill_rewrites_objects_and_pages(db, storage, make_pipeline):
    first = _seed_for_backfill(db, make_pipeline)
    backfill = _backfill(db, storage)

    page_one = asyncio.run(backfill.run(batch_size=2, offset=0))
    page_two = asyncio.run(backfill.run(batch_size=2, offset=page_one.next_offset))
    again = asyncio.run(backfill.run(batch_size=10))

    assert page_one.next_offset == 2
    assert page_one.watermarked_count == 1 and page_one.skipped_missing_qr == 1
    assert page_two.watermarked_count == 1 and page_two.next_offset is None
    assert again.skipped_already_done == 2 and again.watermarked_count == 0

    record = asyncio.run(PhotoDAL(db).get_photo(first.id))
    assert record.photo_url.endswith("_qr_wm.jpg")
    assert record.metadata["qr_watermarked"] is True
    assert "qr_watermarked_at" in record.metadata
    assert not asyncio.run(storage.exists(OPERATIONS_PROOF_BUCKET, first.storage_path))
    new_path = storage.path_from_public_url(OPERATIONS_PROOF_BUCKET, record.photo_url)
    assert asyncio.run(storage.exists(OPERATIONS_PROOF_BUCKET, new_path))


def test_backfill_records_per_photo_errors(db, storage, make_pipeline):
    first = _seed_for_backfill(db, make_pipeline)

    report = asyncio.run(_backfill(db, storage, FakeWatermarker(fail=True)).run(batch_size=10))

    assert report.failed_count == 2
    assert first.id in [error["id"] for error in report.errors]
    assert asyncio.run(PhotoDAL(db).get_photo(first.id)).photo_url == first.url


def test_backfill_skips_missing_objects(db, storage, make_pipeline):
    first = _seed_for_backfill(db, make_pipeline)
    asyncio.run(storage.remove(OPERATIONS_PROOF_BUCKET, [first.storage_path]))

    report = asyncio.run(_backfill(db, storage).run(batch_size=10, dry_run=True))

    assert report.skipped_missing_image == 1


def test_backfill_rejects_bad_paging(db, storage):
    backfill = _backfill(db, storage)
    with pytest.raises(ValueError):
        asyncio.run(backfill.run(batch_size=0))
    with pytest.raises(ValueError):
        asyncio.run(backfill.run(offset=-1))


def test_backfill_only_scans_its_own_company(db, storage, make_pipeline):
    first = _seed_for_backfill(db, make_pipeline)
    watermarker = FakeWatermarker()

    report = asyncio.run(
        _backfill(db, storage, watermarker, company_id="company-2").run(batch_size=10, force_reprocess=True)
    )

    assert report.total_images_scanned == 0
    assert watermarker.calls == []
    assert asyncio.run(PhotoDAL(db).get_photo(first.id)).photo_url == first.url
    assert asyncio.run(storage.exists(OPERATIONS_PROOF_BUCKET, first.storage_path))


def test_qr_lookup_is_scoped_to_the_owning_company(db):
    dal = AssetDAL(db)
    asyncio.run(dal.upsert_asset(AssetRecord(id="asset-1", company_id=COMPANY, qr_code_url="https://qr.example/a.png")))

    assert asyncio.run(dal.get_qr_code_url(COMPANY, "asset-1")) == "https://qr.example/a.png"
    assert asyncio.run(dal.get_qr_code_url("company-2", "asset-1")) is None
    assert asyncio.run(dal.get_qr_code_url(COMPANY, "missing")) is None


def test_timeline_limit_applies_to_the_company_events(db):
    dal = TimelineDAL(db)

    async def seed():
        for index, company_id in enumerate([COMPANY, "company-2", "company-2", COMPANY, "company-2"]):
            await dal.append_event(
                TimelineEvent(
                    id=None,
                    campaign_id="shared-camp",
                    company_id=company_id,
                    event_type="photo_uploaded",
                    event_title="Photo uploaded",
                    event_time=f"2024-01-0{index + 1}T00:00:00+00:00",
                )
            )

    asyncio.run(seed())
    events = asyncio.run(dal.list_events("shared-camp", company_id=COMPANY, limit=2))

    assert [e.company_id for e in events] == [COMPANY, COMPANY]
    assert [e.event_time[:10] for e in events] == ["2024-01-04", "2024-01-01"]
