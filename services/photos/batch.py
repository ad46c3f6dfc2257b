"""Sequential multi-file uploads."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from models.photo_record import PhotoMetadata
from models.upload_models import BatchItemResult, PhotoUploadResult, UploadConfig
from services.photos.pipeline import PhotoUploadPipeline
from services.photos.progress import ProgressStream

LOGGER = logging.getLogger(__name__)


async def upload_photo_batch(
    pipeline: PhotoUploadPipeline,
    config: UploadConfig,
    company_id: str,
    files: Sequence[Tuple[str, bytes]],
    metadata: PhotoMetadata,
    progress: Optional[ProgressStream] = None,
) -> List[BatchItemResult]:
    """Upload `files` one after another.

    A failing file is logged and recorded; the rest still run. The returned
    list has one entry per input position, in input order.
    """
    results: List[BatchItemResult] = []
    for index, (filename, data) in enumerate(files):
        scoped = progress.scoped(index) if progress is not None else None
        try:
            result = await pipeline.upload_photo(config, company_id, filename, data, metadata, scoped)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.error("Failed to upload file %d (%s): %s", index, filename, exc)
            results.append(BatchItemResult(index=index, filename=filename, error=str(exc)))
            continue
        results.append(BatchItemResult(index=index, filename=filename, result=result))

    succeeded = sum(1 for item in results if item.ok)
    LOGGER.info("Batch upload finished: %d/%d succeeded", succeeded, len(results))
    return results


def successful_results(items: Sequence[BatchItemResult]) -> List[PhotoUploadResult]:
    """Return only the successful uploads, dropping failed positions."""
    return [item.result for item in items if item.result is not None]
