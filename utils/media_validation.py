"""Validation helpers for uploaded proof photos."""

from typing import List, Sequence, Tuple

from fastapi import HTTPException, UploadFile

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/heif",
}

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif")

ASSET_PROOF_MAX_FILES = 10
OPERATIONS_PROOF_MAX_FILES = 20


def is_image_upload(upload: UploadFile) -> bool:
    """Return True when the upload looks like an image by content type or extension."""
    if upload.content_type:
        content_type = upload.content_type.lower().split(";", 1)[0].strip()
        if content_type.startswith("image/"):
            return True
    filename = (upload.filename or "").lower()
    return filename.endswith(IMAGE_EXTENSIONS)


def validate_file_count(files: Sequence[UploadFile], max_files: int) -> None:
    """Reject empty batches and batches above the per-surface file limit."""
    if not files:
        raise HTTPException(status_code=400, detail="At least one image file is required.")
    if len(files) > max_files:
        raise HTTPException(
            status_code=400,
            detail=f"You can upload up to {max_files} images at once.",
        )


async def read_image_uploads(files: Sequence[UploadFile], max_size_bytes: int) -> List[Tuple[str, bytes]]:
    """Read validated image uploads into `(filename, bytes)` pairs.

    Args:
        files: Uploaded files from a multipart request.
        max_size_bytes: Upper bound for a single file.

    Raises:
        HTTPException(415) for non-image uploads, HTTPException(400) for empty
        or oversized files.
    """
    payloads: List[Tuple[str, bytes]] = []
    for upload in files:
        filename = upload.filename or "upload.jpg"
        if not is_image_upload(upload):
            raise HTTPException(status_code=415, detail=f"{filename} is not an image file.")
        data = await upload.read()
        if not data:
            raise HTTPException(status_code=400, detail=f"{filename} is empty.")
        if len(data) > max_size_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"{filename} is too large (max {max_size_bytes // 1024 // 1024} MB).",
            )
        payloads.append((filename, data))
    return payloads
