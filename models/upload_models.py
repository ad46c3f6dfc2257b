"""Value objects passed through the photo upload pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from models.photo_record import PhotoTag

DEFAULT_MAX_SIZE_BYTES = 10 * 1024 * 1024


class UploadStage(str, Enum):
    ANALYZING = "analyzing"
    COMPRESSING = "compressing"
    WATERMARKING = "watermarking"
    UPLOADING = "uploading"
    VALIDATING = "validating"
    SAVING = "saving"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class UploadConfig:
    """Per-call upload settings; never persisted.

    Attributes:
        bucket: Target storage bucket.
        base_path: Path below `{company_id}/` where objects are written.
        enable_compression: Re-encode oversized images before upload.
        enable_validation: Score the stored photo with the AI validator.
        enable_watermark: Composite the asset QR code when one is on file.
        max_size_bytes: Largest accepted source file.
    """

    bucket: str
    base_path: str
    enable_compression: bool = True
    enable_validation: bool = True
    enable_watermark: bool = True
    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES


@dataclass(frozen=True)
class UploadProgress:
    stage: UploadStage
    progress: int
    message: str
    file_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "progress": self.progress,
            "message": self.message,
            "file_index": self.file_index,
        }


@dataclass
class PhotoValidationResult:
    score: float
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    passed: bool = False


@dataclass
class PhotoUploadResult:
    """Outcome of one successful upload.

    `degradations` lists the non-fatal faults absorbed on the way
    (e.g. `compression_failed`, `watermark_failed`, `validation_failed`).
    """

    id: str
    url: str
    storage_path: str
    tag: PhotoTag
    category: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    validation: Optional[PhotoValidationResult] = None
    watermarked: bool = False
    degradations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BatchItemResult:
    """Result-or-error for one input position of a batch."""

    index: int
    filename: str
    result: Optional[PhotoUploadResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "filename": self.filename,
            "ok": self.ok,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }
