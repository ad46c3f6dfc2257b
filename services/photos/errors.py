"""Exceptions raised by the photo intake pipeline.

Fatal faults derive from `PhotoPipelineError` and abort the current file.
`CompressionError` and `WatermarkError` are degradable: the pipeline logs
them and continues with the previous bytes.
"""


class PhotoPipelineError(Exception):
    """Base class for fatal per-file pipeline faults."""


class PhotoUploadError(PhotoPipelineError):
    """Storage write rejected or public URL unresolvable."""


class PhotoPersistenceError(PhotoPipelineError):
    """Database insert failed after the object was stored."""


class PhotoNotFoundError(Exception):
    """No photo row exists for the requested id."""


class CompressionError(Exception):
    """The image could not be decoded or re-encoded."""


class WatermarkError(Exception):
    """The QR image could not be fetched or composited."""
