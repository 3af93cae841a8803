"""
    Error taxonomy shared by the pipeline, the record manager and the API layer.
"""
from __future__ import annotations


class ImagePipeError(Exception):
    """Base class for errors surfaced to callers."""

    status_code = 500

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ValidationError(ImagePipeError):
    """Bad or missing parameter, unsupported type/format/filter, batch size out of range."""

    status_code = 400


class InvalidImageError(ValidationError):
    """The file cannot be decoded as an image."""


class NotFoundError(ImagePipeError):
    status_code = 404


class ImageNotFoundError(NotFoundError):
    def __init__(self, image_id: str):
        super().__init__(f"Image with ID '{image_id}' not found.")


class TransformationNotFoundError(NotFoundError):
    def __init__(self, transformation_id: str):
        super().__init__(f"Transformation with ID '{transformation_id}' not found.")


class AccessDeniedError(ImagePipeError):
    status_code = 403


class ProcessingError(ImagePipeError):
    """The raster primitive failed mid-pipeline (corrupt input, decode or write failure)."""

    status_code = 500


class PathCollisionError(ImagePipeError):
    """Two derived files resolved to the same path. Never retried."""

    status_code = 500


class FileSystemError(ImagePipeError):
    """A best-effort file removal failed. Reported as a warning, never raised to HTTP."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Failed to delete file '{path}': {reason}")
