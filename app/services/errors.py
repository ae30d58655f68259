"""
app/services/errors.py

Error taxonomy for mass import.

Validation errors are defined beside the job validator and re-exported here;
runtime errors below are captured per record by the orchestrator.
"""

from __future__ import annotations

from app import failure_codes
from app.validators.import_job_validator import ImportValidationError, ValidationErrorDetail

__all__ = [
    "ImportValidationError",
    "PhotoPipelineError",
    "RecordProcessingError",
    "StorageError",
    "ValidationErrorDetail",
]


class RecordProcessingError(RuntimeError):
    """
    Per-record runtime failure; captured into that record's outcome.
    """

    error_code = failure_codes.RECORD_PROCESSING_ERROR

    def __init__(self, message: str, *, error_code: str | None = None) -> None:
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code


class StorageError(RecordProcessingError):
    """Raised when the catalog storage backend fails."""

    error_code = failure_codes.STORAGE_ERROR


class PhotoPipelineError(RecordProcessingError):
    """
    Raised when a photo cannot be fetched or stored.

    ``downloaded`` is True when the bytes arrived but could not be stored.
    """

    error_code = failure_codes.PHOTO_PIPELINE_ERROR

    def __init__(self, message: str, *, downloaded: bool = False) -> None:
        super().__init__(message)
        self.downloaded = downloaded
