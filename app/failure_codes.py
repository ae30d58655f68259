"""Shared error code constants for mass import outcomes and validation."""

STORAGE_ERROR = "STORAGE_ERROR"
PHOTO_PIPELINE_ERROR = "PHOTO_PIPELINE_ERROR"
RECORD_PROCESSING_ERROR = "RECORD_PROCESSING_ERROR"
IMPORT_TIMEOUT = "IMPORT_TIMEOUT"

RECORD_FAILURES = [
    STORAGE_ERROR,
    PHOTO_PIPELINE_ERROR,
    RECORD_PROCESSING_ERROR,
    IMPORT_TIMEOUT,
]

# Validation error codes
INVALID_JSON = "INVALID_JSON"
INVALID_TYPE = "INVALID_TYPE"
REQUIRED_FIELD = "REQUIRED_FIELD"
INVALID_RANGE = "INVALID_RANGE"
INVALID_FORMAT = "INVALID_FORMAT"
COORDINATES_OUT_OF_RANGE = "COORDINATES_OUT_OF_RANGE"
FIELD_TOO_LONG = "FIELD_TOO_LONG"
INVALID_URL = "INVALID_URL"
INVALID_TAGS = "INVALID_TAGS"
EMPTY_DATA = "EMPTY_DATA"
