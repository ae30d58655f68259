"""
app/schemas package marker.
"""

from app.schemas.mass_import import (
    AuditTrailResponse,
    AutoCreatedArtistResponse,
    CreatedRecordResponse,
    DuplicateRecordResponse,
    FailedRecordResponse,
    ImportResultsResponse,
    ImportSummaryResponse,
    MassImportAuditResponse,
    MassImportResponse,
)

__all__ = [
    "AuditTrailResponse",
    "AutoCreatedArtistResponse",
    "CreatedRecordResponse",
    "DuplicateRecordResponse",
    "FailedRecordResponse",
    "ImportResultsResponse",
    "ImportSummaryResponse",
    "MassImportAuditResponse",
    "MassImportResponse",
]
