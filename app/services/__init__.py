"""
app/services package marker.
"""

from app.services.artist_resolution_service import (
    ArtistLinkReport,
    ArtistResolutionService,
    get_artist_resolution_service,
)
from app.services.duplicate_detection_service import (
    DuplicateDetectionService,
    get_duplicate_detection_service,
)
from app.services.errors import (
    ImportValidationError,
    PhotoPipelineError,
    RecordProcessingError,
    StorageError,
    ValidationErrorDetail,
)
from app.services.mass_import_orchestrator import (
    MassImportOrchestrator,
    RecordReport,
    get_mass_import_orchestrator,
)
from app.services.ports import (
    CatalogStoragePort,
    ImportAuditSink,
    NewArtwork,
    NewCreator,
    PhotoPipelinePort,
    StoredPhoto,
)

__all__ = [
    "ArtistLinkReport",
    "ArtistResolutionService",
    "get_artist_resolution_service",
    "CatalogStoragePort",
    "DuplicateDetectionService",
    "get_duplicate_detection_service",
    "ImportAuditSink",
    "ImportValidationError",
    "MassImportOrchestrator",
    "get_mass_import_orchestrator",
    "NewArtwork",
    "NewCreator",
    "PhotoPipelineError",
    "PhotoPipelinePort",
    "RecordProcessingError",
    "RecordReport",
    "StorageError",
    "StoredPhoto",
    "ValidationErrorDetail",
]
