"""
Repository layer exports.
"""

from db.repositories.catalog_repository import SQLAlchemyCatalogStorage, get_catalog_storage
from db.repositories.errors import CatalogRecordNotFoundError, PhotoStorageError, RepositoryError
from db.repositories.import_audit_repository import (
    ImportAuditRepository,
    SQLAlchemyImportAuditSink,
    get_import_audit_sink,
)
from db.repositories.photo_storage import LocalPhotoStorage, PhotoStorageBackend
from db.repositories.types import StoredFileMetadata

__all__ = [
    "CatalogRecordNotFoundError",
    "ImportAuditRepository",
    "LocalPhotoStorage",
    "PhotoStorageBackend",
    "PhotoStorageError",
    "RepositoryError",
    "SQLAlchemyCatalogStorage",
    "SQLAlchemyImportAuditSink",
    "StoredFileMetadata",
    "get_catalog_storage",
    "get_import_audit_sink",
]
