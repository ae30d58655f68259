"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.catalog import Artwork, ArtworkCreator, CatalogStatus, Creator
from db.models.import_audit import MassImportAudit

__all__ = [
    "Artwork",
    "ArtworkCreator",
    "CatalogStatus",
    "Creator",
    "MassImportAudit",
]
