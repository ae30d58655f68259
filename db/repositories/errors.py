"""
Repository-layer exceptions for catalog and photo storage flows.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository failures."""


class PhotoStorageError(RepositoryError):
    """Raised when storing or deleting a photo file fails."""


class CatalogRecordNotFoundError(RepositoryError, LookupError):
    """Raised when a referenced artwork or creator does not exist."""
