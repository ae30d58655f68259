"""
app/services/ports.py

Collaborator interfaces consumed by the mass import services.

Every call may fail independently; adapters raise ``StorageError`` or
``PhotoPipelineError`` so the orchestrator can isolate the failure to one
record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from app.domain.mass_import import ImportJob, ImportJobResult, TagMergeResult
from similarity.types import CandidateRecord, TagValue


@dataclass(frozen=True)
class NewArtwork:
    title: str
    lat: float
    lon: float
    created_by: str
    description: str | None = None
    artist_name: str | None = None
    tags: dict[str, TagValue] = field(default_factory=dict)
    external_id: str | None = None
    photos: tuple[str, ...] = ()


@dataclass(frozen=True)
class NewCreator:
    name: str
    created_by: str
    description: str | None = None
    tags: dict[str, TagValue] = field(default_factory=dict)
    external_id: str | None = None


@dataclass(frozen=True)
class StoredPhoto:
    source_url: str
    stored_ref: str
    content_type: str
    size_bytes: int


class CatalogStoragePort(Protocol):
    def find_nearby_artworks(
        self,
        lat: float,
        lon: float,
        radius_meters: float,
        limit: int,
    ) -> list[CandidateRecord]:
        ...

    def find_creators_by_name_fragment(self, text: str, limit: int = 50) -> list[CandidateRecord]:
        ...

    def create_artwork(self, artwork: NewArtwork) -> str:
        ...

    def create_creator(self, creator: NewCreator) -> str:
        ...

    def link_artwork_creator(self, artwork_id: str, creator_id: str, role: str) -> None:
        ...

    def merge_tags(self, kind: str, existing_id: str, new_tags: dict[str, TagValue]) -> TagMergeResult:
        """
        Add keys absent on the existing record; never overwrite a value.
        """
        ...


class PhotoPipelinePort(Protocol):
    def fetch_and_store(self, url: str) -> StoredPhoto:
        ...


class ImportAuditSink(Protocol):
    def record(self, result: ImportJobResult, job: ImportJob) -> None:
        ...
