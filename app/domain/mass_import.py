"""
app/domain/mass_import.py

Domain models for duplicate-aware mass import of artworks and creators.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping
from urllib.parse import urlsplit, urlunsplit

from similarity.text import normalize_name, normalize_text
from similarity.types import ScoringThresholds, SimilarityQuery, TagValue
from similarity.weights import SignalWeights, get_profile

SYSTEM_ACTOR_ID = "a0000000-1000-4000-8000-000000000001"

AUTO_CREATED_REASON = "referenced_in_artwork"
ARTIST_LINK_ROLE = "artist"


class RecordKind:
    ARTWORK = "artwork"
    CREATOR = "creator"


class ImportJobStatus:
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


class ResolutionStatus:
    LINKED = "linked"
    CREATED = "created"
    SEARCH_REQUIRED = "search_required"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class ImportConfig:
    """
    Per-job import policy.

    ``signal_weights`` is a partial override applied on top of the profile
    named by ``signal_profile``.
    """

    duplicate_threshold: float = 0.7
    warning_threshold: float = 0.55
    enable_tag_merging: bool = True
    create_missing_artists: bool = True
    batch_size: int = 10
    signal_profile: str = "default"
    signal_weights: dict[str, float] = field(default_factory=dict)
    max_workers: int = 4
    dry_run: bool = False
    timeout_seconds: float | None = None

    @property
    def thresholds(self) -> ScoringThresholds:
        return ScoringThresholds(
            duplicate=self.duplicate_threshold,
            warning=min(self.warning_threshold, self.duplicate_threshold),
        )

    @property
    def weights(self) -> SignalWeights:
        return get_profile(self.signal_profile).with_overrides(self.signal_weights)


@dataclass(frozen=True)
class ImportSource:
    plugin_name: str
    original_data_source: str
    plugin_version: str | None = None


@dataclass(frozen=True)
class Provenance:
    """
    Where an import record came from.
    """

    source: str
    source_url: str | None = None
    external_id: str | None = None
    license: str | None = None

    def as_tags(self) -> dict[str, TagValue]:
        tags: dict[str, TagValue] = {"source": self.source}
        if self.source_url:
            tags["source_url"] = self.source_url
        if self.external_id:
            tags["external_id"] = self.external_id
        if self.license:
            tags["license"] = self.license
        return tags


@dataclass(frozen=True)
class PhotoReference:
    url: str
    caption: str | None = None
    credit: str | None = None


def canonical_url(url: str) -> str:
    """
    Lowercase scheme and host, drop the fragment and any trailing slash.
    """

    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def _fingerprint(*parts: str) -> str:
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return f"fp:{digest[:32]}"


def _provenance_identity(provenance: Provenance) -> str | None:
    if provenance.external_id and provenance.external_id.strip():
        return f"{provenance.source.strip().lower()}:{provenance.external_id.strip()}"
    if provenance.source_url and provenance.source_url.strip():
        return f"url:{canonical_url(provenance.source_url)}"
    return None


@dataclass(frozen=True)
class ArtworkImportRecord:
    """
    One incoming artwork. Coordinates are required and range-checked by the
    job validator before a record is built.
    """

    lat: float
    lon: float
    title: str
    provenance: Provenance
    description: str | None = None
    artist_name: str | None = None
    tags: dict[str, TagValue] = field(default_factory=dict)
    photos: tuple[PhotoReference, ...] = ()

    @property
    def source_identity(self) -> str:
        """
        Deterministic identity of the record in its source system.

        Stored as the created artwork's external id so a re-import of the
        same record matches on the external id signal.
        """

        identity = _provenance_identity(self.provenance)
        if identity is not None:
            return identity
        return _fingerprint(
            self.provenance.source.strip().lower(),
            f"{self.lat:.6f}",
            f"{self.lon:.6f}",
            normalize_text(self.title),
        )

    def to_query(self) -> SimilarityQuery:
        return SimilarityQuery(
            title=self.title,
            lat=self.lat,
            lon=self.lon,
            artist_name=self.artist_name,
            tags=dict(self.tags),
            external_id=self.source_identity,
        )


@dataclass(frozen=True)
class CreatorImportRecord:
    name: str
    provenance: Provenance
    description: str | None = None
    tags: dict[str, TagValue] = field(default_factory=dict)

    @property
    def source_identity(self) -> str:
        identity = _provenance_identity(self.provenance)
        if identity is not None:
            return identity
        return _fingerprint(self.provenance.source.strip().lower(), normalize_name(self.name))

    def to_query(self) -> SimilarityQuery:
        return SimilarityQuery(
            title=self.name,
            tags=dict(self.tags),
            external_id=self.source_identity,
        )


@dataclass(frozen=True)
class ImportJob:
    """
    Accepted import job. Consumed once by the orchestrator.
    """

    import_id: str
    source: ImportSource
    submitted_at: datetime
    config: ImportConfig
    artworks: tuple[ArtworkImportRecord, ...] = ()
    creators: tuple[CreatorImportRecord, ...] = ()

    @property
    def total_records(self) -> int:
        return len(self.artworks) + len(self.creators)


@dataclass(frozen=True)
class DuplicateCheckResult:
    is_duplicate: bool
    existing_id: str | None
    confidence_score: float
    score_breakdown: dict[str, float]
    candidates_checked: int
    threshold: str = "none"


@dataclass(frozen=True)
class TagMergeResult:
    new_tags_added: int
    total_tags: int
    tags_overwritten: int = 0


def merge_tags_additively(
    existing: Mapping[str, TagValue],
    incoming: Mapping[str, TagValue],
) -> tuple[dict[str, TagValue], int]:
    """
    Add incoming keys absent from ``existing``; existing values always win.

    Returns the merged map and the number of keys added.
    """

    merged = dict(existing)
    added = 0
    for key, value in incoming.items():
        if key in merged:
            continue
        merged[key] = value
        added += 1
    return merged, added


@dataclass(frozen=True)
class ArtistCandidate:
    id: str
    name: str
    score: float


@dataclass(frozen=True)
class ArtistResolution:
    name: str
    status: str
    id: str | None = None
    candidates: tuple[ArtistCandidate, ...] = ()
    search_url: str | None = None


@dataclass(frozen=True)
class CreatedOutcome:
    record_index: int
    kind: str
    id: str
    title: str
    warnings: tuple[str, ...] = ()
    photos_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordIndex": self.record_index,
            "kind": self.kind,
            "id": self.id,
            "title": self.title,
            "warnings": list(self.warnings),
            "photosFailed": self.photos_failed,
        }


@dataclass(frozen=True)
class DuplicateOutcome:
    record_index: int
    kind: str
    existing_id: str
    confidence_score: float
    score_breakdown: dict[str, float]
    tags_merged: int = 0
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordIndex": self.record_index,
            "kind": self.kind,
            "existingId": self.existing_id,
            "title": self.title,
            "confidenceScore": round(self.confidence_score, 4),
            "scoreBreakdown": {key: round(value, 4) for key, value in self.score_breakdown.items()},
            "tagsMerged": self.tags_merged,
        }


@dataclass(frozen=True)
class FailedOutcome:
    record_index: int
    kind: str
    error_code: str
    message: str
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordIndex": self.record_index,
            "kind": self.kind,
            "title": self.title,
            "errorCode": self.error_code,
            "message": self.message,
        }


@dataclass(frozen=True)
class AutoCreatedArtist:
    id: str
    name: str
    source_artwork_id: str
    reason: str = AUTO_CREATED_REASON

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "reason": self.reason,
            "sourceArtworkId": self.source_artwork_id,
        }


@dataclass(frozen=True)
class AuditTrail:
    import_started: datetime
    import_completed: datetime
    batches_processed: int
    system_actor_id: str = SYSTEM_ACTOR_ID
    photos_downloaded: int = 0
    photos_uploaded: int = 0
    photos_failed: int = 0
    tags_merged: int = 0
    artists_auto_created: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "importStarted": self.import_started.isoformat(),
            "importCompleted": self.import_completed.isoformat(),
            "batchesProcessed": self.batches_processed,
            "systemActorId": self.system_actor_id,
            "photosDownloaded": self.photos_downloaded,
            "photosUploaded": self.photos_uploaded,
            "photosFailed": self.photos_failed,
            "tagsMerged": self.tags_merged,
            "artistsAutoCreated": self.artists_auto_created,
        }


@dataclass(frozen=True)
class ImportSummary:
    total_requested: int
    total_succeeded: int
    total_failed: int
    total_duplicates: int
    processing_time_ms: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRequested": self.total_requested,
            "totalSucceeded": self.total_succeeded,
            "totalFailed": self.total_failed,
            "totalDuplicates": self.total_duplicates,
            "processingTimeMs": round(self.processing_time_ms, 3),
        }


@dataclass(frozen=True)
class ImportJobResult:
    """
    Complete per-record report for one import job.
    """

    import_id: str
    dry_run: bool
    status: str
    summary: ImportSummary
    created: tuple[CreatedOutcome, ...]
    duplicates: tuple[DuplicateOutcome, ...]
    failed: tuple[FailedOutcome, ...]
    auto_created_artists: tuple[AutoCreatedArtist, ...]
    audit_trail: AuditTrail

    def to_dict(self) -> dict[str, Any]:
        return {
            "importId": self.import_id,
            "dryRun": self.dry_run,
            "status": self.status,
            "summary": self.summary.to_dict(),
            "results": {
                "created": [outcome.to_dict() for outcome in self.created],
                "duplicates": [outcome.to_dict() for outcome in self.duplicates],
                "failed": [outcome.to_dict() for outcome in self.failed],
                "autoCreated": [artist.to_dict() for artist in self.auto_created_artists],
            },
            "auditTrail": self.audit_trail.to_dict(),
        }
