"""
app/domain package marker.
"""

from app.domain.mass_import import (
    ARTIST_LINK_ROLE,
    AUTO_CREATED_REASON,
    SYSTEM_ACTOR_ID,
    ArtistCandidate,
    ArtistResolution,
    ArtworkImportRecord,
    AuditTrail,
    AutoCreatedArtist,
    CreatedOutcome,
    CreatorImportRecord,
    DuplicateCheckResult,
    DuplicateOutcome,
    FailedOutcome,
    ImportConfig,
    ImportJob,
    ImportJobResult,
    ImportJobStatus,
    ImportSource,
    ImportSummary,
    PhotoReference,
    Provenance,
    RecordKind,
    ResolutionStatus,
    TagMergeResult,
    merge_tags_additively,
)

__all__ = [
    "ARTIST_LINK_ROLE",
    "AUTO_CREATED_REASON",
    "ArtistCandidate",
    "ArtistResolution",
    "ArtworkImportRecord",
    "AuditTrail",
    "AutoCreatedArtist",
    "CreatedOutcome",
    "CreatorImportRecord",
    "DuplicateCheckResult",
    "DuplicateOutcome",
    "FailedOutcome",
    "ImportConfig",
    "ImportJob",
    "ImportJobResult",
    "ImportJobStatus",
    "ImportSource",
    "ImportSummary",
    "PhotoReference",
    "Provenance",
    "RecordKind",
    "ResolutionStatus",
    "SYSTEM_ACTOR_ID",
    "TagMergeResult",
    "merge_tags_additively",
]
