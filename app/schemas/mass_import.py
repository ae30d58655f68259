"""
app/schemas/mass_import.py

Response schemas for mass import operations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportSummaryResponse(_CamelModel):
    total_requested: int = Field(..., ge=0)
    total_succeeded: int = Field(..., ge=0)
    total_failed: int = Field(..., ge=0)
    total_duplicates: int = Field(..., ge=0)
    processing_time_ms: float = Field(..., ge=0)


class CreatedRecordResponse(_CamelModel):
    record_index: int
    kind: str
    id: str
    title: str
    warnings: list[str] = Field(default_factory=list)
    photos_failed: int = 0


class DuplicateRecordResponse(_CamelModel):
    record_index: int
    kind: str
    existing_id: str
    title: str | None = None
    confidence_score: float = Field(..., ge=0.0)
    score_breakdown: dict[str, float]
    tags_merged: int = 0


class FailedRecordResponse(_CamelModel):
    record_index: int
    kind: str
    title: str | None = None
    error_code: str
    message: str


class AutoCreatedArtistResponse(_CamelModel):
    id: str
    name: str
    reason: str
    source_artwork_id: str


class ImportResultsResponse(_CamelModel):
    created: list[CreatedRecordResponse]
    duplicates: list[DuplicateRecordResponse]
    failed: list[FailedRecordResponse]
    auto_created: list[AutoCreatedArtistResponse]


class AuditTrailResponse(_CamelModel):
    import_started: datetime
    import_completed: datetime
    batches_processed: int
    system_actor_id: str
    photos_downloaded: int
    photos_uploaded: int
    photos_failed: int
    tags_merged: int
    artists_auto_created: int


class MassImportResponse(_CamelModel):
    """
    API response model for one completed (or timed out) import job.
    """

    import_id: str
    dry_run: bool
    status: str
    summary: ImportSummaryResponse
    results: ImportResultsResponse
    audit_trail: AuditTrailResponse


class MassImportAuditResponse(_CamelModel):
    """
    Stored audit row for a previous import run.
    """

    id: str
    import_id: str
    plugin_name: str
    plugin_version: str | None = None
    original_data_source: str
    status: str
    dry_run: bool
    system_actor_id: str
    summary: dict[str, Any]
    audit_trail: dict[str, Any]
    record_ids: dict[str, Any]
    submitted_at: datetime
    started_at: datetime
    completed_at: datetime
