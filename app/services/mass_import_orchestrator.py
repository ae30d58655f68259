"""
app/services/mass_import_orchestrator.py

Batch orchestrator for duplicate-aware mass import jobs.

Lifecycle per job: validate (whole job, fail fast) -> process batches ->
completed, or timed_out when the job deadline passes between batches.
Records inside a batch run on a bounded thread pool; each worker returns its
own report and reports are folded into the job totals on the calling thread
once the batch has drained.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Union

from app import failure_codes
from app.config import get_mass_import_settings
from app.domain.mass_import import (
    SYSTEM_ACTOR_ID,
    ArtworkImportRecord,
    AuditTrail,
    AutoCreatedArtist,
    CreatedOutcome,
    CreatorImportRecord,
    DuplicateCheckResult,
    DuplicateOutcome,
    FailedOutcome,
    ImportJob,
    ImportJobResult,
    ImportJobStatus,
    ImportSummary,
    Provenance,
    RecordKind,
)
from app.logging_utils import log_event
from app.services.artist_resolution_service import ArtistResolutionService
from app.services.duplicate_detection_service import DuplicateDetectionService
from app.services.errors import PhotoPipelineError, RecordProcessingError
from app.services.locks import KeyedLockRegistry, creator_name_key, spatial_cell_keys
from app.services.ports import CatalogStoragePort, ImportAuditSink, NewArtwork, NewCreator, PhotoPipelinePort
from app.validators.import_job_validator import ImportJobValidator
from similarity.types import TagValue

logger = logging.getLogger(__name__)

ImportOutcome = Union[CreatedOutcome, DuplicateOutcome, FailedOutcome]


@dataclass(frozen=True)
class RecordReport:
    """
    Everything one worker learned about one record.

    ``outcome`` is None only for dry-run records that would have been created.
    """

    outcome: ImportOutcome | None
    auto_created: tuple[AutoCreatedArtist, ...] = ()
    photos_downloaded: int = 0
    photos_uploaded: int = 0
    photos_failed: int = 0
    tags_merged: int = 0


@dataclass
class _PhotoBatch:
    refs: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    downloaded: int = 0
    uploaded: int = 0
    failed: int = 0


@dataclass
class _JobTotals:
    created: list[CreatedOutcome] = field(default_factory=list)
    duplicates: list[DuplicateOutcome] = field(default_factory=list)
    failed: list[FailedOutcome] = field(default_factory=list)
    auto_created: list[AutoCreatedArtist] = field(default_factory=list)
    previewed: int = 0
    photos_downloaded: int = 0
    photos_uploaded: int = 0
    photos_failed: int = 0
    tags_merged: int = 0

    def add(self, report: RecordReport) -> None:
        outcome = report.outcome
        if outcome is None:
            self.previewed += 1
        elif isinstance(outcome, CreatedOutcome):
            self.created.append(outcome)
        elif isinstance(outcome, DuplicateOutcome):
            self.duplicates.append(outcome)
        else:
            self.failed.append(outcome)
        self.auto_created.extend(report.auto_created)
        self.photos_downloaded += report.photos_downloaded
        self.photos_uploaded += report.photos_uploaded
        self.photos_failed += report.photos_failed
        self.tags_merged += report.tags_merged


WorkItem = tuple[str, int, Union[ArtworkImportRecord, CreatorImportRecord]]


class MassImportOrchestrator:
    """
    Drives every record of a job through detection, creation and artist
    resolution, isolating failures to the record that raised them.
    """

    def __init__(
        self,
        *,
        storage: CatalogStoragePort,
        duplicate_service: DuplicateDetectionService,
        artist_service: ArtistResolutionService,
        validator: ImportJobValidator | None = None,
        photo_pipeline: PhotoPipelinePort | None = None,
        audit_sink: ImportAuditSink | None = None,
        locks: KeyedLockRegistry | None = None,
        system_actor_id: str = SYSTEM_ACTOR_ID,
    ) -> None:
        self._storage = storage
        self._duplicates = duplicate_service
        self._artists = artist_service
        self._validator = validator or ImportJobValidator()
        self._photo_pipeline = photo_pipeline
        self._audit_sink = audit_sink
        # Shared with artist resolution so creator records and referenced
        # names contend for the same per-name lock.
        self._locks = locks or artist_service.locks
        self._system_actor_id = system_actor_id

    def run_payload(self, payload: Any, *, dry_run: bool = False) -> ImportJobResult:
        """
        Validate a raw job envelope and run it.

        Raises ImportValidationError before any write when the envelope is
        structurally invalid.
        """

        job = self._validator.validate(payload, dry_run=dry_run)
        return self.run(job)

    def run(self, job: ImportJob) -> ImportJobResult:
        config = job.config
        started_at = datetime.now(timezone.utc)
        started_perf = time.perf_counter()
        deadline = time.monotonic() + config.timeout_seconds if config.timeout_seconds else None

        log_event(
            logger,
            logging.INFO,
            "mass_import_started",
            import_id=job.import_id,
            plugin=job.source.plugin_name,
            artworks=len(job.artworks),
            creators=len(job.creators),
            dry_run=config.dry_run,
            batch_size=config.batch_size,
        )

        batches = self._plan_batches(job)
        totals = _JobTotals()
        batches_processed = 0
        status = ImportJobStatus.COMPLETED

        with ThreadPoolExecutor(
            max_workers=max(1, config.max_workers),
            thread_name_prefix="mass-import",
        ) as pool:
            for position, batch in enumerate(batches):
                if deadline is not None and time.monotonic() >= deadline:
                    status = ImportJobStatus.TIMED_OUT
                    self._expire(batches[position:], totals)
                    logger.warning(
                        "Mass import timed out import_id=%s batches_processed=%s remaining_batches=%s",
                        job.import_id,
                        batches_processed,
                        len(batches) - position,
                    )
                    break

                futures = [pool.submit(self._process, item, job) for item in batch]
                for future in futures:
                    totals.add(future.result())
                batches_processed += 1
                logger.debug(
                    "Mass import batch done import_id=%s batch=%s/%s records=%s",
                    job.import_id,
                    batches_processed,
                    len(batches),
                    len(batch),
                )

        processing_time_ms = (time.perf_counter() - started_perf) * 1000.0
        result = ImportJobResult(
            import_id=job.import_id,
            dry_run=config.dry_run,
            status=status,
            summary=ImportSummary(
                total_requested=job.total_records,
                total_succeeded=len(totals.created) + totals.previewed,
                total_failed=len(totals.failed),
                total_duplicates=len(totals.duplicates),
                processing_time_ms=processing_time_ms,
            ),
            created=tuple(sorted(totals.created, key=_outcome_order)),
            duplicates=tuple(sorted(totals.duplicates, key=_outcome_order)),
            failed=tuple(sorted(totals.failed, key=_outcome_order)),
            auto_created_artists=tuple(totals.auto_created),
            audit_trail=AuditTrail(
                import_started=started_at,
                import_completed=datetime.now(timezone.utc),
                batches_processed=batches_processed,
                system_actor_id=self._system_actor_id,
                photos_downloaded=totals.photos_downloaded,
                photos_uploaded=totals.photos_uploaded,
                photos_failed=totals.photos_failed,
                tags_merged=totals.tags_merged,
                artists_auto_created=len(totals.auto_created),
            ),
        )

        if not config.dry_run and self._audit_sink is not None:
            try:
                self._audit_sink.record(result, job)
            except Exception:
                logger.exception("Mass import audit persistence failed import_id=%s", job.import_id)

        log_event(
            logger,
            logging.INFO,
            "mass_import_completed",
            import_id=job.import_id,
            status=status,
            dry_run=config.dry_run,
            **result.summary.to_dict(),
        )
        return result

    def _plan_batches(self, job: ImportJob) -> list[list[WorkItem]]:
        size = max(1, job.config.batch_size)
        artworks: list[WorkItem] = [
            (RecordKind.ARTWORK, index, record) for index, record in enumerate(job.artworks)
        ]
        creators: list[WorkItem] = [
            (RecordKind.CREATOR, index, record) for index, record in enumerate(job.creators)
        ]
        batches: list[list[WorkItem]] = []
        for items in (artworks, creators):
            batches.extend(items[start : start + size] for start in range(0, len(items), size))
        return batches

    @staticmethod
    def _expire(batches: list[list[WorkItem]], totals: _JobTotals) -> None:
        for batch in batches:
            for kind, index, record in batch:
                totals.add(
                    RecordReport(
                        outcome=FailedOutcome(
                            record_index=index,
                            kind=kind,
                            error_code=failure_codes.IMPORT_TIMEOUT,
                            message="Import deadline reached before this record was processed.",
                            title=_record_label(record),
                        )
                    )
                )

    def _process(self, item: WorkItem, job: ImportJob) -> RecordReport:
        kind, index, record = item
        try:
            if isinstance(record, ArtworkImportRecord):
                report = self._process_artwork(index, record, job)
            else:
                report = self._process_creator(index, record, job)
        except RecordProcessingError as exc:
            report = self._failure(kind, index, record, exc.error_code, exc)
        except Exception as exc:
            report = self._failure(kind, index, record, failure_codes.RECORD_PROCESSING_ERROR, exc)

        if report.outcome is not None:
            log_event(
                logger,
                logging.DEBUG,
                "mass_import_record",
                import_id=job.import_id,
                kind=kind,
                record_index=index,
                outcome=type(report.outcome).__name__,
            )
        return report

    @staticmethod
    def _failure(kind: str, index: int, record: Any, error_code: str, exc: Exception) -> RecordReport:
        logger.warning(
            "Mass import record failed kind=%s index=%s code=%s error=%s",
            kind,
            index,
            error_code,
            exc,
        )
        return RecordReport(
            outcome=FailedOutcome(
                record_index=index,
                kind=kind,
                error_code=error_code,
                message=str(exc) or type(exc).__name__,
                title=_record_label(record),
            )
        )

    def _process_artwork(self, index: int, record: ArtworkImportRecord, job: ImportJob) -> RecordReport:
        config = job.config
        if config.dry_run:
            check = self._duplicates.check_artwork(record, config)
            if check.is_duplicate:
                return RecordReport(outcome=self._duplicate_outcome(RecordKind.ARTWORK, index, record.title, check, 0))
            return RecordReport(outcome=None)

        cell_keys = spatial_cell_keys(record.lat, record.lon, self._duplicates.radius_meters)

        with self._locks.hold(cell_keys):
            early = self._detect_and_merge_artwork(index, record, job)
        if early is not None:
            return early

        photos = self._store_photos(record)

        # Re-check under the lock that also covers the write.
        with self._locks.hold(cell_keys):
            late = self._detect_and_merge_artwork(index, record, job)
            if late is not None:
                return RecordReport(
                    outcome=late.outcome,
                    photos_downloaded=photos.downloaded,
                    photos_uploaded=photos.uploaded,
                    photos_failed=photos.failed,
                    tags_merged=late.tags_merged,
                )
            artwork_id = self._storage.create_artwork(
                NewArtwork(
                    title=record.title,
                    lat=record.lat,
                    lon=record.lon,
                    created_by=self._system_actor_id,
                    description=record.description,
                    artist_name=record.artist_name,
                    tags=self._record_tags(record.tags, record.provenance, job),
                    external_id=record.source_identity,
                    photos=tuple(photos.refs),
                )
            )

        warnings = list(photos.warnings)
        auto_created: tuple[AutoCreatedArtist, ...] = ()
        if record.artist_name:
            artist_report = self._artists.resolve_artwork_artists(
                artwork_id,
                record.artist_name,
                config,
                import_id=job.import_id,
            )
            warnings.extend(artist_report.warnings)
            auto_created = artist_report.auto_created

        return RecordReport(
            outcome=CreatedOutcome(
                record_index=index,
                kind=RecordKind.ARTWORK,
                id=artwork_id,
                title=record.title,
                warnings=tuple(warnings),
                photos_failed=photos.failed,
            ),
            auto_created=auto_created,
            photos_downloaded=photos.downloaded,
            photos_uploaded=photos.uploaded,
            photos_failed=photos.failed,
        )

    def _detect_and_merge_artwork(
        self,
        index: int,
        record: ArtworkImportRecord,
        job: ImportJob,
    ) -> RecordReport | None:
        check = self._duplicates.check_artwork(record, job.config)
        if not check.is_duplicate or check.existing_id is None:
            return None
        merged = 0
        if job.config.enable_tag_merging and record.tags:
            merged = self._duplicates.merge_tags(RecordKind.ARTWORK, check.existing_id, record.tags).new_tags_added
        return RecordReport(
            outcome=self._duplicate_outcome(RecordKind.ARTWORK, index, record.title, check, merged),
            tags_merged=merged,
        )

    def _process_creator(self, index: int, record: CreatorImportRecord, job: ImportJob) -> RecordReport:
        config = job.config
        with self._locks.hold([creator_name_key(record.name)]):
            check = self._duplicates.check_creator(record, config)
            if check.is_duplicate and check.existing_id is not None:
                merged = 0
                if not config.dry_run and config.enable_tag_merging and record.tags:
                    merged = self._duplicates.merge_tags(
                        RecordKind.CREATOR,
                        check.existing_id,
                        record.tags,
                    ).new_tags_added
                return RecordReport(
                    outcome=self._duplicate_outcome(RecordKind.CREATOR, index, record.name, check, merged),
                    tags_merged=merged,
                )
            if config.dry_run:
                return RecordReport(outcome=None)

            creator_id = self._storage.create_creator(
                NewCreator(
                    name=record.name,
                    created_by=self._system_actor_id,
                    description=record.description,
                    tags=self._record_tags(record.tags, record.provenance, job),
                    external_id=record.source_identity,
                )
            )

        return RecordReport(
            outcome=CreatedOutcome(
                record_index=index,
                kind=RecordKind.CREATOR,
                id=creator_id,
                title=record.name,
            )
        )

    def _store_photos(self, record: ArtworkImportRecord) -> _PhotoBatch:
        batch = _PhotoBatch()
        if not record.photos:
            return batch
        if self._photo_pipeline is None:
            batch.failed = len(record.photos)
            batch.warnings.append("Photo pipeline unavailable; photos were not imported.")
            return batch

        for photo in record.photos:
            try:
                stored = self._photo_pipeline.fetch_and_store(photo.url)
            except Exception as exc:
                if isinstance(exc, PhotoPipelineError) and exc.downloaded:
                    batch.downloaded += 1
                batch.failed += 1
                batch.warnings.append(f"Photo failed {photo.url}: {exc}")
                logger.warning("Photo import failed url=%s error=%s", photo.url, exc)
                continue
            batch.downloaded += 1
            batch.uploaded += 1
            batch.refs.append(stored.stored_ref)
        return batch

    @staticmethod
    def _record_tags(
        tags: dict[str, TagValue],
        provenance: Provenance,
        job: ImportJob,
    ) -> dict[str, TagValue]:
        merged: dict[str, TagValue] = dict(tags)
        for key, value in provenance.as_tags().items():
            merged.setdefault(key, value)
        merged.setdefault("import_batch", job.import_id)
        merged.setdefault("import_plugin", job.source.plugin_name)
        return merged

    @staticmethod
    def _duplicate_outcome(
        kind: str,
        index: int,
        title: str,
        check: DuplicateCheckResult,
        tags_merged: int,
    ) -> DuplicateOutcome:
        return DuplicateOutcome(
            record_index=index,
            kind=kind,
            existing_id=check.existing_id or "",
            confidence_score=check.confidence_score,
            score_breakdown=dict(check.score_breakdown),
            tags_merged=tags_merged,
            title=title,
        )


def _record_label(record: Any) -> str | None:
    if isinstance(record, ArtworkImportRecord):
        return record.title
    if isinstance(record, CreatorImportRecord):
        return record.name
    return None


def _outcome_order(outcome: ImportOutcome) -> tuple[int, int]:
    return (0 if outcome.kind == RecordKind.ARTWORK else 1, outcome.record_index)


@lru_cache(maxsize=1)
def get_mass_import_orchestrator() -> MassImportOrchestrator:
    """
    Build and cache the orchestrator on the SQLAlchemy catalog.
    """

    from app.connectors.photo_pipeline import get_photo_pipeline
    from app.services.artist_resolution_service import get_artist_resolution_service
    from app.services.duplicate_detection_service import get_duplicate_detection_service
    from db.repositories.catalog_repository import get_catalog_storage
    from db.repositories.import_audit_repository import get_import_audit_sink

    settings = get_mass_import_settings()
    return MassImportOrchestrator(
        storage=get_catalog_storage(),
        duplicate_service=get_duplicate_detection_service(),
        artist_service=get_artist_resolution_service(),
        validator=ImportJobValidator(
            max_batch_size=settings.max_batch_size,
            default_batch_size=settings.default_batch_size,
            default_max_workers=settings.max_workers,
            default_timeout_seconds=settings.timeout_seconds,
        ),
        photo_pipeline=get_photo_pipeline(),
        audit_sink=get_import_audit_sink(),
        system_actor_id=settings.system_actor_id,
    )
