"""
Repository for persisted mass import audit summaries.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.domain.mass_import import ImportJob, ImportJobResult
from db.models.import_audit import MassImportAudit

logger = logging.getLogger(__name__)


class ImportAuditRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_audit(self, *, result: ImportJobResult, job: ImportJob) -> MassImportAudit:
        audit = MassImportAudit(
            import_id=result.import_id,
            plugin_name=job.source.plugin_name,
            plugin_version=job.source.plugin_version,
            original_data_source=job.source.original_data_source,
            status=result.status,
            dry_run=result.dry_run,
            system_actor_id=result.audit_trail.system_actor_id,
            summary=result.summary.to_dict(),
            audit_trail=result.audit_trail.to_dict(),
            record_ids={
                "created": [outcome.id for outcome in result.created],
                "duplicates": [outcome.existing_id for outcome in result.duplicates],
                "failed": [
                    {"kind": outcome.kind, "recordIndex": outcome.record_index, "errorCode": outcome.error_code}
                    for outcome in result.failed
                ],
                "autoCreatedArtists": [artist.id for artist in result.auto_created_artists],
            },
            submitted_at=job.submitted_at,
            started_at=result.audit_trail.import_started,
            completed_at=result.audit_trail.import_completed,
        )
        self._session.add(audit)
        self._session.flush()
        return audit

    def get_latest(self, import_id: str) -> MassImportAudit | None:
        stmt: Select[tuple[MassImportAudit]] = (
            select(MassImportAudit)
            .where(MassImportAudit.import_id == import_id)
            .order_by(MassImportAudit.completed_at.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def list_audits(self, *, import_id: str | None = None, limit: int = 100) -> list[MassImportAudit]:
        stmt: Select[tuple[MassImportAudit]] = select(MassImportAudit)
        if import_id:
            stmt = stmt.where(MassImportAudit.import_id == import_id)
        stmt = stmt.order_by(MassImportAudit.completed_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())


class SQLAlchemyImportAuditSink:
    """
    Import audit sink writing one row per completed run.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def record(self, result: ImportJobResult, job: ImportJob) -> None:
        with self._session_factory() as db:
            with db.begin():
                audit = ImportAuditRepository(db).create_audit(result=result, job=job)
        logger.info("Mass import audit stored import_id=%s audit_id=%s", result.import_id, audit.id)


@lru_cache(maxsize=1)
def get_import_audit_sink() -> SQLAlchemyImportAuditSink:
    from db.session import SessionLocal

    return SQLAlchemyImportAuditSink(SessionLocal)
