"""
app/api/routers/mass_import.py

Mass import HTTP endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_import_payload
from app.schemas.mass_import import MassImportAuditResponse, MassImportResponse
from app.services.mass_import_orchestrator import MassImportOrchestrator, get_mass_import_orchestrator
from app.validators import ImportValidationError
from db.repositories.import_audit_repository import ImportAuditRepository
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mass-import", tags=["mass-import"])


@router.post("", response_model=MassImportResponse)
def run_mass_import(
    dry_run: bool = Query(default=False, description="Check duplicates without writing"),
    payload: Any = Depends(get_import_payload),
    orchestrator: MassImportOrchestrator = Depends(get_mass_import_orchestrator),
) -> MassImportResponse:
    """
    Validate and run one import job, returning the per-record report.
    """

    return _run(orchestrator, payload, dry_run=dry_run)


@router.post("/validate", response_model=MassImportResponse)
def validate_mass_import(
    payload: Any = Depends(get_import_payload),
    orchestrator: MassImportOrchestrator = Depends(get_mass_import_orchestrator),
) -> MassImportResponse:
    """
    Always a dry run: previews duplicate matches before committing.
    """

    return _run(orchestrator, payload, dry_run=True)


def _run(orchestrator: MassImportOrchestrator, payload: Any, *, dry_run: bool) -> MassImportResponse:
    try:
        result = orchestrator.run_payload(payload, dry_run=dry_run)
    except ImportValidationError as exc:
        logger.info("Mass import rejected dry_run=%s errors=%s", dry_run, len(exc.errors))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc

    return MassImportResponse.model_validate(result.to_dict())


@router.get("/audits/{import_id}", response_model=MassImportAuditResponse)
def get_mass_import_audit(
    import_id: str,
    db: Session = Depends(get_db),
) -> MassImportAuditResponse:
    """
    Return the most recent stored audit for an import id.
    """

    audit = ImportAuditRepository(db).get_latest(import_id)
    if audit is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No audit found for import '{import_id}'.",
        )
    return MassImportAuditResponse(
        id=audit.id,
        import_id=audit.import_id,
        plugin_name=audit.plugin_name,
        plugin_version=audit.plugin_version,
        original_data_source=audit.original_data_source,
        status=audit.status,
        dry_run=audit.dry_run,
        system_actor_id=audit.system_actor_id,
        summary=audit.summary,
        audit_trail=audit.audit_trail,
        record_ids=audit.record_ids,
        submitted_at=audit.submitted_at,
        started_at=audit.started_at,
        completed_at=audit.completed_at,
    )
