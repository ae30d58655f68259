"""
db/models/import_audit.py

Persisted audit summary of one mass import run.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, StringIdMixin, TimestampMixin


class MassImportAudit(Base, StringIdMixin, TimestampMixin):
    __tablename__ = "mass_import_audits"

    import_id: Mapped[str] = mapped_column(String(255), nullable=False)
    plugin_name: Mapped[str] = mapped_column(String(120), nullable=False)
    plugin_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    original_data_source: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="completed, timed_out",
    )
    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    system_actor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    summary: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    audit_trail: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    record_ids: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Created, duplicate and auto-created ids for rollback by actor",
    )
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_mass_import_audits_import_id", "import_id"),
        Index("ix_mass_import_audits_created_at", "created_at"),
    )
