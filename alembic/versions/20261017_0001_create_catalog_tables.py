"""create catalog and mass import audit tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "artworks",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=False),
        sa.Column("lon", sa.Float(), nullable=False),
        sa.Column("artist_name", sa.String(length=500), nullable=True, comment="Free-text creator field as imported"),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("photos", postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment="Stored photo references"),
        sa.Column(
            "external_id",
            sa.String(length=512),
            nullable=True,
            comment="Source identity used for re-import matching",
        ),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_artworks_lat_lon", "artworks", ["lat", "lon"], unique=False)
    op.create_index("ix_artworks_external_id", "artworks", ["external_id"], unique=False)
    op.create_index("ix_artworks_status", "artworks", ["status"], unique=False)
    op.create_index("ix_artworks_created_by", "artworks", ["created_by"], unique=False)

    op.create_table(
        "creators",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "normalized_name",
            sa.String(length=200),
            nullable=False,
            comment="Lowercased, diacritic-folded name for fragment lookup",
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("external_id", sa.String(length=512), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_creators_normalized_name", "creators", ["normalized_name"], unique=False)
    op.create_index("ix_creators_status", "creators", ["status"], unique=False)
    op.create_index("ix_creators_created_by", "creators", ["created_by"], unique=False)

    op.create_table(
        "artwork_creators",
        sa.Column("artwork_id", sa.String(length=36), nullable=False),
        sa.Column("creator_id", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["artwork_id"], ["artworks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["creator_id"], ["creators.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("artwork_id", "creator_id", "role"),
    )
    op.create_index("ix_artwork_creators_creator_id", "artwork_creators", ["creator_id"], unique=False)

    op.create_table(
        "mass_import_audits",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("import_id", sa.String(length=255), nullable=False),
        sa.Column("plugin_name", sa.String(length=120), nullable=False),
        sa.Column("plugin_version", sa.String(length=50), nullable=True),
        sa.Column("original_data_source", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, comment="completed, timed_out"),
        sa.Column("dry_run", sa.Boolean(), nullable=False),
        sa.Column("system_actor_id", sa.String(length=36), nullable=False),
        sa.Column("summary", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("audit_trail", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "record_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Created, duplicate and auto-created ids for rollback by actor",
        ),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_mass_import_audits_import_id", "mass_import_audits", ["import_id"], unique=False)
    op.create_index("ix_mass_import_audits_created_at", "mass_import_audits", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_mass_import_audits_created_at", table_name="mass_import_audits")
    op.drop_index("ix_mass_import_audits_import_id", table_name="mass_import_audits")
    op.drop_table("mass_import_audits")
    op.drop_index("ix_artwork_creators_creator_id", table_name="artwork_creators")
    op.drop_table("artwork_creators")
    op.drop_index("ix_creators_created_by", table_name="creators")
    op.drop_index("ix_creators_status", table_name="creators")
    op.drop_index("ix_creators_normalized_name", table_name="creators")
    op.drop_table("creators")
    op.drop_index("ix_artworks_created_by", table_name="artworks")
    op.drop_index("ix_artworks_status", table_name="artworks")
    op.drop_index("ix_artworks_external_id", table_name="artworks")
    op.drop_index("ix_artworks_lat_lon", table_name="artworks")
    op.drop_table("artworks")
