"""
db/models/catalog.py

Catalog entities written by the mass import pipeline.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, StringIdMixin, TimestampMixin


class CatalogStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Artwork(Base, StringIdMixin, TimestampMixin):
    __tablename__ = "artworks"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lon: Mapped[float] = mapped_column(Float, nullable=False)
    artist_name: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Free-text creator field as imported",
    )
    tags: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    photos: Mapped[list[str]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="Stored photo references",
    )
    external_id: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
        comment="Source identity used for re-import matching",
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=CatalogStatus.APPROVED)
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)

    __table_args__ = (
        Index("ix_artworks_lat_lon", "lat", "lon"),
        Index("ix_artworks_external_id", "external_id"),
        Index("ix_artworks_status", "status"),
        Index("ix_artworks_created_by", "created_by"),
    )


class Creator(Base, StringIdMixin, TimestampMixin):
    __tablename__ = "creators"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    normalized_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Lowercased, diacritic-folded name for fragment lookup",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    external_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=CatalogStatus.APPROVED)
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)

    __table_args__ = (
        Index("ix_creators_normalized_name", "normalized_name"),
        Index("ix_creators_status", "status"),
        Index("ix_creators_created_by", "created_by"),
    )


class ArtworkCreator(Base, TimestampMixin):
    __tablename__ = "artwork_creators"

    artwork_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("artworks.id", ondelete="CASCADE"),
        primary_key=True,
    )
    creator_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("creators.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(String(50), primary_key=True, default="artist")

    __table_args__ = (Index("ix_artwork_creators_creator_id", "creator_id"),)
