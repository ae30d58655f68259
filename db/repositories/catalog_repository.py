"""
SQLAlchemy adapter for the catalog storage port used by mass import.

Each call opens its own session and transaction so worker threads never
share a Session. SQLAlchemy failures are raised as StorageError so the
orchestrator can isolate them to one record.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.mass_import import RecordKind, TagMergeResult, merge_tags_additively
from app.services.errors import StorageError
from app.services.ports import NewArtwork, NewCreator
from db.models.catalog import Artwork, ArtworkCreator, CatalogStatus, Creator
from db.repositories.errors import CatalogRecordNotFoundError
from similarity.geo import bounding_box, haversine_meters
from similarity.text import normalize_name
from similarity.types import CandidateRecord, TagValue

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Catalog storage failed operation=%s error=%s", operation, exc)
        raise StorageError(f"Catalog storage failed during {operation}.") from exc


class SQLAlchemyCatalogStorage:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def find_nearby_artworks(
        self,
        lat: float,
        lon: float,
        radius_meters: float,
        limit: int,
    ) -> list[CandidateRecord]:
        """
        Approved artworks within ``radius_meters``, nearest first.
        """

        min_lat, max_lat, min_lon, max_lon = bounding_box(lat, lon, radius_meters)
        lon_scale = math.cos(math.radians(lat))
        d_lat = Artwork.lat - lat
        d_lon = (Artwork.lon - lon) * lon_scale
        stmt = (
            select(Artwork)
            .where(
                Artwork.status == CatalogStatus.APPROVED,
                Artwork.lat.between(min_lat, max_lat),
                Artwork.lon.between(min_lon, max_lon),
            )
            .order_by(d_lat * d_lat + d_lon * d_lon, Artwork.id)
            .limit(max(1, limit))
        )

        with _storage_errors("find_nearby_artworks"), self._session_factory() as session:
            rows = list(session.scalars(stmt).all())

        candidates = [
            CandidateRecord(
                id=row.id,
                kind=RecordKind.ARTWORK,
                title=row.title,
                lat=row.lat,
                lon=row.lon,
                artist_name=row.artist_name,
                tags=dict(row.tags or {}),
                external_id=row.external_id,
            )
            for row in rows
            if haversine_meters(lat, lon, row.lat, row.lon) <= radius_meters
        ]
        return candidates

    def find_creators_by_name_fragment(self, text: str, limit: int = 50) -> list[CandidateRecord]:
        fragment = normalize_name(text)
        if not fragment:
            return []
        stmt = (
            select(Creator)
            .where(
                Creator.status == CatalogStatus.APPROVED,
                Creator.normalized_name.contains(fragment, autoescape=True),
            )
            .order_by(Creator.id)
            .limit(max(1, limit))
        )
        with _storage_errors("find_creators_by_name_fragment"), self._session_factory() as session:
            rows = list(session.scalars(stmt).all())
        return [
            CandidateRecord(
                id=row.id,
                kind=RecordKind.CREATOR,
                title=row.name,
                tags=dict(row.tags or {}),
                external_id=row.external_id,
            )
            for row in rows
        ]

    def create_artwork(self, artwork: NewArtwork) -> str:
        with _storage_errors("create_artwork"), self._session_factory() as session:
            with session.begin():
                row = Artwork(
                    title=artwork.title,
                    description=artwork.description,
                    lat=artwork.lat,
                    lon=artwork.lon,
                    artist_name=artwork.artist_name,
                    tags=dict(artwork.tags),
                    photos=list(artwork.photos),
                    external_id=artwork.external_id,
                    status=CatalogStatus.APPROVED,
                    created_by=artwork.created_by,
                )
                session.add(row)
                session.flush()
                return row.id

    def create_creator(self, creator: NewCreator) -> str:
        with _storage_errors("create_creator"), self._session_factory() as session:
            with session.begin():
                row = Creator(
                    name=creator.name,
                    normalized_name=normalize_name(creator.name),
                    description=creator.description,
                    tags=dict(creator.tags),
                    external_id=creator.external_id,
                    status=CatalogStatus.APPROVED,
                    created_by=creator.created_by,
                )
                session.add(row)
                session.flush()
                return row.id

    def link_artwork_creator(self, artwork_id: str, creator_id: str, role: str) -> None:
        with _storage_errors("link_artwork_creator"), self._session_factory() as session:
            with session.begin():
                existing = session.get(ArtworkCreator, (artwork_id, creator_id, role))
                if existing is not None:
                    return
                session.add(ArtworkCreator(artwork_id=artwork_id, creator_id=creator_id, role=role))

    def merge_tags(self, kind: str, existing_id: str, new_tags: dict[str, TagValue]) -> TagMergeResult:
        model = Artwork if kind == RecordKind.ARTWORK else Creator
        with _storage_errors("merge_tags"), self._session_factory() as session:
            with session.begin():
                row = session.get(model, existing_id, with_for_update=True)
                if row is None:
                    raise StorageError(
                        f"Cannot merge tags: {kind} {existing_id} not found."
                    ) from CatalogRecordNotFoundError(existing_id)
                merged, added = merge_tags_additively(row.tags or {}, new_tags)
                if added:
                    row.tags = merged
                return TagMergeResult(new_tags_added=added, total_tags=len(merged))


@lru_cache(maxsize=1)
def get_catalog_storage() -> SQLAlchemyCatalogStorage:
    """
    Return the shared catalog storage bound to the application session factory.
    """

    from db.session import SessionLocal

    return SQLAlchemyCatalogStorage(SessionLocal)
