"""
tests/test_catalog_repository.py

SQLAlchemy catalog adapter and audit repository on in-memory SQLite.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import select, text
from sqlalchemy.orm import sessionmaker

from app.domain.mass_import import SYSTEM_ACTOR_ID, RecordKind
from app.services.artist_resolution_service import ArtistResolutionService
from app.services.duplicate_detection_service import DuplicateDetectionService
from app.services.errors import StorageError
from app.services.mass_import_orchestrator import MassImportOrchestrator
from app.services.ports import NewArtwork, NewCreator
from db.models import Artwork, ArtworkCreator, Creator
from db.repositories.catalog_repository import SQLAlchemyCatalogStorage
from db.repositories.import_audit_repository import ImportAuditRepository, SQLAlchemyImportAuditSink
from fakes import make_artwork, make_payload


@pytest.fixture()
def catalog(sqlite_session_factory: sessionmaker) -> SQLAlchemyCatalogStorage:
    return SQLAlchemyCatalogStorage(sqlite_session_factory)


def _artwork(title: str, lat: float, lon: float, **overrides) -> NewArtwork:
    return NewArtwork(title=title, lat=lat, lon=lon, created_by=SYSTEM_ACTOR_ID, **overrides)


# ---------------------------------------------------------------------------
# Artworks
# ---------------------------------------------------------------------------


class TestArtworks:
    def test_create_and_find_nearby(self, catalog: SQLAlchemyCatalogStorage) -> None:
        near = catalog.create_artwork(_artwork("Orca", 49.2891, -123.1175, tags={"a": 1}, external_id="osm:1"))
        nearer = catalog.create_artwork(_artwork("Orca copy", 49.28911, -123.11751))
        catalog.create_artwork(_artwork("Far", 49.40, -123.1175))

        candidates = catalog.find_nearby_artworks(49.28911, -123.11751, 500, 50)

        assert [candidate.id for candidate in candidates] == [nearer, near]
        assert candidates[1].tags == {"a": 1}
        assert candidates[1].external_id == "osm:1"
        assert candidates[1].kind == RecordKind.ARTWORK

    def test_limit_bounds_candidates(self, catalog: SQLAlchemyCatalogStorage) -> None:
        for index in range(5):
            catalog.create_artwork(_artwork(f"Bench {index}", 49.0 + index * 0.0001, -123.0))

        assert len(catalog.find_nearby_artworks(49.0, -123.0, 500, 3)) == 3

    def test_merge_tags_is_additive(
        self,
        catalog: SQLAlchemyCatalogStorage,
        sqlite_session_factory: sessionmaker,
    ) -> None:
        artwork_id = catalog.create_artwork(_artwork("Orca", 49.0, -123.0, tags={"material": "bronze"}))

        result = catalog.merge_tags(RecordKind.ARTWORK, artwork_id, {"material": "steel", "height": 4})

        assert result.new_tags_added == 1
        assert result.total_tags == 2
        with sqlite_session_factory() as session:
            stored = session.get(Artwork, artwork_id)
            assert stored.tags == {"material": "bronze", "height": 4}

    def test_merge_tags_on_missing_record_raises_storage_error(self, catalog: SQLAlchemyCatalogStorage) -> None:
        with pytest.raises(StorageError):
            catalog.merge_tags(RecordKind.ARTWORK, "missing", {"a": 1})

    def test_database_errors_become_storage_errors(
        self,
        catalog: SQLAlchemyCatalogStorage,
        sqlite_session_factory: sessionmaker,
    ) -> None:
        with sqlite_session_factory() as session, session.begin():
            session.execute(text("DROP TABLE artwork_creators"))
            session.execute(text("DROP TABLE artworks"))

        with pytest.raises(StorageError):
            catalog.find_nearby_artworks(49.0, -123.0, 500, 10)


# ---------------------------------------------------------------------------
# Creators
# ---------------------------------------------------------------------------


class TestCreators:
    def test_fragment_lookup_is_normalized(self, catalog: SQLAlchemyCatalogStorage) -> None:
        zoe = catalog.create_creator(NewCreator(name="Zoë Smith", created_by=SYSTEM_ACTOR_ID))
        catalog.create_creator(NewCreator(name="Bill Reid", created_by=SYSTEM_ACTOR_ID))

        candidates = catalog.find_creators_by_name_fragment("ZOE")

        assert [candidate.id for candidate in candidates] == [zoe]
        assert candidates[0].title == "Zoë Smith"
        assert candidates[0].kind == RecordKind.CREATOR

    def test_blank_fragment_finds_nothing(self, catalog: SQLAlchemyCatalogStorage) -> None:
        catalog.create_creator(NewCreator(name="Bill Reid", created_by=SYSTEM_ACTOR_ID))
        assert catalog.find_creators_by_name_fragment("  ") == []

    def test_link_is_idempotent(
        self,
        catalog: SQLAlchemyCatalogStorage,
        sqlite_session_factory: sessionmaker,
    ) -> None:
        artwork_id = catalog.create_artwork(_artwork("Orca", 49.0, -123.0))
        creator_id = catalog.create_creator(NewCreator(name="Bill Reid", created_by=SYSTEM_ACTOR_ID))

        catalog.link_artwork_creator(artwork_id, creator_id, "artist")
        catalog.link_artwork_creator(artwork_id, creator_id, "artist")

        with sqlite_session_factory() as session:
            links = session.scalars(select(ArtworkCreator)).all()
            assert len(links) == 1
            assert session.get(Creator, creator_id).normalized_name == "bill reid"


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestImportOnSQLite:
    def test_import_audit_and_reimport(
        self,
        catalog: SQLAlchemyCatalogStorage,
        sqlite_session_factory: sessionmaker,
    ) -> None:
        orchestrator = MassImportOrchestrator(
            storage=catalog,
            duplicate_service=DuplicateDetectionService(storage=catalog),
            artist_service=ArtistResolutionService(storage=catalog),
            audit_sink=SQLAlchemyImportAuditSink(sqlite_session_factory),
        )
        payload = make_payload(
            [make_artwork(index, artistName="Jane Doe") for index in range(5)],
            config={"maxWorkers": 1},
        )

        first = orchestrator.run_payload(payload)
        second = orchestrator.run_payload(payload)

        assert first.summary.total_succeeded == 5
        assert len(first.auto_created_artists) == 1
        assert second.summary.total_duplicates == 5
        with sqlite_session_factory() as session:
            assert len(session.scalars(select(Artwork)).all()) == 5
            assert len(session.scalars(select(Creator)).all()) == 1
            assert len(session.scalars(select(ArtworkCreator)).all()) == 5

            audits = ImportAuditRepository(session).list_audits(import_id="import-001")
            assert len(audits) == 2
            latest = ImportAuditRepository(session).get_latest("import-001")
            assert latest is not None
            assert latest.plugin_name == "vancouver-public-art"
            assert latest.summary["totalDuplicates"] in {0, 5}
            assert len(latest.record_ids["created"]) + len(latest.record_ids["duplicates"]) == 5

    def test_get_latest_unknown_import(self, sqlite_session_factory: sessionmaker) -> None:
        with sqlite_session_factory() as session:
            assert ImportAuditRepository(session).get_latest("nope") is None


def test_audit_timestamps_round_trip(sqlite_session_factory: sessionmaker) -> None:
    from app.domain.mass_import import (
        AuditTrail,
        ImportConfig,
        ImportJob,
        ImportJobResult,
        ImportSource,
        ImportSummary,
    )

    now = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)
    job = ImportJob(
        import_id="imp-ts",
        source=ImportSource(plugin_name="p", original_data_source="s"),
        submitted_at=now,
        config=ImportConfig(),
    )
    result = ImportJobResult(
        import_id="imp-ts",
        dry_run=False,
        status="completed",
        summary=ImportSummary(0, 0, 0, 0, 1.5),
        created=(),
        duplicates=(),
        failed=(),
        auto_created_artists=(),
        audit_trail=AuditTrail(import_started=now, import_completed=now, batches_processed=0),
    )

    SQLAlchemyImportAuditSink(sqlite_session_factory).record(result, job)

    with sqlite_session_factory() as session:
        stored = ImportAuditRepository(session).get_latest("imp-ts")
        assert stored is not None
        assert stored.status == "completed"
        assert stored.summary["processingTimeMs"] == 1.5
        assert stored.started_at.replace(tzinfo=None) == now.replace(tzinfo=None)
