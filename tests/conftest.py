from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers tables on Base.metadata
from app.services.artist_resolution_service import ArtistResolutionService
from app.services.duplicate_detection_service import DuplicateDetectionService
from app.services.locks import KeyedLockRegistry
from app.services.mass_import_orchestrator import MassImportOrchestrator
from db.base import Base
from fakes import FakePhotoPipeline, InMemoryCatalogStorage, RecordingAuditSink


@pytest.fixture()
def storage() -> InMemoryCatalogStorage:
    return InMemoryCatalogStorage()


@pytest.fixture()
def photo_pipeline() -> FakePhotoPipeline:
    return FakePhotoPipeline()


@pytest.fixture()
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture()
def duplicate_service(storage: InMemoryCatalogStorage) -> DuplicateDetectionService:
    return DuplicateDetectionService(storage=storage)


@pytest.fixture()
def artist_service(storage: InMemoryCatalogStorage) -> ArtistResolutionService:
    return ArtistResolutionService(storage=storage, locks=KeyedLockRegistry())


@pytest.fixture()
def orchestrator(
    storage: InMemoryCatalogStorage,
    duplicate_service: DuplicateDetectionService,
    artist_service: ArtistResolutionService,
    photo_pipeline: FakePhotoPipeline,
    audit_sink: RecordingAuditSink,
) -> MassImportOrchestrator:
    return MassImportOrchestrator(
        storage=storage,
        duplicate_service=duplicate_service,
        artist_service=artist_service,
        photo_pipeline=photo_pipeline,
        audit_sink=audit_sink,
    )


@pytest.fixture()
def sqlite_session_factory() -> Iterator[sessionmaker]:
    """In-memory SQLite catalog shared across sessions of one test."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()
