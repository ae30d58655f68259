"""
tests/test_duplicate_detection_service.py

Duplicate detection against an in-memory catalog.
"""

from __future__ import annotations

import pytest

from app.domain.mass_import import (
    SYSTEM_ACTOR_ID,
    ArtworkImportRecord,
    CreatorImportRecord,
    ImportConfig,
    Provenance,
    RecordKind,
)
from app.services.duplicate_detection_service import (
    NO_CANDIDATES,
    DuplicateDetectionService,
    find_creator_candidates,
    pick_best,
)
from app.services.errors import StorageError
from app.services.ports import NewArtwork, NewCreator
from fakes import InMemoryCatalogStorage
from similarity.types import SimilarityResult, ThresholdBand

CONFIG = ImportConfig()


def _artwork(**overrides) -> ArtworkImportRecord:
    fields = {
        "lat": 49.2891,
        "lon": -123.1175,
        "title": "Digital Orca",
        "provenance": Provenance(source="vancouver-open-data"),
    }
    fields.update(overrides)
    return ArtworkImportRecord(**fields)


def _stored(storage: InMemoryCatalogStorage, **overrides) -> str:
    fields = {
        "title": "Digital Orca",
        "lat": 49.2891,
        "lon": -123.1175,
        "created_by": SYSTEM_ACTOR_ID,
    }
    fields.update(overrides)
    return storage.add_artwork(NewArtwork(**fields))


# ---------------------------------------------------------------------------
# Artworks
# ---------------------------------------------------------------------------


class TestCheckArtwork:
    def test_empty_catalog_is_not_duplicate(self, duplicate_service: DuplicateDetectionService) -> None:
        result = duplicate_service.check_artwork(_artwork(), CONFIG)
        assert result == NO_CANDIDATES
        assert result.candidates_checked == 0
        assert result.confidence_score == 0.0

    def test_same_place_title_and_tags_is_duplicate(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        tags = {f"k{i}": f"v{i}" for i in range(7)}
        existing_id = _stored(storage, tags=dict(tags))

        result = duplicate_service.check_artwork(_artwork(tags=dict(tags)), CONFIG)

        assert result.is_duplicate is True
        assert result.existing_id == existing_id
        assert result.confidence_score >= 0.85 - 1e-9
        assert result.threshold == ThresholdBand.HIGH
        assert set(result.score_breakdown) == {"distance", "title", "artistName", "tagOverlap", "externalId"}

    def test_same_place_and_title_only_reports_best_without_flagging(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        existing_id = _stored(storage)

        result = duplicate_service.check_artwork(_artwork(), CONFIG)

        assert result.is_duplicate is False
        assert result.existing_id == existing_id
        assert result.confidence_score == pytest.approx(0.5)
        assert result.candidates_checked == 1

    def test_matching_source_identity_is_duplicate(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        record = _artwork(provenance=Provenance(source="osm", external_id="node/42"))
        existing_id = _stored(storage, title="Orca", external_id=record.source_identity)

        result = duplicate_service.check_artwork(record, CONFIG)

        assert result.is_duplicate is True
        assert result.existing_id == existing_id

    def test_records_outside_window_are_never_candidates(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        _stored(storage, lat=49.40)

        result = duplicate_service.check_artwork(_artwork(), CONFIG)

        assert result.candidates_checked == 0

    def test_retrieval_failure_degrades_to_not_duplicate(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        _stored(storage)
        storage.fail_nearby = True

        result = duplicate_service.check_artwork(_artwork(), CONFIG)

        assert result == NO_CANDIDATES

    def test_lower_threshold_flags_title_and_place_match(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        _stored(storage)

        result = duplicate_service.check_artwork(_artwork(), ImportConfig(duplicate_threshold=0.5))

        assert result.is_duplicate is True

    def test_signal_weight_overrides_apply(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        _stored(storage)

        config = ImportConfig(signal_weights={"distance": 0.6})
        result = duplicate_service.check_artwork(_artwork(), config)

        assert result.confidence_score == pytest.approx(0.8)
        assert result.is_duplicate is True


class TestPickBest:
    def test_ties_go_to_lowest_id(self) -> None:
        results = [
            SimilarityResult(candidate_id="b", signals=(), overall_score=0.9, threshold=ThresholdBand.HIGH),
            SimilarityResult(candidate_id="a", signals=(), overall_score=0.9, threshold=ThresholdBand.HIGH),
            SimilarityResult(candidate_id="c", signals=(), overall_score=0.4, threshold=ThresholdBand.NONE),
        ]
        best = pick_best(results)
        assert best is not None
        assert best.candidate_id == "a"

    def test_empty_is_none(self) -> None:
        assert pick_best([]) is None


# ---------------------------------------------------------------------------
# Creators
# ---------------------------------------------------------------------------


class TestCheckCreator:
    def test_exact_name_is_duplicate(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        creator_id = storage.add_creator(NewCreator(name="Zoë Smith", created_by=SYSTEM_ACTOR_ID))
        record = CreatorImportRecord(name="Zoe Smith", provenance=Provenance(source="wiki"))

        result = duplicate_service.check_creator(record, CONFIG)

        assert result.is_duplicate is True
        assert result.existing_id == creator_id

    def test_unrelated_name_is_not_duplicate(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        storage.add_creator(NewCreator(name="Bill Reid", created_by=SYSTEM_ACTOR_ID))
        record = CreatorImportRecord(name="Emily Carr", provenance=Provenance(source="wiki"))

        assert duplicate_service.check_creator(record, CONFIG).is_duplicate is False

    def test_candidates_found_through_name_tokens(self, storage: InMemoryCatalogStorage) -> None:
        first = storage.add_creator(NewCreator(name="Douglas Coupland", created_by=SYSTEM_ACTOR_ID))
        second = storage.add_creator(NewCreator(name="Coupland Studio", created_by=SYSTEM_ACTOR_ID))

        candidates = find_creator_candidates(storage, "Doug Coupland", limit=50)

        assert [candidate.id for candidate in candidates] == sorted([first, second])

    def test_lookup_failure_degrades(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        storage.fail_creator_lookup = True
        record = CreatorImportRecord(name="Emily Carr", provenance=Provenance(source="wiki"))

        assert duplicate_service.check_creator(record, CONFIG) == NO_CANDIDATES


# ---------------------------------------------------------------------------
# Tag merge
# ---------------------------------------------------------------------------


class TestMergeTags:
    def test_adds_new_keys_and_never_overwrites(
        self,
        storage: InMemoryCatalogStorage,
        duplicate_service: DuplicateDetectionService,
    ) -> None:
        existing_id = _stored(storage, tags={"material": "bronze"})

        result = duplicate_service.merge_tags(
            RecordKind.ARTWORK,
            existing_id,
            {"material": "steel", "height": 4},
        )

        assert result.new_tags_added == 1
        assert result.tags_overwritten == 0
        assert result.total_tags == 2
        assert storage.artwork_tags[existing_id] == {"material": "bronze", "height": 4}

    def test_storage_errors_propagate(self, duplicate_service: DuplicateDetectionService) -> None:
        with pytest.raises(StorageError):
            duplicate_service.merge_tags(RecordKind.ARTWORK, "missing", {"a": 1})
