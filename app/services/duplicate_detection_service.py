"""
app/services/duplicate_detection_service.py

Duplicate detection and additive tag merge for incoming import records.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Sequence

from app.config import get_mass_import_settings, get_similarity_settings
from app.domain.mass_import import (
    ArtworkImportRecord,
    CreatorImportRecord,
    DuplicateCheckResult,
    ImportConfig,
    TagMergeResult,
)
from app.services.ports import CatalogStoragePort
from similarity.base import Scorer
from similarity.geo import is_valid_coordinate
from similarity.scoring import WeightedSimilarityScorer
from similarity.text import name_tokens, normalize_name
from similarity.types import CandidateRecord, SimilarityQuery, SimilarityResult, TagValue, ThresholdBand
from similarity.weights import CREATOR_PROFILE, get_profile

logger = logging.getLogger(__name__)

NO_CANDIDATES = DuplicateCheckResult(
    is_duplicate=False,
    existing_id=None,
    confidence_score=0.0,
    score_breakdown={},
    candidates_checked=0,
)


def find_creator_candidates(
    storage: CatalogStoragePort,
    name: str,
    *,
    limit: int,
) -> list[CandidateRecord]:
    """
    Union of name-fragment lookups on the full name and each significant token.

    Results are de-duplicated by id and returned in id order.
    """

    fragments: list[str] = []
    full_name = normalize_name(name)
    if full_name:
        fragments.append(full_name)
    for token in name_tokens(name):
        if token not in fragments:
            fragments.append(token)

    by_id: dict[str, CandidateRecord] = {}
    for fragment in fragments:
        for candidate in storage.find_creators_by_name_fragment(fragment, limit):
            by_id.setdefault(candidate.id, candidate)
    return [by_id[key] for key in sorted(by_id)]


def pick_best(results: Sequence[SimilarityResult]) -> SimilarityResult | None:
    """
    Highest overall score; ties go to the lowest candidate id.
    """

    best: SimilarityResult | None = None
    for result in results:
        if best is None:
            best = result
            continue
        if result.overall_score > best.overall_score:
            best = result
        elif result.overall_score == best.overall_score and result.candidate_id < best.candidate_id:
            best = result
    return best


class DuplicateDetectionService:
    """
    Scores incoming records against a bounded candidate set from storage.

    Never raises from a check: retrieval or scoring problems degrade to a
    not-duplicate result with zero candidates checked.
    """

    def __init__(
        self,
        *,
        storage: CatalogStoragePort,
        scorer: Scorer | None = None,
        radius_meters: float = 500.0,
        candidate_limit: int = 200,
        creator_candidate_limit: int = 50,
    ) -> None:
        self._storage = storage
        self._scorer = scorer or WeightedSimilarityScorer()
        self._radius_meters = max(1.0, radius_meters)
        self._candidate_limit = max(1, candidate_limit)
        self._creator_candidate_limit = max(1, creator_candidate_limit)

    @property
    def radius_meters(self) -> float:
        return self._radius_meters

    def check_artwork(self, record: ArtworkImportRecord, config: ImportConfig) -> DuplicateCheckResult:
        """
        Compare one artwork against stored artworks inside the spatial window.
        """

        if not is_valid_coordinate(record.lat, record.lon):
            logger.warning(
                "Duplicate check skipped invalid coordinates lat=%s lon=%s title=%s",
                record.lat,
                record.lon,
                record.title,
            )
            return NO_CANDIDATES

        try:
            candidates = self._storage.find_nearby_artworks(
                record.lat,
                record.lon,
                self._radius_meters,
                self._candidate_limit,
            )
        except Exception as exc:
            logger.warning(
                "Duplicate check degraded kind=artwork title=%s error=%s",
                record.title,
                exc,
            )
            return NO_CANDIDATES

        return self._evaluate(record.to_query(), candidates, config, weights_profile=None, label=record.title)

    def check_creator(self, record: CreatorImportRecord, config: ImportConfig) -> DuplicateCheckResult:
        """
        Compare one creator against stored creators sharing a name fragment.
        """

        try:
            candidates = find_creator_candidates(
                self._storage,
                record.name,
                limit=self._creator_candidate_limit,
            )
        except Exception as exc:
            logger.warning(
                "Duplicate check degraded kind=creator name=%s error=%s",
                record.name,
                exc,
            )
            return NO_CANDIDATES

        return self._evaluate(
            record.to_query(),
            candidates,
            config,
            weights_profile=CREATOR_PROFILE,
            label=record.name,
        )

    def merge_tags(self, kind: str, existing_id: str, new_tags: dict[str, TagValue]) -> TagMergeResult:
        """
        Additively merge tags into an existing record; storage errors propagate.
        """

        result = self._storage.merge_tags(kind, existing_id, dict(new_tags))
        logger.info(
            "Merged tags kind=%s existing_id=%s added=%s total=%s",
            kind,
            existing_id,
            result.new_tags_added,
            result.total_tags,
        )
        return TagMergeResult(
            new_tags_added=result.new_tags_added,
            total_tags=result.total_tags,
            tags_overwritten=0,
        )

    def _evaluate(
        self,
        query: SimilarityQuery,
        candidates: Sequence[CandidateRecord],
        config: ImportConfig,
        *,
        weights_profile: str | None,
        label: str,
    ) -> DuplicateCheckResult:
        if not candidates:
            return NO_CANDIDATES

        if weights_profile is None:
            weights = config.weights
        else:
            weights = get_profile(weights_profile)
        thresholds = config.thresholds

        try:
            results = [
                self._scorer.score(query, candidate, weights, thresholds=thresholds)
                for candidate in candidates
            ]
        except Exception as exc:
            logger.warning("Duplicate scoring degraded label=%s error=%s", label, exc)
            return NO_CANDIDATES

        best = pick_best(results)
        if best is None:
            return NO_CANDIDATES

        is_duplicate = best.threshold == ThresholdBand.HIGH
        logger.debug(
            "Duplicate check label=%s candidates=%s best_id=%s score=%.3f band=%s",
            label,
            len(candidates),
            best.candidate_id,
            best.overall_score,
            best.threshold,
        )
        return DuplicateCheckResult(
            is_duplicate=is_duplicate,
            existing_id=best.candidate_id,
            confidence_score=best.overall_score,
            score_breakdown=best.score_breakdown(),
            candidates_checked=len(candidates),
            threshold=best.threshold,
        )


@lru_cache(maxsize=1)
def get_duplicate_detection_service() -> DuplicateDetectionService:
    """
    Build and cache the duplicate detection service on the SQLAlchemy catalog.
    """

    from db.repositories.catalog_repository import get_catalog_storage

    settings = get_mass_import_settings()
    similarity = get_similarity_settings()
    return DuplicateDetectionService(
        storage=get_catalog_storage(),
        scorer=WeightedSimilarityScorer(distance_cutoff_meters=similarity.distance_cutoff_meters),
        radius_meters=settings.candidate_radius_meters,
        candidate_limit=settings.candidate_limit,
        creator_candidate_limit=settings.creator_candidate_limit,
    )
