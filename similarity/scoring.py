"""
similarity/scoring.py

Weighted multi-signal similarity scorer.

Combines geographic proximity, title similarity, creator-name similarity,
tag overlap and external identifier equality into one overall score and a
threshold band. The scorer is pure: no I/O and no shared state.
"""

from __future__ import annotations

import logging
from typing import Mapping

from similarity.geo import distance_score
from similarity.text import artist_similarity, text_similarity
from similarity.types import (
    CandidateRecord,
    ScoringThresholds,
    SignalType,
    SimilarityQuery,
    SimilarityResult,
    SimilaritySignal,
    TagValue,
    ThresholdBand,
)
from similarity.weights import SignalWeights

logger = logging.getLogger(__name__)

DEFAULT_DISTANCE_CUTOFF_METERS = 50.0
DEFAULT_THRESHOLDS = ScoringThresholds()


def classify_threshold(overall_score: float, thresholds: ScoringThresholds) -> str:
    """
    Map an overall score onto the none / warning / high band.
    """

    if overall_score >= thresholds.duplicate:
        return ThresholdBand.HIGH
    if overall_score >= thresholds.warning:
        return ThresholdBand.WARNING
    return ThresholdBand.NONE


def normalize_tag_value(value: TagValue) -> str:
    """
    Case-normalized string form of a scalar tag value.

    ``1`` and ``1.0`` compare equal; booleans become ``true``/``false``.
    """

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip().lower()


def count_matching_tags(left: Mapping[str, TagValue], right: Mapping[str, TagValue]) -> int:
    """
    Number of keys present on both sides with equal normalized values.
    """

    right_by_key = {key.strip().lower(): value for key, value in right.items()}
    matches = 0
    for key, value in left.items():
        other = right_by_key.get(key.strip().lower())
        if other is None:
            continue
        if normalize_tag_value(value) == normalize_tag_value(other):
            matches += 1
    return matches


class WeightedSimilarityScorer:
    """
    Default scoring strategy.

    Distance decays linearly to zero at ``distance_cutoff_meters``. Tag
    overlap adds the per-tag weight for every matching key. An exact external
    identifier match supplies the full external-id weight.
    """

    def __init__(self, *, distance_cutoff_meters: float = DEFAULT_DISTANCE_CUTOFF_METERS) -> None:
        self._distance_cutoff_meters = max(0.0, distance_cutoff_meters)

    @property
    def distance_cutoff_meters(self) -> float:
        return self._distance_cutoff_meters

    def score(
        self,
        query: SimilarityQuery,
        candidate: CandidateRecord,
        weights: SignalWeights,
        *,
        thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
    ) -> SimilarityResult:
        signals = (
            self._signal(SignalType.DISTANCE, self._distance_raw(query, candidate), weights.distance),
            self._signal(SignalType.TITLE, text_similarity(query.title, candidate.title), weights.title),
            self._signal(
                SignalType.ARTIST_NAME,
                artist_similarity(query.artist_name, candidate.artist_name),
                weights.artist_name,
            ),
            self._tag_signal(query.tags, candidate.tags, weights.tag_overlap),
            self._signal(
                SignalType.EXTERNAL_ID,
                self._external_id_raw(query.external_id, candidate.external_id),
                weights.external_id,
            ),
        )
        overall = sum(signal.weighted_score for signal in signals)
        return SimilarityResult(
            candidate_id=candidate.id,
            signals=signals,
            overall_score=overall,
            threshold=classify_threshold(overall, thresholds),
        )

    def distance_score(self, query: SimilarityQuery, candidate: CandidateRecord) -> float:
        """
        Raw distance signal in [0, 1], exposed for diagnostics and tests.
        """

        return self._distance_raw(query, candidate)

    def _distance_raw(self, query: SimilarityQuery, candidate: CandidateRecord) -> float:
        try:
            return distance_score(
                query.lat,
                query.lon,
                candidate.lat,
                candidate.lon,
                cutoff_meters=self._distance_cutoff_meters,
            )
        except (TypeError, ValueError) as exc:
            logger.debug(
                "Degraded similarity signal=distance candidate_id=%s error=%s",
                candidate.id,
                exc,
            )
            return 0.0

    def _tag_signal(
        self,
        query_tags: Mapping[str, TagValue],
        candidate_tags: Mapping[str, TagValue],
        per_tag_weight: float,
    ) -> SimilaritySignal:
        if not query_tags or not candidate_tags:
            return SimilaritySignal(SignalType.TAG_OVERLAP, 0.0, per_tag_weight, 0.0)
        matches = count_matching_tags(query_tags, candidate_tags)
        raw = matches / len(query_tags)
        return SimilaritySignal(
            type=SignalType.TAG_OVERLAP,
            raw_score=raw,
            weight=per_tag_weight,
            weighted_score=matches * per_tag_weight,
        )

    @staticmethod
    def _external_id_raw(left: str | None, right: str | None) -> float:
        if not left or not right:
            return 0.0
        return 1.0 if left.strip() == right.strip() else 0.0

    @staticmethod
    def _signal(signal_type: str, raw: float, weight: float) -> SimilaritySignal:
        return SimilaritySignal(
            type=signal_type,
            raw_score=raw,
            weight=weight,
            weighted_score=raw * weight,
        )
