"""
tests/test_similarity_scoring.py

Pytest unit tests for the weighted similarity scorer.

All tests are pure Python: no database, no I/O.

Coverage
--------
- Distance signal identity, symmetry and cutoff
- Title normalization and edit-distance similarity
- Multi-artist name splitting
- Tag overlap counting
- External identifier equality
- Overall score and threshold classification
- Weight profiles and overrides
"""

from __future__ import annotations

import math

import pytest

from similarity import (
    CandidateRecord,
    ScoringThresholds,
    SignalType,
    SignalWeights,
    SimilarityQuery,
    ThresholdBand,
    WeightedSimilarityScorer,
)
from similarity.geo import bounding_box, distance_score, haversine_meters
from similarity.scoring import classify_threshold, count_matching_tags, normalize_tag_value
from similarity.text import artist_similarity, normalize_name, split_artist_names, text_similarity
from similarity.weights import CREATOR_PROFILE, get_profile

DEFAULT_WEIGHTS = SignalWeights()
SEVEN_TAGS = {
    "artwork_type": "mural",
    "material": "paint",
    "condition": "good",
    "neighbourhood": "strathcona",
    "year": 2019,
    "public": True,
    "owner": "city",
}


@pytest.fixture()
def scorer() -> WeightedSimilarityScorer:
    return WeightedSimilarityScorer()


# ---------------------------------------------------------------------------
# Distance
# ---------------------------------------------------------------------------


class TestDistanceSignal:
    @pytest.mark.parametrize(
        "lat,lon",
        [(49.2827, -123.1207), (0.0, 0.0), (-33.8688, 151.2093), (89.9, 179.9)],
    )
    def test_identical_coordinates_score_maximum(self, lat: float, lon: float) -> None:
        assert distance_score(lat, lon, lat, lon, cutoff_meters=50) == 1.0

    @pytest.mark.parametrize(
        "a,b",
        [
            ((49.2827, -123.1207), (49.2829, -123.1209)),
            ((51.5007, -0.1246), (51.5010, -0.1240)),
            ((-33.8688, 151.2093), (-33.8690, 151.2095)),
        ],
    )
    def test_distance_score_is_symmetric(self, a: tuple[float, float], b: tuple[float, float]) -> None:
        forward = distance_score(a[0], a[1], b[0], b[1], cutoff_meters=50)
        backward = distance_score(b[0], b[1], a[0], a[1], cutoff_meters=50)
        assert forward == pytest.approx(backward)

    def test_beyond_cutoff_scores_zero(self) -> None:
        # ~111 m north
        assert distance_score(49.0, -123.0, 49.001, -123.0, cutoff_meters=50) == 0.0

    def test_decays_linearly_inside_cutoff(self) -> None:
        meters = haversine_meters(49.0, -123.0, 49.0001, -123.0)
        expected = 1.0 - meters / 50
        assert distance_score(49.0, -123.0, 49.0001, -123.0, cutoff_meters=50) == pytest.approx(expected)

    def test_missing_coordinates_score_zero(self, scorer: WeightedSimilarityScorer) -> None:
        query = SimilarityQuery(title="Bench")
        candidate = CandidateRecord(id="c1", title="Bench", lat=49.0, lon=-123.0)
        assert scorer.distance_score(query, candidate) == 0.0

    def test_non_finite_coordinates_degrade_to_zero(self, scorer: WeightedSimilarityScorer) -> None:
        query = SimilarityQuery(title="Bench", lat=math.nan, lon=-123.0)
        candidate = CandidateRecord(id="c1", title="Bench", lat=49.0, lon=-123.0)
        result = scorer.score(query, candidate, DEFAULT_WEIGHTS)
        signal = result.signal(SignalType.DISTANCE)
        assert signal is not None
        assert signal.raw_score == 0.0

    def test_bounding_box_encloses_radius(self) -> None:
        min_lat, max_lat, min_lon, max_lon = bounding_box(49.0, -123.0, 500)
        assert min_lat < 49.0 < max_lat
        assert min_lon < -123.0 < max_lon
        assert haversine_meters(49.0, -123.0, max_lat, -123.0) == pytest.approx(500, rel=0.01)


# ---------------------------------------------------------------------------
# Text signals
# ---------------------------------------------------------------------------


class TestTextSignals:
    def test_identical_titles_after_normalization(self) -> None:
        assert text_similarity("The Bench!", "  the   bench ") == 1.0

    def test_both_empty_is_perfect_match(self) -> None:
        assert text_similarity(None, "   ") == 1.0

    def test_one_side_empty_scores_zero(self) -> None:
        assert text_similarity("Bench", None) == 0.0

    def test_edit_distance_ratio(self) -> None:
        # one substitution across five characters
        assert text_similarity("bench", "bunch") == pytest.approx(0.8)

    def test_title_similarity_is_symmetric(self) -> None:
        assert text_similarity("Digital Orca", "Digital Orcas") == pytest.approx(
            text_similarity("Digital Orcas", "Digital Orca")
        )

    def test_normalize_name_folds_diacritics(self) -> None:
        assert normalize_name("  Zoë   Kravitz-Smith ") == "zoe kravitz-smith"

    def test_split_artist_names_on_separators(self) -> None:
        names = split_artist_names("Alice Smith & Bob Jones; Carol Lee and Dan Wu, alice smith")
        assert names == ["Alice Smith", "Bob Jones", "Carol Lee", "Dan Wu"]

    def test_artist_similarity_uses_best_pair(self) -> None:
        assert artist_similarity("Alice Smith & Bob Jones", "Bob Jones") == 1.0

    def test_artist_similarity_missing_side_is_zero(self) -> None:
        assert artist_similarity(None, "Bob Jones") == 0.0


# ---------------------------------------------------------------------------
# Tags and external ids
# ---------------------------------------------------------------------------


class TestTagSignal:
    def test_keys_compare_case_insensitively(self) -> None:
        assert count_matching_tags({"Material": "Bronze"}, {"material": "bronze"}) == 1

    def test_numeric_values_normalize(self) -> None:
        assert normalize_tag_value(1.0) == normalize_tag_value(1)
        assert normalize_tag_value(True) == "true"

    def test_different_values_do_not_match(self) -> None:
        assert count_matching_tags({"material": "bronze"}, {"material": "steel"}) == 0

    def test_each_matching_tag_adds_per_tag_weight(self, scorer: WeightedSimilarityScorer) -> None:
        query = SimilarityQuery(tags={"a": 1, "b": 2, "c": 3})
        candidate = CandidateRecord(id="c1", tags={"a": 1, "b": 2, "c": 4})
        signal = scorer.score(query, candidate, DEFAULT_WEIGHTS).signal(SignalType.TAG_OVERLAP)
        assert signal is not None
        assert signal.weighted_score == pytest.approx(0.1)
        assert signal.raw_score == pytest.approx(2 / 3)

    def test_empty_tags_contribute_nothing(self, scorer: WeightedSimilarityScorer) -> None:
        result = scorer.score(SimilarityQuery(), CandidateRecord(id="c1", tags={"a": 1}), DEFAULT_WEIGHTS)
        assert result.score_breakdown()[SignalType.TAG_OVERLAP] == 0.0


class TestExternalIdSignal:
    def test_exact_match_supplies_full_weight(self, scorer: WeightedSimilarityScorer) -> None:
        result = scorer.score(
            SimilarityQuery(external_id="osm:123"),
            CandidateRecord(id="c1", external_id=" osm:123 "),
            DEFAULT_WEIGHTS,
        )
        assert result.score_breakdown()[SignalType.EXTERNAL_ID] == pytest.approx(0.5)

    def test_mismatch_scores_zero(self, scorer: WeightedSimilarityScorer) -> None:
        result = scorer.score(
            SimilarityQuery(external_id="osm:123"),
            CandidateRecord(id="c1", external_id="osm:124"),
            DEFAULT_WEIGHTS,
        )
        assert result.score_breakdown()[SignalType.EXTERNAL_ID] == 0.0


# ---------------------------------------------------------------------------
# Overall score
# ---------------------------------------------------------------------------


class TestOverallScore:
    def test_location_title_and_seven_tags_is_duplicate(self, scorer: WeightedSimilarityScorer) -> None:
        query = SimilarityQuery(title="Digital Orca", lat=49.2891, lon=-123.1175, tags=dict(SEVEN_TAGS))
        candidate = CandidateRecord(
            id="existing",
            title="Digital Orca",
            lat=49.2891,
            lon=-123.1175,
            tags=dict(SEVEN_TAGS),
        )
        result = scorer.score(query, candidate, DEFAULT_WEIGHTS, thresholds=ScoringThresholds(duplicate=0.7))
        assert result.overall_score >= 0.85 - 1e-9
        assert result.threshold == ThresholdBand.HIGH

    def test_location_and_title_only_is_not_duplicate(self, scorer: WeightedSimilarityScorer) -> None:
        query = SimilarityQuery(title="Digital Orca", lat=49.2891, lon=-123.1175)
        candidate = CandidateRecord(id="existing", title="Digital Orca", lat=49.2891, lon=-123.1175)
        result = scorer.score(query, candidate, DEFAULT_WEIGHTS, thresholds=ScoringThresholds(duplicate=0.7))
        assert result.overall_score == pytest.approx(0.5)
        assert result.threshold == ThresholdBand.NONE

    def test_overall_is_sum_of_weighted_signals(self, scorer: WeightedSimilarityScorer) -> None:
        query = SimilarityQuery(title="Orca", lat=49.0, lon=-123.0, artist_name="Douglas Coupland", external_id="x")
        candidate = CandidateRecord(
            id="c1",
            title="Orca",
            lat=49.0,
            lon=-123.0,
            artist_name="Douglas Coupland",
            external_id="x",
        )
        result = scorer.score(query, candidate, DEFAULT_WEIGHTS)
        assert result.overall_score == pytest.approx(sum(result.score_breakdown().values()))
        assert result.overall_score == pytest.approx(1.2)
        assert len(result.signals) == 5

    def test_score_is_symmetric_for_swapped_records(self, scorer: WeightedSimilarityScorer) -> None:
        a = CandidateRecord(id="a", title="Gate to the Northwest Passage", lat=49.2766, lon=-123.1446)
        b = CandidateRecord(id="b", title="Gate to Northwest Passage", lat=49.2767, lon=-123.1447)
        forward = scorer.score(SimilarityQuery(title=a.title, lat=a.lat, lon=a.lon), b, DEFAULT_WEIGHTS)
        backward = scorer.score(SimilarityQuery(title=b.title, lat=b.lat, lon=b.lon), a, DEFAULT_WEIGHTS)
        assert forward.overall_score == pytest.approx(backward.overall_score)

    @pytest.mark.parametrize(
        "score,band",
        [(0.9, ThresholdBand.HIGH), (0.7, ThresholdBand.HIGH), (0.6, ThresholdBand.WARNING), (0.2, ThresholdBand.NONE)],
    )
    def test_threshold_bands(self, score: float, band: str) -> None:
        assert classify_threshold(score, ScoringThresholds(duplicate=0.7, warning=0.55)) == band


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------


class TestWeights:
    def test_overrides_accept_wire_and_legacy_names(self) -> None:
        weights = SignalWeights().with_overrides({"gps": 0.6, "artistName": 0.1, "unknown": 9})
        assert weights.distance == 0.6
        assert weights.artist_name == 0.1
        assert weights.title == 0.2

    def test_creator_profile_scores_name_through_title(self, scorer: WeightedSimilarityScorer) -> None:
        result = scorer.score(
            SimilarityQuery(title="Jane Doe"),
            CandidateRecord(id="c1", kind="creator", title="jane  doe"),
            get_profile(CREATOR_PROFILE),
        )
        assert result.overall_score == pytest.approx(0.8)

    def test_unknown_profile_raises(self) -> None:
        with pytest.raises(KeyError):
            get_profile("nope")
