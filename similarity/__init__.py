"""
similarity package exports.
"""

from similarity.base import Scorer
from similarity.scoring import (
    DEFAULT_DISTANCE_CUTOFF_METERS,
    DEFAULT_THRESHOLDS,
    WeightedSimilarityScorer,
    classify_threshold,
    count_matching_tags,
)
from similarity.text import artist_similarity, normalize_name, normalize_text, split_artist_names, text_similarity
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
from similarity.weights import CREATOR_PROFILE, DEFAULT_PROFILE, WEIGHT_PROFILES, SignalWeights, get_profile

__all__ = [
    "CREATOR_PROFILE",
    "CandidateRecord",
    "DEFAULT_DISTANCE_CUTOFF_METERS",
    "DEFAULT_PROFILE",
    "DEFAULT_THRESHOLDS",
    "Scorer",
    "ScoringThresholds",
    "SignalType",
    "SignalWeights",
    "SimilarityQuery",
    "SimilarityResult",
    "SimilaritySignal",
    "TagValue",
    "ThresholdBand",
    "WEIGHT_PROFILES",
    "WeightedSimilarityScorer",
    "artist_similarity",
    "classify_threshold",
    "count_matching_tags",
    "get_profile",
    "normalize_name",
    "normalize_text",
    "split_artist_names",
    "text_similarity",
]
