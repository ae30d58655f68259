"""
similarity/base.py

Strategy interface for similarity scorers.

Services accept any object satisfying ``Scorer`` so alternate weighting or
matching schemes can be injected per job or per deployment.
"""

from __future__ import annotations

from typing import Protocol

from similarity.types import CandidateRecord, ScoringThresholds, SimilarityQuery, SimilarityResult
from similarity.weights import SignalWeights


class Scorer(Protocol):
    def score(
        self,
        query: SimilarityQuery,
        candidate: CandidateRecord,
        weights: SignalWeights,
        *,
        thresholds: ScoringThresholds = ...,
    ) -> SimilarityResult:
        """Score one candidate against the query; must not raise for numeric input."""
        ...
