"""
similarity/types.py

Value types shared by the similarity scoring engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

TagValue = Union[str, int, float, bool]


class SignalType:
    DISTANCE = "distance"
    TITLE = "title"
    ARTIST_NAME = "artistName"
    TAG_OVERLAP = "tagOverlap"
    EXTERNAL_ID = "externalId"


ALL_SIGNAL_TYPES: tuple[str, ...] = (
    SignalType.DISTANCE,
    SignalType.TITLE,
    SignalType.ARTIST_NAME,
    SignalType.TAG_OVERLAP,
    SignalType.EXTERNAL_ID,
)


class ThresholdBand:
    NONE = "none"
    WARNING = "warning"
    HIGH = "high"


@dataclass(frozen=True)
class SimilarityQuery:
    """
    Incoming record projected onto the fields the scorer compares.
    """

    title: str | None = None
    lat: float | None = None
    lon: float | None = None
    artist_name: str | None = None
    tags: dict[str, TagValue] = field(default_factory=dict)
    external_id: str | None = None


@dataclass(frozen=True)
class CandidateRecord:
    """
    Existing catalog entry (artwork or creator) considered for comparison.

    For creators ``title`` holds the creator name and coordinates are None.
    """

    id: str
    kind: str = "artwork"
    title: str | None = None
    lat: float | None = None
    lon: float | None = None
    artist_name: str | None = None
    tags: dict[str, TagValue] = field(default_factory=dict)
    external_id: str | None = None


@dataclass(frozen=True)
class ScoringThresholds:
    duplicate: float = 0.7
    warning: float = 0.55


@dataclass(frozen=True)
class SimilaritySignal:
    type: str
    raw_score: float
    weight: float
    weighted_score: float


@dataclass(frozen=True)
class SimilarityResult:
    candidate_id: str
    signals: tuple[SimilaritySignal, ...]
    overall_score: float
    threshold: str

    def score_breakdown(self) -> dict[str, float]:
        """
        Weighted contribution of each signal keyed by signal type.
        """

        return {signal.type: signal.weighted_score for signal in self.signals}

    def signal(self, signal_type: str) -> SimilaritySignal | None:
        for signal in self.signals:
            if signal.type == signal_type:
                return signal
        return None
