"""
similarity/weights.py

Signal weight profiles for the weighted similarity scorer.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from similarity.types import SignalType


@dataclass(frozen=True)
class SignalWeights:
    """
    Weight applied to each signal's raw score.

    ``tag_overlap`` is a per-matching-tag weight, not a ceiling.
    """

    distance: float = 0.3
    title: float = 0.2
    artist_name: float = 0.2
    tag_overlap: float = 0.05
    external_id: float = 0.5

    def for_signal(self, signal_type: str) -> float:
        return {
            SignalType.DISTANCE: self.distance,
            SignalType.TITLE: self.title,
            SignalType.ARTIST_NAME: self.artist_name,
            SignalType.TAG_OVERLAP: self.tag_overlap,
            SignalType.EXTERNAL_ID: self.external_id,
        }[signal_type]

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> "SignalWeights":
        """
        Return a copy with any recognised keys replaced.

        Keys may use the wire names (``artistName``) or the field names
        (``artist_name``); legacy aliases ``gps``, ``referenceIds`` and
        ``tagSimilarity`` are accepted as well.
        """

        if not overrides:
            return self
        changes: dict[str, float] = {}
        for key, value in overrides.items():
            field_name = WEIGHT_KEY_ALIASES.get(key)
            if field_name is None:
                continue
            changes[field_name] = float(value)
        return replace(self, **changes)

    def as_dict(self) -> dict[str, float]:
        return {
            SignalType.DISTANCE: self.distance,
            SignalType.TITLE: self.title,
            SignalType.ARTIST_NAME: self.artist_name,
            SignalType.TAG_OVERLAP: self.tag_overlap,
            SignalType.EXTERNAL_ID: self.external_id,
        }


WEIGHT_KEY_ALIASES: dict[str, str] = {
    "distance": "distance",
    "gps": "distance",
    "title": "title",
    "artistName": "artist_name",
    "artist_name": "artist_name",
    "artist": "artist_name",
    "tagOverlap": "tag_overlap",
    "tag_overlap": "tag_overlap",
    "tagSimilarity": "tag_overlap",
    "externalId": "external_id",
    "external_id": "external_id",
    "referenceIds": "external_id",
}

DEFAULT_PROFILE = "default"
CREATOR_PROFILE = "creator"

WEIGHT_PROFILES: dict[str, SignalWeights] = {
    DEFAULT_PROFILE: SignalWeights(),
    "gps_weighted": SignalWeights(distance=0.6, title=0.25, artist_name=0.2, tag_overlap=0.05, external_id=0.5),
    # The creator name is compared through the title signal.
    CREATOR_PROFILE: SignalWeights(distance=0.0, title=0.8, artist_name=0.0, tag_overlap=0.05, external_id=0.5),
}


def get_profile(name: str | None) -> SignalWeights:
    """
    Look up a named weight profile; unknown names raise KeyError.
    """

    return WEIGHT_PROFILES[name or DEFAULT_PROFILE]
