"""
app/services/artist_resolution_service.py

Resolves free-text creator names referenced by artworks to catalog creators.

Outcomes per name:
- linked: one exact normalized match, or one clear fuzzy best above the
  duplicate threshold when auto-resolution is enabled
- ambiguous: several close candidates; never auto-picked
- created: a new creator attributed to the system actor
- search_required: nothing resolvable and creation disabled
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import quote

from app.config import get_mass_import_settings, get_similarity_settings
from app.domain.mass_import import (
    ARTIST_LINK_ROLE,
    AUTO_CREATED_REASON,
    SYSTEM_ACTOR_ID,
    ArtistCandidate,
    ArtistResolution,
    AutoCreatedArtist,
    ImportConfig,
    ResolutionStatus,
)
from app.services.duplicate_detection_service import find_creator_candidates
from app.services.locks import KeyedLockRegistry, creator_name_key
from app.services.ports import CatalogStoragePort, NewCreator
from similarity.base import Scorer
from similarity.scoring import WeightedSimilarityScorer
from similarity.text import normalize_name, split_artist_names
from similarity.types import CandidateRecord, SimilarityQuery
from similarity.weights import CREATOR_PROFILE, get_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtistLinkReport:
    """
    Result of resolving every name in an artwork's artist field.
    """

    resolutions: tuple[ArtistResolution, ...] = ()
    auto_created: tuple[AutoCreatedArtist, ...] = ()
    warnings: tuple[str, ...] = ()


class ArtistResolutionService:
    def __init__(
        self,
        *,
        storage: CatalogStoragePort,
        scorer: Scorer | None = None,
        locks: KeyedLockRegistry | None = None,
        ambiguity_margin: float = 0.05,
        max_ambiguous_candidates: int = 5,
        candidate_limit: int = 50,
        search_base_url: str = "/search",
        system_actor_id: str = SYSTEM_ACTOR_ID,
    ) -> None:
        self._storage = storage
        self._scorer = scorer or WeightedSimilarityScorer()
        self._locks = locks or KeyedLockRegistry()
        self._ambiguity_margin = max(0.0, ambiguity_margin)
        self._max_ambiguous_candidates = max(1, max_ambiguous_candidates)
        self._candidate_limit = max(1, candidate_limit)
        self._search_base_url = search_base_url
        self._system_actor_id = system_actor_id

    @property
    def locks(self) -> KeyedLockRegistry:
        return self._locks

    def search_url(self, name: str) -> str:
        return f"{self._search_base_url}?artist={quote(name, safe='')}"

    def resolve(
        self,
        name: str,
        config: ImportConfig,
        *,
        import_id: str,
        source_artwork_id: str | None = None,
    ) -> ArtistResolution:
        """
        Resolve one creator name. Storage errors propagate to the caller.
        """

        clean_name = " ".join(name.split())
        if not normalize_name(clean_name):
            return ArtistResolution(
                name=clean_name,
                status=ResolutionStatus.SEARCH_REQUIRED,
                search_url=self.search_url(clean_name),
            )

        # Held across lookup and create so one name is never auto-created twice.
        with self._locks.hold([creator_name_key(clean_name)]):
            return self._resolve_locked(
                clean_name,
                config,
                import_id=import_id,
                source_artwork_id=source_artwork_id,
            )

    def resolve_artwork_artists(
        self,
        artwork_id: str,
        artist_field: str | None,
        config: ImportConfig,
        *,
        import_id: str,
    ) -> ArtistLinkReport:
        """
        Resolve each name in an artist field and link resolved creators.

        Failures become warnings; nothing here raises.
        """

        resolutions: list[ArtistResolution] = []
        auto_created: list[AutoCreatedArtist] = []
        warnings: list[str] = []

        for name in split_artist_names(artist_field):
            try:
                resolution = self.resolve(
                    name,
                    config,
                    import_id=import_id,
                    source_artwork_id=artwork_id,
                )
            except Exception as exc:
                logger.warning(
                    "Artist resolution failed artwork_id=%s name=%s error=%s",
                    artwork_id,
                    name,
                    exc,
                )
                warnings.append(f"Artist resolution failed for '{name}': {exc}")
                continue

            resolutions.append(resolution)
            if resolution.status == ResolutionStatus.CREATED and resolution.id is not None:
                auto_created.append(
                    AutoCreatedArtist(
                        id=resolution.id,
                        name=resolution.name,
                        source_artwork_id=artwork_id,
                    )
                )
            elif resolution.status == ResolutionStatus.AMBIGUOUS:
                warnings.append(
                    f"Artist '{name}' is ambiguous across {len(resolution.candidates)} candidates."
                )
            elif resolution.status == ResolutionStatus.SEARCH_REQUIRED:
                warnings.append(f"Artist '{name}' requires manual lookup: {resolution.search_url}")

            if resolution.id is None:
                continue
            try:
                self._storage.link_artwork_creator(artwork_id, resolution.id, ARTIST_LINK_ROLE)
            except Exception as exc:
                logger.warning(
                    "Artist link failed artwork_id=%s creator_id=%s error=%s",
                    artwork_id,
                    resolution.id,
                    exc,
                )
                warnings.append(f"Linking artist '{name}' failed: {exc}")

        return ArtistLinkReport(
            resolutions=tuple(resolutions),
            auto_created=tuple(auto_created),
            warnings=tuple(warnings),
        )

    def _resolve_locked(
        self,
        name: str,
        config: ImportConfig,
        *,
        import_id: str,
        source_artwork_id: str | None,
    ) -> ArtistResolution:
        candidates = find_creator_candidates(self._storage, name, limit=self._candidate_limit)
        target = normalize_name(name)

        exact = sorted(
            {candidate.id: candidate for candidate in candidates if normalize_name(candidate.title) == target}.values(),
            key=lambda candidate: candidate.id,
        )
        if len(exact) == 1:
            logger.debug("Artist linked by exact name name=%s creator_id=%s", name, exact[0].id)
            return ArtistResolution(name=name, status=ResolutionStatus.LINKED, id=exact[0].id)
        if len(exact) > 1:
            return ArtistResolution(
                name=name,
                status=ResolutionStatus.AMBIGUOUS,
                candidates=tuple(
                    ArtistCandidate(id=candidate.id, name=candidate.title or "", score=1.0)
                    for candidate in exact[: self._max_ambiguous_candidates]
                ),
            )

        ranked = self._rank(name, candidates, config)
        thresholds = config.thresholds

        if ranked and config.create_missing_artists:
            best = ranked[0]
            runner_up = ranked[1].score if len(ranked) > 1 else None
            clear_best = runner_up is None or best.score - runner_up > self._ambiguity_margin
            if best.score >= thresholds.duplicate and clear_best:
                logger.debug("Artist linked by similarity name=%s creator_id=%s score=%.3f", name, best.id, best.score)
                return ArtistResolution(name=name, status=ResolutionStatus.LINKED, id=best.id)

        near = [candidate for candidate in ranked if candidate.score >= thresholds.warning]
        if len(near) >= 2 and near[0].score - near[1].score <= self._ambiguity_margin:
            return ArtistResolution(
                name=name,
                status=ResolutionStatus.AMBIGUOUS,
                candidates=tuple(near[: self._max_ambiguous_candidates]),
            )

        if config.create_missing_artists:
            creator_id = self._storage.create_creator(
                NewCreator(
                    name=name,
                    created_by=self._system_actor_id,
                    tags={
                        "source": f"{import_id}-auto-created",
                        "reason": AUTO_CREATED_REASON,
                        "source_artwork_id": source_artwork_id or "",
                    },
                )
            )
            logger.info(
                "Artist auto-created name=%s creator_id=%s source_artwork_id=%s",
                name,
                creator_id,
                source_artwork_id,
            )
            return ArtistResolution(name=name, status=ResolutionStatus.CREATED, id=creator_id)

        return ArtistResolution(
            name=name,
            status=ResolutionStatus.SEARCH_REQUIRED,
            search_url=self.search_url(name),
        )

    def _rank(
        self,
        name: str,
        candidates: list[CandidateRecord],
        config: ImportConfig,
    ) -> list[ArtistCandidate]:
        weights = get_profile(CREATOR_PROFILE)
        query = SimilarityQuery(title=name)
        scored = [
            ArtistCandidate(
                id=candidate.id,
                name=candidate.title or "",
                score=self._scorer.score(query, candidate, weights, thresholds=config.thresholds).overall_score,
            )
            for candidate in candidates
        ]
        scored.sort(key=lambda candidate: (-candidate.score, candidate.id))
        return scored


@lru_cache(maxsize=1)
def get_artist_resolution_service() -> ArtistResolutionService:
    """
    Build and cache the artist resolution service on the SQLAlchemy catalog.
    """

    from db.repositories.catalog_repository import get_catalog_storage

    settings = get_mass_import_settings()
    similarity = get_similarity_settings()
    return ArtistResolutionService(
        storage=get_catalog_storage(),
        scorer=WeightedSimilarityScorer(distance_cutoff_meters=similarity.distance_cutoff_meters),
        ambiguity_margin=similarity.ambiguity_margin,
        max_ambiguous_candidates=similarity.max_ambiguous_candidates,
        candidate_limit=settings.creator_candidate_limit,
        search_base_url=settings.artist_search_base_url,
        system_actor_id=settings.system_actor_id,
    )
