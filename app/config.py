"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.domain.mass_import import SYSTEM_ACTOR_ID
from db.config import load_env_files

DEFAULT_ALLOWED_PHOTO_TYPES = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_optional_float_env(name: str) -> float | None:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return float(raw_value)
    except ValueError:
        return None


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_csv_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """
    Read a comma-separated list, lowercased and stripped.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip().lower() for item in value.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class MassImportSettings:
    """
    Runtime settings for the mass import orchestrator.
    """

    default_batch_size: int = 10
    max_batch_size: int = 50
    max_workers: int = 4
    timeout_seconds: float | None = None
    candidate_radius_meters: float = 500.0
    candidate_limit: int = 200
    creator_candidate_limit: int = 50
    artist_search_base_url: str = "/search"
    system_actor_id: str = SYSTEM_ACTOR_ID


@dataclass(frozen=True)
class SimilaritySettings:
    """
    Scoring engine tuning shared by duplicate detection and artist resolution.
    """

    distance_cutoff_meters: float = 50.0
    ambiguity_margin: float = 0.05
    max_ambiguous_candidates: int = 5


@dataclass(frozen=True)
class PhotoPipelineSettings:
    """
    Photo fetch constraints and local storage location.
    """

    max_bytes: int = 15 * 1024 * 1024
    allowed_content_types: tuple[str, ...] = DEFAULT_ALLOWED_PHOTO_TYPES
    storage_dir: str = "data/photos"
    chunk_size: int = 64 * 1024


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for outbound requests.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0
    user_agent: str = "public-art-mass-import/1.0"


@lru_cache(maxsize=1)
def get_mass_import_settings() -> MassImportSettings:
    """
    Return cached mass import settings from environment variables.
    """

    max_batch_size = max(1, _get_int_env("MASS_IMPORT_MAX_BATCH_SIZE", 50))
    timeout_seconds = _get_optional_float_env("MASS_IMPORT_TIMEOUT_SECONDS")
    return MassImportSettings(
        default_batch_size=min(max_batch_size, max(1, _get_int_env("MASS_IMPORT_BATCH_SIZE", 10))),
        max_batch_size=max_batch_size,
        max_workers=max(1, _get_int_env("MASS_IMPORT_MAX_WORKERS", 4)),
        timeout_seconds=timeout_seconds if timeout_seconds and timeout_seconds > 0 else None,
        candidate_radius_meters=max(1.0, _get_float_env("MASS_IMPORT_CANDIDATE_RADIUS_METERS", 500.0)),
        candidate_limit=max(1, _get_int_env("MASS_IMPORT_CANDIDATE_LIMIT", 200)),
        creator_candidate_limit=max(1, _get_int_env("MASS_IMPORT_CREATOR_CANDIDATE_LIMIT", 50)),
        artist_search_base_url=_get_str_env("ARTIST_SEARCH_BASE_URL", "/search"),
        system_actor_id=_get_str_env("MASS_IMPORT_SYSTEM_ACTOR_ID", SYSTEM_ACTOR_ID),
    )


@lru_cache(maxsize=1)
def get_similarity_settings() -> SimilaritySettings:
    """
    Return cached similarity tuning from environment variables.
    """

    return SimilaritySettings(
        distance_cutoff_meters=max(1.0, _get_float_env("SIMILARITY_DISTANCE_CUTOFF_METERS", 50.0)),
        ambiguity_margin=max(0.0, _get_float_env("SIMILARITY_AMBIGUITY_MARGIN", 0.05)),
        max_ambiguous_candidates=max(1, _get_int_env("SIMILARITY_MAX_AMBIGUOUS_CANDIDATES", 5)),
    )


@lru_cache(maxsize=1)
def get_photo_pipeline_settings() -> PhotoPipelineSettings:
    """
    Return cached photo pipeline settings from environment variables.
    """

    return PhotoPipelineSettings(
        max_bytes=max(1, _get_int_env("PHOTO_MAX_BYTES", 15 * 1024 * 1024)),
        allowed_content_types=_get_csv_env("PHOTO_ALLOWED_CONTENT_TYPES", DEFAULT_ALLOWED_PHOTO_TYPES),
        storage_dir=_get_str_env("PHOTO_STORAGE_DIR", "data/photos"),
        chunk_size=max(1024, _get_int_env("PHOTO_DOWNLOAD_CHUNK_SIZE", 64 * 1024)),
    )


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared outbound HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
        user_agent=_get_str_env("EXTERNAL_HTTP_USER_AGENT", "public-art-mass-import/1.0"),
    )
