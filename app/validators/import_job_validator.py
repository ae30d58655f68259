"""
app/validators/import_job_validator.py

Whole-job structural validation for mass import envelopes.

Every violation is collected before raising so a caller can fix and resubmit
the job in one pass. A job that fails here is rejected before any write.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Mapping, Sequence
from urllib.parse import urlsplit

from app import failure_codes
from app.domain.mass_import import (
    ArtworkImportRecord,
    CreatorImportRecord,
    ImportConfig,
    ImportJob,
    ImportSource,
    PhotoReference,
    Provenance,
)
from similarity.types import TagValue
from similarity.weights import WEIGHT_KEY_ALIASES, WEIGHT_PROFILES

MAX_TITLE_LENGTH = 200
MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 10000
MAX_ARTIST_LENGTH = 500
MAX_TAG_KEY_LENGTH = 100


@dataclass(frozen=True)
class ValidationErrorDetail:
    """
    Structured job validation error detail.
    """

    field: str
    message: str
    code: str


class ImportValidationError(ValueError):
    """
    Raised when a submitted job is structurally invalid. No writes happen.
    """

    def __init__(self, *, message: str, errors: Sequence[ValidationErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "field": error.field,
                    "message": error.message,
                    "code": error.code,
                }
                for error in self.errors
            ],
        }


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        # JSON integers are unbounded; anything past float range is rejected
        return math.isfinite(float(value))
    except OverflowError:
        return False


def _is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parts = urlsplit(value.strip())
    return parts.scheme in {"http", "https"} and bool(parts.netloc)


def _parse_timestamp(value: str) -> datetime:
    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class ImportJobValidator:
    """
    Validates a raw job envelope and builds an immutable ``ImportJob``.
    """

    def __init__(
        self,
        *,
        max_batch_size: int = 50,
        default_batch_size: int = 10,
        default_max_workers: int = 4,
        default_timeout_seconds: float | None = None,
    ) -> None:
        self._max_batch_size = max(1, max_batch_size)
        self._default_batch_size = min(self._max_batch_size, max(1, default_batch_size))
        self._default_max_workers = max(1, default_max_workers)
        self._default_timeout_seconds = default_timeout_seconds

    def validate(self, payload: Any, *, dry_run: bool = False) -> ImportJob:
        """
        Return the parsed job or raise ``ImportValidationError`` listing every
        violation.
        """

        if not isinstance(payload, Mapping):
            raise ImportValidationError(
                message="Invalid request format",
                errors=[
                    ValidationErrorDetail(
                        field="body",
                        message="Request body must be a JSON object",
                        code=failure_codes.INVALID_JSON,
                    )
                ],
            )

        errors: list[ValidationErrorDetail] = []
        metadata = self._validate_metadata(payload.get("metadata"), errors)
        config = self._validate_config(payload.get("config"), errors, dry_run=dry_run)
        artworks, creators = self._validate_data(payload.get("data"), errors)

        if errors or metadata is None or config is None:
            raise ImportValidationError(message="Request validation failed", errors=errors)

        import_id, source, submitted_at = metadata
        return ImportJob(
            import_id=import_id,
            source=source,
            submitted_at=submitted_at,
            config=config,
            artworks=tuple(artworks),
            creators=tuple(creators),
        )

    def _validate_metadata(
        self,
        metadata: Any,
        errors: list[ValidationErrorDetail],
    ) -> tuple[str, ImportSource, datetime] | None:
        if not isinstance(metadata, Mapping):
            errors.append(_error("metadata", "Metadata section is required", failure_codes.REQUIRED_FIELD))
            return None

        start = len(errors)
        import_id = metadata.get("importId")
        if not _is_non_empty_str(import_id):
            errors.append(_error("metadata.importId", "Import ID is required", failure_codes.REQUIRED_FIELD))

        source = metadata.get("source")
        if not isinstance(source, Mapping):
            source = {}
        plugin_name = source.get("pluginName")
        original_data_source = source.get("originalDataSource")
        plugin_version = source.get("pluginVersion")
        if not _is_non_empty_str(plugin_name):
            errors.append(
                _error("metadata.source.pluginName", "Plugin name is required", failure_codes.REQUIRED_FIELD)
            )
        if not _is_non_empty_str(original_data_source):
            errors.append(
                _error(
                    "metadata.source.originalDataSource",
                    "Original data source is required",
                    failure_codes.REQUIRED_FIELD,
                )
            )
        if plugin_version is not None and not isinstance(plugin_version, str):
            errors.append(
                _error("metadata.source.pluginVersion", "Plugin version must be a string", failure_codes.INVALID_TYPE)
            )

        submitted_at: datetime | None = None
        timestamp = metadata.get("timestamp")
        if not _is_non_empty_str(timestamp):
            errors.append(_error("metadata.timestamp", "Timestamp is required", failure_codes.REQUIRED_FIELD))
        else:
            try:
                submitted_at = _parse_timestamp(timestamp.strip())
            except ValueError:
                errors.append(
                    _error(
                        "metadata.timestamp",
                        "Timestamp must be an ISO-8601 datetime",
                        failure_codes.INVALID_FORMAT,
                    )
                )

        if len(errors) > start or submitted_at is None:
            return None
        return (
            import_id.strip(),
            ImportSource(
                plugin_name=plugin_name.strip(),
                original_data_source=original_data_source.strip(),
                plugin_version=plugin_version,
            ),
            submitted_at,
        )

    def _validate_config(
        self,
        raw: Any,
        errors: list[ValidationErrorDetail],
        *,
        dry_run: bool,
    ) -> ImportConfig | None:
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            errors.append(_error("config", "Config must be an object", failure_codes.INVALID_TYPE))
            return None

        start = len(errors)
        duplicate_threshold = self._unit_interval(raw, "duplicateThreshold", 0.7, errors)
        warning_default = min(0.55, duplicate_threshold) if duplicate_threshold is not None else 0.55
        warning_threshold = self._unit_interval(raw, "warningThreshold", warning_default, errors)
        if (
            duplicate_threshold is not None
            and warning_threshold is not None
            and warning_threshold > duplicate_threshold
        ):
            errors.append(
                _error(
                    "config.warningThreshold",
                    "Warning threshold must not exceed the duplicate threshold",
                    failure_codes.INVALID_RANGE,
                )
            )

        batch_size = raw.get("batchSize", self._default_batch_size)
        if not isinstance(batch_size, int) or isinstance(batch_size, bool) or not (
            1 <= batch_size <= self._max_batch_size
        ):
            errors.append(
                _error(
                    "config.batchSize",
                    f"Batch size must be between 1 and {self._max_batch_size}",
                    failure_codes.INVALID_RANGE,
                )
            )

        max_workers = raw.get("maxWorkers", self._default_max_workers)
        if not isinstance(max_workers, int) or isinstance(max_workers, bool) or max_workers < 1:
            errors.append(
                _error("config.maxWorkers", "Max workers must be a positive integer", failure_codes.INVALID_RANGE)
            )

        flags: dict[str, bool] = {}
        for key, default in (("enableTagMerging", True), ("createMissingArtists", True), ("dryRun", False)):
            value = raw.get(key, default)
            if not isinstance(value, bool):
                errors.append(_error(f"config.{key}", f"{key} must be a boolean", failure_codes.INVALID_TYPE))
                continue
            flags[key] = value

        profile = raw.get("signalProfile", "default")
        if not isinstance(profile, str) or profile not in WEIGHT_PROFILES:
            errors.append(
                _error(
                    "config.signalProfile",
                    f"Signal profile must be one of {sorted(WEIGHT_PROFILES)}",
                    failure_codes.INVALID_FORMAT,
                )
            )

        weights = self._signal_weights(raw.get("signalWeights"), errors)

        timeout_seconds = raw.get("timeoutSeconds", self._default_timeout_seconds)
        if timeout_seconds is not None and (not _is_number(timeout_seconds) or timeout_seconds <= 0):
            errors.append(
                _error("config.timeoutSeconds", "Timeout must be a positive number", failure_codes.INVALID_RANGE)
            )

        if len(errors) > start:
            return None
        return ImportConfig(
            duplicate_threshold=float(duplicate_threshold),
            warning_threshold=float(warning_threshold),
            enable_tag_merging=flags["enableTagMerging"],
            create_missing_artists=flags["createMissingArtists"],
            batch_size=batch_size,
            signal_profile=profile,
            signal_weights=weights,
            max_workers=max_workers,
            dry_run=dry_run or flags["dryRun"],
            timeout_seconds=float(timeout_seconds) if timeout_seconds is not None else None,
        )

    @staticmethod
    def _unit_interval(
        raw: Mapping[str, Any],
        key: str,
        default: float,
        errors: list[ValidationErrorDetail],
    ) -> float | None:
        value = raw.get(key, default)
        if not _is_number(value) or not (0.0 <= value <= 1.0):
            errors.append(_error(f"config.{key}", f"{key} must be between 0 and 1", failure_codes.INVALID_RANGE))
            return None
        return float(value)

    @staticmethod
    def _signal_weights(raw: Any, errors: list[ValidationErrorDetail]) -> dict[str, float]:
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            errors.append(_error("config.signalWeights", "Signal weights must be an object", failure_codes.INVALID_TYPE))
            return {}
        weights: dict[str, float] = {}
        for key, value in raw.items():
            if key not in WEIGHT_KEY_ALIASES:
                errors.append(
                    _error(f"config.signalWeights.{key}", "Unknown signal weight", failure_codes.INVALID_FORMAT)
                )
                continue
            if not _is_number(value) or value < 0:
                errors.append(
                    _error(
                        f"config.signalWeights.{key}",
                        "Signal weight must be a non-negative number",
                        failure_codes.INVALID_RANGE,
                    )
                )
                continue
            weights[key] = float(value)
        return weights

    def _validate_data(
        self,
        data: Any,
        errors: list[ValidationErrorDetail],
    ) -> tuple[list[ArtworkImportRecord], list[CreatorImportRecord]]:
        if not isinstance(data, Mapping):
            errors.append(_error("data", "Data section is required", failure_codes.REQUIRED_FIELD))
            return [], []

        artworks: list[ArtworkImportRecord] = []
        creators: list[CreatorImportRecord] = []

        raw_artworks = data.get("artworks") or []
        if not isinstance(raw_artworks, list):
            errors.append(_error("data.artworks", "Artworks must be a list", failure_codes.INVALID_TYPE))
            raw_artworks = []

        creator_sections: list[tuple[str, list[Any]]] = []
        for key in ("creators", "artists"):
            section = data.get(key) or []
            if not isinstance(section, list):
                errors.append(_error(f"data.{key}", f"{key} must be a list", failure_codes.INVALID_TYPE))
                continue
            creator_sections.append((key, section))

        if not raw_artworks and not any(section for _, section in creator_sections):
            errors.append(
                _error("data", "At least one artwork or creator must be provided", failure_codes.EMPTY_DATA)
            )
            return [], []

        for index, raw in enumerate(raw_artworks):
            record = self._artwork(raw, f"data.artworks[{index}]", errors)
            if record is not None:
                artworks.append(record)

        for key, section in creator_sections:
            for index, raw in enumerate(section):
                record = self._creator(raw, f"data.{key}[{index}]", errors)
                if record is not None:
                    creators.append(record)

        return artworks, creators

    def _artwork(
        self,
        raw: Any,
        prefix: str,
        errors: list[ValidationErrorDetail],
    ) -> ArtworkImportRecord | None:
        if not isinstance(raw, Mapping):
            errors.append(_error(prefix, "Record must be an object", failure_codes.INVALID_TYPE))
            return None

        start = len(errors)
        lat = raw.get("lat")
        lon = raw.get("lon")
        if not _is_number(lat) or not (-90.0 <= lat <= 90.0):
            errors.append(
                _error(f"{prefix}.lat", "Latitude must be between -90 and 90", failure_codes.COORDINATES_OUT_OF_RANGE)
            )
        if not _is_number(lon) or not (-180.0 <= lon <= 180.0):
            errors.append(
                _error(
                    f"{prefix}.lon",
                    "Longitude must be between -180 and 180",
                    failure_codes.COORDINATES_OUT_OF_RANGE,
                )
            )

        title = raw.get("title")
        if not _is_non_empty_str(title):
            errors.append(_error(f"{prefix}.title", "Title is required and must be non-empty", failure_codes.REQUIRED_FIELD))
        elif len(title) > MAX_TITLE_LENGTH:
            errors.append(
                _error(
                    f"{prefix}.title",
                    f"Title must be {MAX_TITLE_LENGTH} characters or less",
                    failure_codes.FIELD_TOO_LONG,
                )
            )

        description = self._optional_text(raw, "description", prefix, MAX_DESCRIPTION_LENGTH, errors)
        artist_key = "artistName" if "artistName" in raw else "artist"
        artist_name = self._optional_text(raw, artist_key, prefix, MAX_ARTIST_LENGTH, errors)
        provenance = self._provenance(raw, prefix, errors)
        tags = self._tags(raw.get("tags"), f"{prefix}.tags", errors)
        photos = self._photos(raw.get("photos"), f"{prefix}.photos", errors)

        if len(errors) > start or provenance is None:
            return None
        return ArtworkImportRecord(
            lat=float(lat),
            lon=float(lon),
            title=title.strip(),
            provenance=provenance,
            description=description,
            artist_name=artist_name,
            tags=tags,
            photos=tuple(photos),
        )

    def _creator(
        self,
        raw: Any,
        prefix: str,
        errors: list[ValidationErrorDetail],
    ) -> CreatorImportRecord | None:
        if not isinstance(raw, Mapping):
            errors.append(_error(prefix, "Record must be an object", failure_codes.INVALID_TYPE))
            return None

        start = len(errors)
        name = raw.get("name")
        if not _is_non_empty_str(name):
            errors.append(_error(f"{prefix}.name", "Name is required and must be non-empty", failure_codes.REQUIRED_FIELD))
        elif len(name) > MAX_NAME_LENGTH:
            errors.append(
                _error(
                    f"{prefix}.name",
                    f"Name must be {MAX_NAME_LENGTH} characters or less",
                    failure_codes.FIELD_TOO_LONG,
                )
            )

        description = self._optional_text(raw, "description", prefix, MAX_DESCRIPTION_LENGTH, errors)
        provenance = self._provenance(raw, prefix, errors)
        tags = self._tags(raw.get("tags"), f"{prefix}.tags", errors)

        if len(errors) > start or provenance is None:
            return None
        return CreatorImportRecord(
            name=" ".join(name.split()),
            provenance=provenance,
            description=description,
            tags=tags,
        )

    @staticmethod
    def _optional_text(
        raw: Mapping[str, Any],
        key: str,
        prefix: str,
        max_length: int,
        errors: list[ValidationErrorDetail],
    ) -> str | None:
        value = raw.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            errors.append(_error(f"{prefix}.{key}", f"{key} must be a string", failure_codes.INVALID_TYPE))
            return None
        if len(value) > max_length:
            errors.append(
                _error(
                    f"{prefix}.{key}",
                    f"{key} must be {max_length} characters or less",
                    failure_codes.FIELD_TOO_LONG,
                )
            )
            return None
        stripped = value.strip()
        return stripped or None

    @staticmethod
    def _provenance(
        raw: Mapping[str, Any],
        prefix: str,
        errors: list[ValidationErrorDetail],
    ) -> Provenance | None:
        start = len(errors)
        source = raw.get("source")
        if not _is_non_empty_str(source):
            errors.append(
                _error(f"{prefix}.source", "Source is required and must be non-empty", failure_codes.REQUIRED_FIELD)
            )

        source_url = raw.get("sourceUrl")
        if source_url is not None and not _is_http_url(source_url):
            errors.append(
                _error(f"{prefix}.sourceUrl", "Source URL must be an absolute http(s) URL", failure_codes.INVALID_URL)
            )

        external_id = raw.get("externalId")
        if external_id is not None and (
            isinstance(external_id, bool) or not isinstance(external_id, (str, int))
        ):
            errors.append(
                _error(f"{prefix}.externalId", "External ID must be a string or integer", failure_codes.INVALID_TYPE)
            )

        license_name = raw.get("license")
        if license_name is not None and not isinstance(license_name, str):
            errors.append(_error(f"{prefix}.license", "License must be a string", failure_codes.INVALID_TYPE))

        if len(errors) > start:
            return None
        return Provenance(
            source=source.strip(),
            source_url=source_url.strip() if source_url else None,
            external_id=str(external_id).strip() if external_id is not None and str(external_id).strip() else None,
            license=license_name.strip() if license_name else None,
        )

    @staticmethod
    def _tags(raw: Any, field: str, errors: list[ValidationErrorDetail]) -> dict[str, TagValue]:
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            errors.append(_error(field, "Tags must be an object of scalar values", failure_codes.INVALID_TAGS))
            return {}

        tags: dict[str, TagValue] = {}
        for key, value in raw.items():
            if not isinstance(key, str) or not key.strip() or len(key) > MAX_TAG_KEY_LENGTH:
                errors.append(_error(f"{field}.{key}", "Tag keys must be non-empty strings", failure_codes.INVALID_TAGS))
                continue
            if isinstance(value, bool) or isinstance(value, str):
                tags[key.strip()] = value
                continue
            if _is_number(value):
                tags[key.strip()] = value
                continue
            errors.append(
                _error(
                    f"{field}.{key}",
                    "Tag values must be a string, number or boolean",
                    failure_codes.INVALID_TAGS,
                )
            )
        return tags

    @staticmethod
    def _photos(raw: Any, field: str, errors: list[ValidationErrorDetail]) -> list[PhotoReference]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            errors.append(_error(field, "Photos must be a list", failure_codes.INVALID_TYPE))
            return []

        photos: list[PhotoReference] = []
        for index, entry in enumerate(raw):
            entry_field = f"{field}[{index}]"
            if isinstance(entry, str):
                entry = {"url": entry}
            if not isinstance(entry, Mapping):
                errors.append(_error(entry_field, "Photo must be a URL or an object", failure_codes.INVALID_TYPE))
                continue
            url = entry.get("url")
            if not _is_non_empty_str(url):
                errors.append(_error(f"{entry_field}.url", "Photo URL is required", failure_codes.REQUIRED_FIELD))
                continue
            if not _is_http_url(url):
                errors.append(_error(f"{entry_field}.url", "Photo URL must be valid", failure_codes.INVALID_URL))
                continue
            caption = entry.get("caption")
            credit = entry.get("credit")
            photos.append(
                PhotoReference(
                    url=url.strip(),
                    caption=caption if isinstance(caption, str) else None,
                    credit=credit if isinstance(credit, str) else None,
                )
            )
        return photos


def _error(field: str, message: str, code: str) -> ValidationErrorDetail:
    return ValidationErrorDetail(field=field, message=message, code=code)
