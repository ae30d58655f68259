"""
app/connectors/photo_pipeline.py

Photo fetch-and-store adapter for the mass import photo port.

Downloads are streamed and capped; only allow-listed image types are kept.
Every failure surfaces as PhotoPipelineError so the orchestrator can count it
without failing the owning artwork.
"""

from __future__ import annotations

import logging
from functools import lru_cache

import requests

from app.config import (
    ExternalHTTPSettings,
    PhotoPipelineSettings,
    get_external_http_settings,
    get_photo_pipeline_settings,
)
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.services.errors import PhotoPipelineError
from app.services.ports import StoredPhoto
from db.repositories.errors import PhotoStorageError
from db.repositories.photo_storage import LocalPhotoStorage, PhotoStorageBackend

logger = logging.getLogger(__name__)


def _media_type(content_type: str | None) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class HTTPPhotoPipeline(BaseConnector):
    def __init__(
        self,
        *,
        storage: PhotoStorageBackend,
        settings: PhotoPipelineSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="photo_pipeline", http_settings=http_settings, session=session)
        self._storage = storage
        self._max_bytes = settings.max_bytes
        self._allowed_content_types = frozenset(settings.allowed_content_types)
        self._chunk_size = settings.chunk_size

    def fetch_and_store(self, url: str) -> StoredPhoto:
        """
        Download one photo and persist it through the storage backend.
        """

        try:
            response = self._request(method="GET", url=url, stream=True)
        except ConnectorRequestError as exc:
            raise PhotoPipelineError(f"Photo download failed: {url}") from exc

        try:
            content_type = _media_type(response.headers.get("Content-Type"))
            if content_type not in self._allowed_content_types:
                raise PhotoPipelineError(f"Unsupported photo content type '{content_type or 'unknown'}': {url}")

            declared_length = response.headers.get("Content-Length")
            if declared_length is not None and declared_length.isdigit() and int(declared_length) > self._max_bytes:
                raise PhotoPipelineError(f"Photo exceeds {self._max_bytes} bytes: {url}")

            content = self._read_capped(response, url)
        except requests.RequestException as exc:
            raise PhotoPipelineError(f"Photo download interrupted: {url}") from exc
        finally:
            response.close()

        try:
            metadata = self._storage.save(content=content, content_type=content_type, source_url=url)
        except PhotoStorageError as exc:
            raise PhotoPipelineError(f"Photo storage failed: {url}", downloaded=True) from exc

        logger.debug(
            "Photo stored url=%s storage_path=%s bytes=%s",
            url,
            metadata.storage_path,
            metadata.file_size_bytes,
        )
        return StoredPhoto(
            source_url=url,
            stored_ref=metadata.storage_path,
            content_type=content_type,
            size_bytes=metadata.file_size_bytes,
        )

    def _read_capped(self, response: requests.Response, url: str) -> bytes:
        buffer = bytearray()
        for chunk in response.iter_content(chunk_size=self._chunk_size):
            if not chunk:
                continue
            buffer.extend(chunk)
            if len(buffer) > self._max_bytes:
                raise PhotoPipelineError(f"Photo exceeds {self._max_bytes} bytes: {url}")
        if not buffer:
            raise PhotoPipelineError(f"Photo response was empty: {url}")
        return bytes(buffer)


@lru_cache(maxsize=1)
def get_photo_pipeline() -> HTTPPhotoPipeline:
    """
    Build and cache the photo pipeline with local file storage.
    """

    settings = get_photo_pipeline_settings()
    return HTTPPhotoPipeline(
        storage=LocalPhotoStorage(settings.storage_dir),
        settings=settings,
        http_settings=get_external_http_settings(),
    )
