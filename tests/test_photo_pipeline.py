"""
tests/test_photo_pipeline.py

HTTP photo pipeline with a stubbed requests session and local storage.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import requests

from app.config import ExternalHTTPSettings, PhotoPipelineSettings
from app.connectors.photo_pipeline import HTTPPhotoPipeline
from app.services.errors import PhotoPipelineError
from db.repositories.errors import PhotoStorageError
from db.repositories.photo_storage import LocalPhotoStorage

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"0" * 2048


class _StubResponse:
    def __init__(self, *, status_code: int = 200, content: bytes = b"", headers: dict[str, str] | None = None):
        self.status_code = status_code
        self._content = content
        self.headers = headers or {}
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}", response=self)

    def iter_content(self, chunk_size: int = 1):
        for start in range(0, len(self._content), chunk_size):
            yield self._content[start : start + chunk_size]

    def close(self) -> None:
        self.closed = True


class _StubSession:
    def __init__(self, responses: dict[str, _StubResponse]) -> None:
        self.headers: dict[str, str] = {}
        self._responses = responses
        self.calls: list[str] = []

    def request(self, *, method: str, url: str, **kwargs) -> _StubResponse:
        self.calls.append(url)
        response = self._responses.get(url)
        if response is None:
            raise requests.ConnectionError(f"no route to {url}")
        return response


def _pipeline(tmp_path: Path, responses: dict[str, _StubResponse], *, max_bytes: int = 1024 * 1024) -> HTTPPhotoPipeline:
    return HTTPPhotoPipeline(
        storage=LocalPhotoStorage(tmp_path),
        settings=PhotoPipelineSettings(max_bytes=max_bytes, chunk_size=1024),
        http_settings=ExternalHTTPSettings(max_retries=0, rate_limit_per_second=0),
        session=_StubSession(responses),  # type: ignore[arg-type]
    )


def test_stores_allowed_photo(tmp_path: Path) -> None:
    url = "https://img.example.org/orca.jpg"
    response = _StubResponse(content=JPEG_BYTES, headers={"Content-Type": "image/jpeg; charset=binary"})
    pipeline = _pipeline(tmp_path, {url: response})

    stored = pipeline.fetch_and_store(url)

    assert stored.source_url == url
    assert stored.content_type == "image/jpeg"
    assert stored.size_bytes == len(JPEG_BYTES)
    assert stored.stored_ref.startswith("originals/")
    assert stored.stored_ref.endswith(".jpg")
    assert (tmp_path / stored.stored_ref).read_bytes() == JPEG_BYTES
    assert response.closed is True


def test_same_content_is_stored_once(tmp_path: Path) -> None:
    urls = ["https://img.example.org/a.jpg", "https://mirror.example.org/a.jpg"]
    pipeline = _pipeline(
        tmp_path,
        {url: _StubResponse(content=JPEG_BYTES, headers={"Content-Type": "image/jpeg"}) for url in urls},
    )

    refs = {pipeline.fetch_and_store(url).stored_ref for url in urls}

    assert len(refs) == 1
    assert len(list(tmp_path.rglob("*.jpg"))) == 1


def test_rejects_disallowed_content_type(tmp_path: Path) -> None:
    url = "https://img.example.org/page.html"
    pipeline = _pipeline(tmp_path, {url: _StubResponse(content=b"<html>", headers={"Content-Type": "text/html"})})

    with pytest.raises(PhotoPipelineError, match="Unsupported photo content type"):
        pipeline.fetch_and_store(url)


def test_rejects_declared_oversize(tmp_path: Path) -> None:
    url = "https://img.example.org/huge.jpg"
    response = _StubResponse(
        content=JPEG_BYTES,
        headers={"Content-Type": "image/jpeg", "Content-Length": str(10 * 1024 * 1024)},
    )
    pipeline = _pipeline(tmp_path, {url: response}, max_bytes=1024 * 1024)

    with pytest.raises(PhotoPipelineError, match="exceeds"):
        pipeline.fetch_and_store(url)


def test_rejects_streamed_oversize(tmp_path: Path) -> None:
    url = "https://img.example.org/big.jpg"
    pipeline = _pipeline(
        tmp_path,
        {url: _StubResponse(content=JPEG_BYTES, headers={"Content-Type": "image/jpeg"})},
        max_bytes=1024,
    )

    with pytest.raises(PhotoPipelineError, match="exceeds"):
        pipeline.fetch_and_store(url)
    assert list(tmp_path.rglob("*.jpg")) == []


def test_rejects_empty_body(tmp_path: Path) -> None:
    url = "https://img.example.org/empty.jpg"
    pipeline = _pipeline(tmp_path, {url: _StubResponse(content=b"", headers={"Content-Type": "image/jpeg"})})

    with pytest.raises(PhotoPipelineError, match="empty"):
        pipeline.fetch_and_store(url)


def test_http_errors_become_pipeline_errors(tmp_path: Path) -> None:
    url = "https://img.example.org/missing.jpg"
    pipeline = _pipeline(tmp_path, {url: _StubResponse(status_code=404)})

    with pytest.raises(PhotoPipelineError, match="download failed"):
        pipeline.fetch_and_store(url)


def test_connection_errors_become_pipeline_errors(tmp_path: Path) -> None:
    pipeline = _pipeline(tmp_path, {})

    with pytest.raises(PhotoPipelineError):
        pipeline.fetch_and_store("https://unreachable.example.org/a.jpg")


class _SequenceSession(_StubSession):
    def __init__(self, responses: list[_StubResponse]) -> None:
        super().__init__({})
        self._queue = list(responses)

    def request(self, *, method: str, url: str, **kwargs) -> _StubResponse:
        self.calls.append(url)
        return self._queue.pop(0)


def test_retries_after_service_unavailable(tmp_path: Path) -> None:
    url = "https://img.example.org/busy.jpg"
    unavailable = _StubResponse(status_code=503, headers={"Retry-After": "0"})
    session = _SequenceSession([unavailable, _StubResponse(content=JPEG_BYTES, headers={"Content-Type": "image/jpeg"})])
    pipeline = HTTPPhotoPipeline(
        storage=LocalPhotoStorage(tmp_path),
        settings=PhotoPipelineSettings(chunk_size=1024),
        http_settings=ExternalHTTPSettings(max_retries=1, rate_limit_per_second=0),
        session=session,  # type: ignore[arg-type]
    )

    stored = pipeline.fetch_and_store(url)

    assert stored.size_bytes == len(JPEG_BYTES)
    assert session.calls == [url, url]
    assert unavailable.closed is True


class _FullDisk:
    def save(self, *, content: bytes, content_type: str, source_url: str | None = None):
        raise PhotoStorageError("disk full")


def test_storage_failure_is_flagged_as_downloaded(tmp_path: Path) -> None:
    url = "https://img.example.org/orca.jpg"
    pipeline = HTTPPhotoPipeline(
        storage=_FullDisk(),  # type: ignore[arg-type]
        settings=PhotoPipelineSettings(chunk_size=1024),
        http_settings=ExternalHTTPSettings(max_retries=0, rate_limit_per_second=0),
        session=_StubSession({url: _StubResponse(content=JPEG_BYTES, headers={"Content-Type": "image/jpeg"})}),  # type: ignore[arg-type]
    )

    with pytest.raises(PhotoPipelineError, match="storage failed") as exc_info:
        pipeline.fetch_and_store(url)
    assert exc_info.value.downloaded is True


def test_download_failure_is_not_flagged_as_downloaded(tmp_path: Path) -> None:
    pipeline = _pipeline(tmp_path, {})

    with pytest.raises(PhotoPipelineError) as exc_info:
        pipeline.fetch_and_store("https://unreachable.example.org/a.jpg")
    assert exc_info.value.downloaded is False
