"""
Storage backend abstractions for imported photo files.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from mimetypes import guess_extension
from pathlib import Path
from typing import Protocol

from db.repositories.errors import PhotoStorageError
from db.repositories.types import StoredFileMetadata


class PhotoStorageBackend(Protocol):
    """
    Abstract storage backend used by the photo pipeline.
    """

    def save(
        self,
        *,
        content: bytes,
        content_type: str,
        source_url: str,
    ) -> StoredFileMetadata:
        ...

    def delete(self, *, storage_path: str) -> None:
        ...


def _extension_for(content_type: str) -> str:
    if content_type == "image/jpeg":
        return ".jpg"
    return guess_extension(content_type) or ".bin"


class LocalPhotoStorage:
    """
    Local filesystem storage backend.

    Files are content-addressed, so the same photo imported twice is stored once.
    """

    def __init__(self, root_dir: str | Path = "data/photos") -> None:
        self._root_dir = Path(root_dir)

    def save(
        self,
        *,
        content: bytes,
        content_type: str,
        source_url: str,
    ) -> StoredFileMetadata:
        checksum = hashlib.sha256(content).hexdigest()
        stored_at = datetime.now(timezone.utc)
        file_name = f"{checksum}{_extension_for(content_type)}"

        relative_path = Path("originals") / checksum[:2] / file_name
        absolute_path = self._root_dir / relative_path

        if not absolute_path.exists():
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = absolute_path.with_name(f"{file_name}.{uuid.uuid4().hex}.tmp")
            try:
                with tmp_path.open("wb") as handle:
                    handle.write(content)
                tmp_path.replace(absolute_path)
            except OSError as exc:
                raise PhotoStorageError(f"Failed to write photo from {source_url} to storage.") from exc
            finally:
                if tmp_path.exists():
                    try:
                        tmp_path.unlink()
                    except OSError:
                        pass

        return StoredFileMetadata(
            file_name=file_name,
            storage_path=relative_path.as_posix(),
            mime_type=content_type,
            file_size_bytes=len(content),
            checksum=checksum,
            stored_at=stored_at,
        )

    def delete(self, *, storage_path: str) -> None:
        target = self._root_dir / Path(storage_path)
        if not target.exists():
            return
        try:
            target.unlink()
        except OSError as exc:
            raise PhotoStorageError("Failed to delete photo from storage.") from exc
