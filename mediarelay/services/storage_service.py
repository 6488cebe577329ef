"""
Storage helpers for media uploads.
Stores files at the asset origin when it is configured, with a local
directory fallback for development.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
from loguru import logger

from ..models.media import MediaKind, MediaRecord, StorageBackend
from .origin_client import OriginClient, StorageError

__all__ = ["StorageError", "StorageService", "StoredMedia"]


@dataclass(slots=True)
class StoredMedia:
    identifier: str
    backend: StorageBackend
    size: int


class StorageService:
    def __init__(self, upload_dir: str, origin: Optional[OriginClient] = None):
        self._upload_dir = upload_dir
        self._origin = origin

    @property
    def uses_origin(self) -> bool:
        return self._origin is not None

    def local_path(self, filename: str) -> Path:
        """
        Validate and return a safe local path for a stored filename.
        Raises StorageError on path traversal or if not within the upload dir.
        """
        raw_path = os.path.normpath(os.path.join(self._upload_dir, filename))
        abs_upload_dir = os.path.abspath(self._upload_dir)
        abs_path = os.path.abspath(raw_path)
        if not abs_path.startswith(abs_upload_dir + os.path.sep):
            logger.warning(f"Attempted access outside upload dir: {filename}")
            raise StorageError("Invalid media path.")
        return Path(abs_path)

    def _ensure_local_dir(self) -> Path:
        upload_path = Path(self._upload_dir)
        upload_path.mkdir(parents=True, exist_ok=True)
        return upload_path

    async def store(
        self,
        data: bytes,
        identifier: str,
        kind: MediaKind,
        filename: str,
        content_type: str,
    ) -> StoredMedia:
        """Persist an uploaded file to the configured backend."""
        if self._origin is not None:
            asset = await self._origin.upload(
                data,
                public_id=identifier,
                kind=kind,
                filename=filename,
                content_type=content_type,
            )
            return StoredMedia(
                identifier=asset.public_id,
                backend=StorageBackend.ORIGIN,
                size=asset.byte_size,
            )

        self._ensure_local_dir()
        file_path = self.local_path(identifier)
        try:
            async with aiofiles.open(file_path, "wb") as file_obj:
                await file_obj.write(data)
            stat = file_path.stat()
        except OSError as exc:
            logger.exception(f"Failed to write media '{identifier}' locally: {exc}")
            raise StorageError("Local upload failed.") from exc
        return StoredMedia(identifier=identifier, backend=StorageBackend.LOCAL, size=stat.st_size)

    async def delete(self, record: MediaRecord) -> None:
        """Delete the stored bytes behind a record."""
        if record.storage == StorageBackend.ORIGIN:
            if self._origin is None:
                raise StorageError("Record is stored at the asset origin but no origin is configured.")
            await self._origin.destroy(record.identifier, record.kind)
            return

        file_path = self.local_path(record.identifier)
        try:
            if file_path.exists():
                file_path.unlink()
            else:
                logger.warning(f"Local file for '{record.identifier}' was already missing")
        except OSError as exc:
            logger.exception(f"Failed to delete local media '{record.identifier}': {exc}")
            raise StorageError("Local delete failed.") from exc
