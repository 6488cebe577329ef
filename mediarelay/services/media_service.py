"""
Service for uploading, listing and deleting media records.
"""

from __future__ import annotations

import random
import time
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config import ALLOWED_MEDIA_PREFIXES, MAX_FILE_SIZE
from ..models.media import MediaKind, MediaRecord, MediaStats, StorageBackend
from ..utils.validation import to_storage_name
from .record_store import RecordStore
from .storage_service import StorageService


class UploadRejected(ValueError):
    """Raised when an upload fails validation; carries the HTTP status to use."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def is_allowed_mimetype(mimetype: Optional[str]) -> bool:
    return bool(mimetype) and mimetype.startswith(ALLOWED_MEDIA_PREFIXES)


def generate_identifier(filename: str, keep_extension: bool = True) -> str:
    """Build a unique storage key of the form ``<ms>-<random>-<name>``."""
    name = to_storage_name(filename)
    if not keep_extension:
        name = to_storage_name(Path(name).stem)
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{unique_suffix}-{name}"


class MediaService:
    def __init__(
        self,
        store: RecordStore,
        storage: StorageService,
        max_file_size: int = MAX_FILE_SIZE,
    ):
        self.store = store
        self.storage = storage
        self.max_file_size = max_file_size

    async def upload(self, data: bytes, filename: str, mimetype: Optional[str]) -> MediaRecord:
        if not is_allowed_mimetype(mimetype):
            raise UploadRejected("Only image and video files are allowed.")
        if not data:
            raise UploadRejected("Uploaded file is empty.")
        if len(data) > self.max_file_size:
            raise UploadRejected(
                f"File too large. Maximum file size is {self.max_file_size // (1024 * 1024)}MB.",
                status_code=413,
            )

        kind = MediaKind.from_mimetype(mimetype)
        identifier = generate_identifier(filename, keep_extension=not self.storage.uses_origin)
        stored = await self.storage.store(
            data,
            identifier=identifier,
            kind=kind,
            filename=filename or identifier,
            content_type=mimetype,
        )

        record = MediaRecord(
            identifier=stored.identifier,
            kind=kind,
            display_name=filename,
            byte_size=stored.size,
            mimetype=mimetype,
            storage=stored.backend,
        )
        try:
            await self.store.insert(record)
        except Exception:
            logger.error(f"Failed to record '{record.identifier}'; removing stored bytes")
            await self.storage.delete(record)
            raise
        logger.info(f"Media uploaded: {record.identifier} ({record.kind.value}, {record.byte_size} bytes)")
        return record

    async def list_media(self) -> List[MediaRecord]:
        return await self.store.list_recent()

    async def get(self, identifier: str) -> Optional[MediaRecord]:
        return await self.store.find_by_identifier(identifier)

    async def delete(self, identifier: str) -> bool:
        """Delete stored bytes and the record. Returns False for unknown identifiers."""
        record = await self.store.find_by_identifier(identifier)
        if record is None:
            return False
        await self.storage.delete(record)
        await self.store.delete(identifier)
        logger.info(f"Media deleted: {identifier}")
        return True

    async def stats(self) -> MediaStats:
        return await self.store.stats()

    @staticmethod
    def public_path(record: MediaRecord) -> str:
        """Path on this server that serves the record."""
        if record.storage == StorageBackend.ORIGIN:
            return f"/cdn/{record.identifier}"
        return f"/media/{record.identifier}"
