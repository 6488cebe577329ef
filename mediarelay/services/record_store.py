"""
Record store for media metadata.

``PostgresRecordStore`` keeps records in the ``media`` collection of the
database layer. ``MemoryRecordStore`` keeps them in process memory and is
used when Postgres cannot be reached at startup.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from loguru import logger

from ..database import PostgresCollection
from ..models.media import MediaKind, MediaRecord, MediaStats


class RecordStore:
    """Interface shared by the record store backends."""

    async def find_by_identifier(self, identifier: str) -> Optional[MediaRecord]:
        raise NotImplementedError

    async def insert(self, record: MediaRecord) -> MediaRecord:
        raise NotImplementedError

    async def delete(self, identifier: str) -> bool:
        raise NotImplementedError

    async def list_recent(self) -> List[MediaRecord]:
        raise NotImplementedError

    async def stats(self) -> MediaStats:
        raise NotImplementedError


class PostgresRecordStore(RecordStore):
    def __init__(self, collection: PostgresCollection):
        self._collection = collection

    async def find_by_identifier(self, identifier: str) -> Optional[MediaRecord]:
        doc = await self._collection.find_one({"identifier": identifier})
        if doc is None:
            return None
        return MediaRecord.from_document(doc)

    async def insert(self, record: MediaRecord) -> MediaRecord:
        existing = await self._collection.find_one({"identifier": record.identifier})
        if existing is not None:
            raise ValueError(f"Media '{record.identifier}' already exists")
        await self._collection.insert_one(record.to_document())
        return record

    async def delete(self, identifier: str) -> bool:
        result = await self._collection.delete_one({"identifier": identifier})
        return result.deleted_count > 0

    async def list_recent(self) -> List[MediaRecord]:
        docs = await self._collection.find().sort("created_at", -1).to_list(None)
        records = []
        for doc in docs:
            try:
                records.append(MediaRecord.from_document(doc))
            except ValueError as exc:
                logger.warning(f"Skipping malformed media document {doc.get('_id')}: {exc}")
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    async def stats(self) -> MediaStats:
        return MediaStats(
            total_media=await self._collection.count_documents(),
            total_images=await self._collection.count_documents({"kind": MediaKind.IMAGE.value}),
            total_videos=await self._collection.count_documents({"kind": MediaKind.VIDEO.value}),
            total_size=await self._collection.sum_field("byte_size"),
        )


class MemoryRecordStore(RecordStore):
    def __init__(self, records: Optional[List[MediaRecord]] = None):
        self._records: Dict[str, MediaRecord] = {}
        for record in records or []:
            self._records[record.identifier] = record

    async def find_by_identifier(self, identifier: str) -> Optional[MediaRecord]:
        return self._records.get(identifier)

    async def insert(self, record: MediaRecord) -> MediaRecord:
        if record.identifier in self._records:
            raise ValueError(f"Media '{record.identifier}' already exists")
        self._records[record.identifier] = record
        return record

    async def delete(self, identifier: str) -> bool:
        return self._records.pop(identifier, None) is not None

    async def list_recent(self) -> List[MediaRecord]:
        return sorted(self._records.values(), key=lambda r: r.created_at, reverse=True)

    async def stats(self) -> MediaStats:
        records = list(self._records.values())
        return MediaStats(
            total_media=len(records),
            total_images=sum(1 for r in records if r.kind == MediaKind.IMAGE),
            total_videos=sum(1 for r in records if r.kind == MediaKind.VIDEO),
            total_size=sum(r.byte_size for r in records),
        )
