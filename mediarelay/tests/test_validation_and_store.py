"""
Unit tests for validation helpers and the in-memory record store.

These tests avoid HTTP calls and exercise pure functions so they can run in CI.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from mediarelay.models.media import MediaKind, MediaRecord
from mediarelay.services.media_service import generate_identifier, is_allowed_mimetype
from mediarelay.services.record_store import MemoryRecordStore
from mediarelay.utils import validation


def test_is_valid_identifier_rejects_paths():
    assert validation.is_valid_identifier("1712-42-cat.png")
    assert validation.is_valid_identifier("abc123")
    assert not validation.is_valid_identifier("")
    assert not validation.is_valid_identifier("../etc/passwd")
    assert not validation.is_valid_identifier("a/b")
    assert not validation.is_valid_identifier(".hidden")


def test_to_storage_name_strips_unsafe_characters():
    assert validation.to_storage_name("my cat?.png") == "my_cat_.png"
    assert validation.to_storage_name("../../x.png") == "x.png"
    assert validation.to_storage_name("") == "file"


def test_generate_identifier_is_unique_and_valid():
    first = generate_identifier("holiday video.mp4")
    second = generate_identifier("holiday video.mp4")
    assert first != second
    assert first.endswith("-holiday_video.mp4")
    assert validation.is_valid_identifier(first)
    assert generate_identifier("clip.mp4", keep_extension=False).endswith("-clip")


def test_is_allowed_mimetype():
    assert is_allowed_mimetype("image/png")
    assert is_allowed_mimetype("video/mp4")
    assert not is_allowed_mimetype("application/pdf")
    assert not is_allowed_mimetype(None)


def _record(identifier, kind, size, age_minutes=0):
    return MediaRecord(
        identifier=identifier,
        kind=kind,
        display_name=identifier,
        byte_size=size,
        mimetype="image/png" if kind == MediaKind.IMAGE else "video/mp4",
        created_at=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
    )


def test_memory_store_lookup_stats_and_delete():
    store = MemoryRecordStore(
        [_record("old", MediaKind.IMAGE, 100, age_minutes=5), _record("new", MediaKind.VIDEO, 900)]
    )

    async def scenario():
        assert (await store.find_by_identifier("old")).kind == MediaKind.IMAGE
        assert [r.identifier for r in await store.list_recent()] == ["new", "old"]
        stats = await store.stats()
        assert (stats.total_media, stats.total_images, stats.total_videos, stats.total_size) == (2, 1, 1, 1000)

        assert await store.delete("old") is True
        assert await store.delete("old") is False
        assert await store.find_by_identifier("old") is None
        assert (await store.stats()).total_size == 900

    asyncio.run(scenario())


def test_memory_store_rejects_duplicate_identifiers():
    store = MemoryRecordStore([_record("dup", MediaKind.IMAGE, 1)])
    with pytest.raises(ValueError):
        asyncio.run(store.insert(_record("dup", MediaKind.IMAGE, 1)))


def test_media_record_round_trips_through_documents():
    record = _record("doc", MediaKind.VIDEO, 5)
    doc = record.to_document()
    assert doc["_id"] == "doc"
    assert doc["kind"] == "video"
    assert MediaRecord.from_document(doc) == record
