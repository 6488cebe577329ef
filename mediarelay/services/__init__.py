"""
Services package for MediaRelay.
Contains business logic layer for the application.
"""

from .media_service import MediaService
from .proxy import ProxyFetcher, UpstreamError
from .record_store import MemoryRecordStore, PostgresRecordStore, RecordStore
from .transform import InvalidOptions, TransformOptions, build_transform_url

__all__ = [
    "MediaService",
    "ProxyFetcher",
    "UpstreamError",
    "MemoryRecordStore",
    "PostgresRecordStore",
    "RecordStore",
    "InvalidOptions",
    "TransformOptions",
    "build_transform_url",
]
