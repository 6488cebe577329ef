"""
Models package for MediaRelay.
Contains data models and validation schemas.
"""

from .media import MediaKind, MediaRecord, MediaStats, StorageBackend

__all__ = ["MediaKind", "MediaRecord", "MediaStats", "StorageBackend"]
