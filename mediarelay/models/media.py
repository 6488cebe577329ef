"""
Media data models for MediaRelay.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from ..utils.validation import is_valid_identifier

# Fixed width, always UTC: stored values sort lexically in time order.
STORED_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"

    @classmethod
    def from_mimetype(cls, mimetype: str) -> "MediaKind":
        return cls.IMAGE if mimetype.startswith("image/") else cls.VIDEO


class StorageBackend(str, Enum):
    LOCAL = "local"
    ORIGIN = "origin"


class MediaRecord(BaseModel):
    """Metadata stored for every uploaded file.

    ``identifier`` is also the storage key: the filename under the upload
    directory for local storage, or the public id at the asset origin.
    """

    identifier: str
    kind: MediaKind
    display_name: str
    byte_size: int = Field(ge=0)
    mimetype: str
    storage: StorageBackend = StorageBackend.LOCAL
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("identifier")
    @classmethod
    def validate_identifier(cls, v):
        if not is_valid_identifier(v):
            raise ValueError("Invalid media identifier")
        return v

    @field_validator("display_name")
    @classmethod
    def validate_display_name(cls, v):
        if not v or not v.strip():
            return "untitled"
        return v.strip()

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(mode="json")
        doc["_id"] = self.identifier
        doc["created_at"] = self.created_at.astimezone(timezone.utc).strftime(STORED_TIMESTAMP_FORMAT)
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "MediaRecord":
        return cls.model_validate({k: v for k, v in doc.items() if k != "_id"})


class MediaStats(BaseModel):
    """Aggregate counters computed from all media records."""

    total_media: int = 0
    total_images: int = 0
    total_videos: int = 0
    total_size: int = 0

    def to_response(self) -> Dict[str, int]:
        return {
            "totalMedia": self.total_media,
            "totalImages": self.total_images,
            "totalVideos": self.total_videos,
            "totalSize": self.total_size,
        }
