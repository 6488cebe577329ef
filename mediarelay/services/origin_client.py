"""
Client for the asset origin's upload API.

Uploads and deletions are signed requests: the parameters (minus the file
and the API key) are sorted, joined as ``k=v`` pairs with ``&``, suffixed
with the API secret and hashed with SHA-1.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from ..config import OriginSettings
from ..models.media import MediaKind


class StorageError(Exception):
    """Raised when a storage backend (origin or local disk) operation fails."""


@dataclass(slots=True)
class OriginAsset:
    public_id: str
    kind: MediaKind
    byte_size: int
    format: Optional[str] = None
    secure_url: Optional[str] = None


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    payload = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if params[key] is not None and params[key] != ""
    )
    return hashlib.sha1(f"{payload}{api_secret}".encode("utf-8")).hexdigest()


class OriginClient:
    def __init__(self, settings: OriginSettings, client: httpx.AsyncClient):
        self._settings = settings
        self._client = client

    def _endpoint(self, kind: MediaKind, action: str) -> str:
        base = self._settings.api_url.rstrip("/")
        return f"{base}/{self._settings.cloud_name}/{MediaKind(kind).value}/{action}"

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        signed = dict(params)
        signed["timestamp"] = int(time.time())
        signed["signature"] = sign_params(signed, self._settings.api_secret)
        signed["api_key"] = self._settings.api_key
        return signed

    async def upload(
        self,
        data: bytes,
        public_id: str,
        kind: MediaKind,
        filename: str,
        content_type: str,
    ) -> OriginAsset:
        """Upload ``data`` under ``public_id`` and return what the origin stored."""
        if not self._settings.upload_enabled:
            raise StorageError("Asset origin upload requested but credentials are not configured.")

        form = self._signed({"public_id": public_id})
        try:
            response = await self._client.post(
                self._endpoint(kind, "upload"),
                data={k: str(v) for k, v in form.items()},
                files={"file": (filename, data, content_type)},
                timeout=self._settings.upload_timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                f"Origin rejected upload of '{public_id}' with status {exc.response.status_code}: "
                f"{exc.response.text[:200]}"
            )
            raise StorageError("Upload to asset origin failed.") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception(f"Failed to upload '{public_id}' to asset origin: {exc}")
            raise StorageError("Upload to asset origin failed.") from exc

        return OriginAsset(
            public_id=str(body.get("public_id") or public_id),
            kind=MediaKind(kind),
            byte_size=int(body.get("bytes") or len(data)),
            format=body.get("format"),
            secure_url=body.get("secure_url"),
        )

    async def destroy(self, public_id: str, kind: MediaKind) -> bool:
        """Delete an asset at the origin. Returns False when it was already gone."""
        if not self._settings.upload_enabled:
            raise StorageError("Asset origin delete requested but credentials are not configured.")

        form = self._signed({"public_id": public_id})
        try:
            response = await self._client.post(
                self._endpoint(kind, "destroy"),
                data={k: str(v) for k, v in form.items()},
                timeout=self._settings.upload_timeout,
            )
            response.raise_for_status()
            result = response.json().get("result")
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception(f"Failed to delete '{public_id}' from asset origin: {exc}")
            raise StorageError("Delete from asset origin failed.") from exc

        if result == "not found":
            logger.warning(f"Asset '{public_id}' was already missing at the origin")
            return False
        if result != "ok":
            raise StorageError(f"Unexpected origin delete result: {result!r}")
        return True
