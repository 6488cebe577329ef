"""
Unit tests for the asset origin client.
"""

import asyncio
import hashlib

import httpx
import pytest

from mediarelay.config import OriginSettings
from mediarelay.models.media import MediaKind
from mediarelay.services.origin_client import OriginClient, StorageError, sign_params

SETTINGS = OriginSettings(
    cloud_name="demo",
    api_key="key123",
    api_secret="s3cret",
    api_url="https://api.origin.test/v1_1/",
)


def _client(handler, settings=SETTINGS):
    return OriginClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_sign_params_sorts_and_skips_empty_values():
    expected = hashlib.sha1(b"public_id=abc&timestamp=1700000000s3cret").hexdigest()
    assert sign_params({"timestamp": 1700000000, "public_id": "abc", "folder": ""}, "s3cret") == expected


def test_upload_returns_origin_asset():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json={"public_id": "abc", "bytes": 42, "format": "png", "secure_url": "https://x/abc.png"},
        )

    asset = asyncio.run(_client(handler).upload(b"data", "abc", MediaKind.IMAGE, "a.png", "image/png"))

    assert asset.public_id == "abc"
    assert asset.byte_size == 42
    assert asset.format == "png"
    assert str(seen[0].url) == "https://api.origin.test/v1_1/demo/image/upload"
    body = seen[0].read()
    assert b'name="api_key"' in body
    assert b"key123" in body


def test_upload_failure_raises_storage_error():
    handler = lambda request: httpx.Response(401, json={"error": {"message": "bad signature"}})
    with pytest.raises(StorageError):
        asyncio.run(_client(handler).upload(b"data", "abc", MediaKind.IMAGE, "a.png", "image/png"))


def test_upload_without_credentials_is_refused():
    handler = lambda request: httpx.Response(200, json={})
    with pytest.raises(StorageError):
        asyncio.run(
            _client(handler, OriginSettings(cloud_name="demo")).upload(
                b"data", "abc", MediaKind.IMAGE, "a.png", "image/png"
            )
        )


def test_destroy_reports_missing_assets():
    handler = lambda request: httpx.Response(200, json={"result": "not found"})
    assert asyncio.run(_client(handler).destroy("abc", MediaKind.VIDEO)) is False


def test_destroy_network_error_raises_storage_error():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(StorageError):
        asyncio.run(_client(handler).destroy("abc", MediaKind.IMAGE))
