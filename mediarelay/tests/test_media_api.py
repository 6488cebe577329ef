"""
Tests for upload, listing, deletion and statistics endpoints.
"""

import asyncio

import httpx
import pytest

from mediarelay.config import OriginSettings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 120
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 300


def _upload(client, filename, data, content_type):
    return client.post("/upload", files={"media": (filename, data, content_type)})


def test_upload_stores_locally_and_serves_file(client, record_store):
    response = _upload(client, "cat photo.png", PNG_BYTES, "image/png")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["type"] == "image"
    assert body["url"].startswith("http://testserver/media/")
    assert body["url"].endswith("-cat_photo.png")

    identifier = body["url"].rsplit("/", 1)[1]
    record = asyncio.run(record_store.find_by_identifier(identifier))
    assert record is not None
    assert record.display_name == "cat photo.png"
    assert record.byte_size == len(PNG_BYTES)

    served = client.get(f"/media/{identifier}")
    assert served.status_code == 200
    assert served.content == PNG_BYTES
    assert served.headers["content-type"] == "image/png"


def test_upload_requires_media_field(client):
    response = client.post("/upload", files={"other": ("a.png", PNG_BYTES, "image/png")})
    assert response.status_code == 400
    assert "error" in response.json()


def test_upload_rejects_non_media_types(client, record_store):
    response = _upload(client, "notes.txt", b"hello", "text/plain")
    assert response.status_code == 400
    assert asyncio.run(record_store.list_recent()) == []


def test_upload_rejects_oversized_files(client, record_store):
    client.app.state.media_service.max_file_size = 64
    response = _upload(client, "big.png", PNG_BYTES, "image/png")
    assert response.status_code == 413
    assert asyncio.run(record_store.list_recent()) == []


def test_list_returns_newest_first(client):
    first = _upload(client, "one.png", PNG_BYTES, "image/png").json()
    second = _upload(client, "two.mp4", MP4_BYTES, "video/mp4").json()

    items = client.get("/api/media").json()
    assert [item["display_name"] for item in items] == ["two.mp4", "one.png"]
    assert items[0]["kind"] == "video"
    assert first["url"].endswith(items[1]["url"])
    assert second["type"] == "video"


def test_stats_and_delete(client, record_store):
    image = _upload(client, "one.png", PNG_BYTES, "image/png").json()
    _upload(client, "two.mp4", MP4_BYTES, "video/mp4")

    stats = client.get("/api/stats").json()
    assert stats == {
        "totalMedia": 2,
        "totalImages": 1,
        "totalVideos": 1,
        "totalSize": len(PNG_BYTES) + len(MP4_BYTES),
    }

    identifier = image["url"].rsplit("/", 1)[1]
    response = client.delete(f"/api/media/{identifier}")
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert asyncio.run(record_store.find_by_identifier(identifier)) is None
    assert client.get(f"/media/{identifier}").status_code == 404
    assert client.get("/api/stats").json() == {
        "totalMedia": 1,
        "totalImages": 0,
        "totalVideos": 1,
        "totalSize": len(MP4_BYTES),
    }


def test_delete_unknown_media_returns_404(client):
    response = client.delete("/api/media/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Media not found"}


def test_media_route_rejects_unknown_files(client):
    assert client.get("/media/never-uploaded.png").status_code == 404


@pytest.fixture
def origin_upload_settings():
    return OriginSettings(
        cloud_name="demo",
        api_key="key",
        api_secret="secret",
        api_url="https://api.origin.test/v1_1",
        delivery_url="https://origin.test/demo",
    )


def test_upload_to_origin_returns_cdn_url(make_client, fake_origin, origin_upload_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.origin.test":
            return httpx.Response(200, json={"bytes": len(MP4_BYTES), "resource_type": "video"})
        return httpx.Response(200, content=b"video-bytes", headers={"content-type": "video/mp4"})

    fake_origin.handler = handler
    client = make_client(origin_upload_settings)

    body = _upload(client, "clip.mp4", MP4_BYTES, "video/mp4").json()
    assert body["type"] == "video"
    assert "/cdn/" in body["url"]
    identifier = body["url"].rsplit("/", 1)[1]
    assert identifier.endswith("-clip")

    upload_request = fake_origin.requests[0]
    assert str(upload_request.url) == "https://api.origin.test/v1_1/demo/video/upload"
    assert b'name="signature"' in upload_request.read()

    response = client.get(f"/cdn/{identifier}?w=320")
    assert response.status_code == 200
    assert response.content == b"video-bytes"
    assert fake_origin.urls[-1] == f"https://origin.test/demo/video/upload/w_320,q_auto,f_auto/{identifier}"


def test_delete_origin_media_calls_destroy(make_client, fake_origin, origin_upload_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/destroy"):
            return httpx.Response(200, json={"result": "ok"})
        return httpx.Response(200, json={"bytes": len(PNG_BYTES)})

    fake_origin.handler = handler
    client = make_client(origin_upload_settings)

    identifier = _upload(client, "pic.png", PNG_BYTES, "image/png").json()["url"].rsplit("/", 1)[1]
    assert client.delete(f"/api/media/{identifier}").status_code == 200
    assert fake_origin.urls[-1] == "https://api.origin.test/v1_1/demo/image/destroy"
