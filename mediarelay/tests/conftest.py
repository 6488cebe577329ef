"""
Test configuration for MediaRelay unit tests.

Ensures the project root is on sys.path so the package can be imported
without installing it, and provides an app wired to in-memory collaborators.
"""

import sys
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi.testclient import TestClient  # noqa: E402

from mediarelay.config import OriginSettings  # noqa: E402
from mediarelay.server import create_app, init_components  # noqa: E402
from mediarelay.services.record_store import MemoryRecordStore  # noqa: E402

DELIVERY_BASE = "https://origin.test/demo"


class FakeOrigin:
    """Records every request and answers with a configurable handler."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, content=b"", headers={"content-type": "image/jpeg"})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def urls(self) -> List[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def fake_origin():
    return FakeOrigin()


@pytest.fixture
def record_store():
    return MemoryRecordStore()


@pytest.fixture
def origin_settings():
    return OriginSettings(cloud_name="demo", delivery_url=DELIVERY_BASE)


@pytest.fixture
def make_client(tmp_path, fake_origin, record_store):
    def _make(settings: OriginSettings, strict_lookup: bool = False) -> TestClient:
        app = create_app(settings)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_origin))
        init_components(
            app,
            settings,
            http_client,
            record_store,
            upload_dir=str(tmp_path / "uploads"),
            strict_lookup=strict_lookup,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client, origin_settings):
    return make_client(origin_settings)
