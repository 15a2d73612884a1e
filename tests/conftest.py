"""Shared fixtures: a stubbed upstream, an isolated scratch directory and an image."""

import io
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from src.classify_gateway.config import settings
from src.classify_gateway.dependencies import get_http_client, get_provider_registry
from src.classify_gateway.main import app
from tests.fakes import FakeUpstream, make_registry


@pytest.fixture(autouse=True)
def upload_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    directory = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", directory)
    return directory


@pytest.fixture
def upstream(upload_dir: Path) -> FakeUpstream:
    upload_dir.mkdir(parents=True, exist_ok=True)
    return FakeUpstream(upload_dir)


@pytest.fixture
def client(upstream: FakeUpstream) -> Iterator[TestClient]:
    async def _http_client() -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
            yield http_client

    registry = make_registry()
    app.dependency_overrides[get_provider_registry] = lambda: registry
    app.dependency_overrides[get_http_client] = _http_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def jpeg_bytes() -> bytes:
    img = Image.new("RGB", (64, 48), color="red")
    buffer = io.BytesIO()
    img.save(buffer, format="JPEG")
    return buffer.getvalue()
