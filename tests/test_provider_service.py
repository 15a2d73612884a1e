"""Tests for the upstream provider adapters."""

import asyncio

import httpx
import pytest

from src.classify_gateway.errors import ProviderError
from src.classify_gateway.schemas.provider import RequestContentType
from src.classify_gateway.schemas.upstream import ResponseShape
from src.classify_gateway.services.provider_service import (
    ADAPTER_VARIANTS,
    FormUploadAdapter,
    RawBytesAdapter,
    auth_headers,
    select_adapter,
    upstream_error_message,
)
from tests.fakes import CV_URL, ML_URL, FakeUpstream, cv_config, ml_config

IMAGE = b"\xff\xd8\xff\xe0fake-jpeg"


def run_classify(config, upstream: FakeUpstream):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
            adapter = select_adapter(config, client)
            return await adapter.classify(IMAGE, "car.jpg", "image/jpeg")

    return asyncio.run(scenario())


# ──────────────────────────────────────────────
# Selection
# ──────────────────────────────────────────────
def test_every_content_type_has_an_adapter() -> None:
    assert set(ADAPTER_VARIANTS) == set(RequestContentType)


def test_select_adapter_by_content_type() -> None:
    client = httpx.AsyncClient()
    assert isinstance(select_adapter(ml_config(), client), FormUploadAdapter)
    assert isinstance(select_adapter(cv_config(), client), RawBytesAdapter)


def test_auth_headers_per_scheme() -> None:
    assert auth_headers(ml_config()) == {"Authorization": "Bearer ml-secret"}
    assert auth_headers(cv_config()) == {"Prediction-Key": "cv-secret"}


def test_credential_not_in_config_repr() -> None:
    assert "ml-secret" not in repr(ml_config())


# ──────────────────────────────────────────────
# Request shapes
# ──────────────────────────────────────────────
def test_form_upload_request() -> None:
    upstream = FakeUpstream()
    upstream.reply = httpx.Response(200, json={"predictions": {"suv": 1.0}})

    raw = run_classify(ml_config(), upstream)

    request = upstream.last_request
    assert request.method == "POST"
    assert str(request.url) == ML_URL
    assert request.headers["Authorization"] == "Bearer ml-secret"
    assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")
    assert b'name="image"; filename="car.jpg"' in request.content
    assert IMAGE in request.content
    assert raw.shape is ResponseShape.TAG_MAP
    assert raw.body == {"predictions": {"suv": 1.0}}


def test_raw_bytes_request() -> None:
    upstream = FakeUpstream()
    upstream.reply = httpx.Response(200, json={"predictions": []})

    raw = run_classify(cv_config(), upstream)

    request = upstream.last_request
    assert str(request.url) == CV_URL
    assert request.headers["Prediction-Key"] == "cv-secret"
    assert request.headers["Content-Type"] == "application/octet-stream"
    assert "Authorization" not in request.headers
    assert request.content == IMAGE
    assert raw.shape is ResponseShape.TAG_LIST


def test_timeout_is_applied_per_request() -> None:
    upstream = FakeUpstream()

    run_classify(cv_config(timeout=2.5), upstream)

    timeout = upstream.last_request.extensions["timeout"]
    assert timeout["read"] == 2.5


# ──────────────────────────────────────────────
# Failures
# ──────────────────────────────────────────────
@pytest.mark.parametrize("reply, message", [
    (httpx.Response(401, json={"error": "Access denied"}), "Access denied"),
    (httpx.Response(404, json={"error": {"code": "NotFound", "message": "Iteration missing"}}),
     "Iteration missing"),
    (httpx.Response(429, json={"code": "Quota", "message": "Out of quota"}), "Out of quota"),
    (httpx.Response(502, text="Bad gateway"), "endpoint2 returned HTTP 502"),
    (httpx.Response(200, text="not json"), "endpoint2 returned a body that is not JSON"),
    (httpx.ReadTimeout("slow"), "endpoint2 did not respond within 5s"),
    (httpx.ConnectError("refused"), "Could not reach endpoint2: refused"),
])
def test_failures_raise_provider_error(reply, message: str) -> None:
    upstream = FakeUpstream()
    upstream.reply = reply

    with pytest.raises(ProviderError) as excinfo:
        run_classify(cv_config(), upstream)

    assert excinfo.value.message == message
    assert excinfo.value.provider == "endpoint2"
    assert "cv-secret" not in str(excinfo.value)
    assert len(upstream.requests) == 1


def test_upstream_error_message_ignores_empty_error() -> None:
    response = httpx.Response(500, json={"error": ""})
    assert upstream_error_message("endpoint1", response) == "endpoint1 returned HTTP 500"
