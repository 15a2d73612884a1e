"""Service layer – upstream classification providers.

Each provider speaks one of two request dialects:

*  **Form upload** (Azure ML) → the image is a multipart field, the
   credential a bearer token, and the reply maps tag names to scores.
*  **Raw bytes** (Custom Vision) → the image is the whole request body,
   the credential a ``Prediction-Key`` header, and the reply is a list of
   ``{tagName, probability}`` objects.

``select_adapter`` picks the variant from the provider's configuration.
Adapters make exactly one upstream call and never retry.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from src.classify_gateway.errors import ProviderError
from src.classify_gateway.schemas.provider import AuthScheme, ProviderConfig, RequestContentType
from src.classify_gateway.schemas.upstream import RawProviderResponse, ResponseShape

logger = logging.getLogger(__name__)

FORM_FIELD = "image"


def auth_headers(config: ProviderConfig) -> dict[str, str]:
    """Return the header carrying *config*'s credential."""
    secret = config.credential.get_secret_value()
    if config.auth_scheme is AuthScheme.BEARER_TOKEN:
        return {"Authorization": f"Bearer {secret}"}
    return {"Prediction-Key": secret}


def upstream_error_message(provider: str, response: httpx.Response) -> str:
    """Pick the most useful error text out of a non-2xx upstream reply."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, str) and error:
            return error
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(body.get("message"), str) and body["message"]:
            return body["message"]

    return f"{provider} returned HTTP {response.status_code}"


class ProviderAdapter(ABC):
    """Sends one image to one provider and returns its decoded reply."""

    response_shape: ResponseShape

    def __init__(self, config: ProviderConfig, client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = client

    @property
    def provider(self) -> str:
        return self.config.id.value

    @abstractmethod
    async def _send(self, image: bytes, filename: str, content_type: str) -> httpx.Response:
        ...

    async def classify(self, image: bytes, filename: str, content_type: str) -> RawProviderResponse:
        logger.info("Sending %s (%d bytes) to %s", filename, len(image), self.provider)
        try:
            response = await self._send(image, filename, content_type)
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"{self.provider} did not respond within {self.config.timeout:g}s",
                provider=self.provider,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"Could not reach {self.provider}: {exc}",
                provider=self.provider,
            ) from exc

        if response.is_error:
            raise ProviderError(upstream_error_message(self.provider, response), provider=self.provider)

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"{self.provider} returned a body that is not JSON",
                provider=self.provider,
            ) from exc

        return RawProviderResponse(provider=self.config.id, shape=self.response_shape, body=body)


class FormUploadAdapter(ProviderAdapter):
    response_shape = ResponseShape.TAG_MAP

    async def _send(self, image: bytes, filename: str, content_type: str) -> httpx.Response:
        return await self.client.post(
            self.config.url,
            headers=auth_headers(self.config),
            files={FORM_FIELD: (filename, image, content_type)},
            timeout=self.config.timeout,
        )


class RawBytesAdapter(ProviderAdapter):
    response_shape = ResponseShape.TAG_LIST

    async def _send(self, image: bytes, filename: str, content_type: str) -> httpx.Response:
        headers = {**auth_headers(self.config), "Content-Type": "application/octet-stream"}
        return await self.client.post(
            self.config.url,
            headers=headers,
            content=image,
            timeout=self.config.timeout,
        )


ADAPTER_VARIANTS: dict[RequestContentType, type[ProviderAdapter]] = {
    RequestContentType.MULTIPART: FormUploadAdapter,
    RequestContentType.OCTET_STREAM: RawBytesAdapter,
}


def select_adapter(config: ProviderConfig, client: httpx.AsyncClient) -> ProviderAdapter:
    """Return the adapter variant that speaks *config*'s dialect."""
    return ADAPTER_VARIANTS[config.content_type](config, client)
