"""Router – vehicle image classification."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

import httpx
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from src.classify_gateway.config import settings
from src.classify_gateway.dependencies import get_http_client, get_provider_registry
from src.classify_gateway.errors import ClientDisconnected, GatewayError, InternalError, MissingFile
from src.classify_gateway.schemas.classify import ClassifyResponse, ErrorResponse
from src.classify_gateway.schemas.provider import ProviderRegistry
from src.classify_gateway.services.prediction_service import normalize
from src.classify_gateway.services.provider_service import select_adapter
from src.classify_gateway.services.storage_service import staged_upload, validate_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Classification"])

T = TypeVar("T")


async def cancel_on_disconnect(request: Request, awaitable: Awaitable[T], provider: str) -> T:
    """Await *awaitable*, cancelling it if the client goes away first."""
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=settings.disconnect_poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                raise ClientDisconnected(provider=provider)
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/classify",
    response_model=ClassifyResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def classify_image(
    request: Request,
    image: UploadFile | None = File(None),
    endpoint: str | None = Query(None, description="Provider id, e.g. endpoint1"),
    endpoint_field: str | None = Form(None, alias="endpoint"),
    registry: ProviderRegistry = Depends(get_provider_registry),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> ClassifyResponse:
    """
    Classify an uploaded vehicle photo with the selected provider.

    Parameters
    ----------
    image    : UploadFile – JPEG, PNG or GIF image (form field ``image``).
    endpoint : str        – provider id; query parameter or form field.
                            Defaults to the configured default provider.

    Returns the top prediction and every tag sorted by probability.
    """
    # ── validate input ──
    if image is None:
        raise MissingFile()

    provider = registry.resolve(endpoint or endpoint_field)
    provider_id = provider.id.value

    # ── stage, call upstream, normalise ──
    try:
        content = await image.read()
        mime = validate_upload(content, image.content_type)

        with staged_upload(content, image.filename, mime) as staged:
            adapter = select_adapter(provider, client)
            raw = await cancel_on_disconnect(
                request,
                adapter.classify(content, staged.filename, staged.content_type),
                provider_id,
            )
            result = normalize(raw)
    except GatewayError:
        raise
    except Exception as exc:
        logger.exception("Unexpected failure while classifying with %s", provider_id)
        raise InternalError(provider=provider_id) from exc

    logger.info(
        "%s classified %s as %s (%.4f)",
        provider_id, image.filename, result.prediction.category, result.prediction.probability,
    )
    return ClassifyResponse(prediction=result.prediction, predictions=result.predictions)
