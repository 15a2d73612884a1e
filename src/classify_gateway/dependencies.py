"""Request dependencies backed by state built in the application lifespan."""

import httpx
from fastapi import Request

from src.classify_gateway.schemas.provider import ProviderRegistry


def get_provider_registry(request: Request) -> ProviderRegistry:
    return request.app.state.provider_registry


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client
