"""Router – provider catalogue."""

from fastapi import APIRouter, Depends

from src.classify_gateway.dependencies import get_provider_registry
from src.classify_gateway.schemas.provider import ProviderInfo, ProviderRegistry, ProvidersResponse

router = APIRouter(prefix="/api", tags=["Providers"])


@router.get("/providers", response_model=ProvidersResponse)
def get_providers(registry: ProviderRegistry = Depends(get_provider_registry)) -> ProvidersResponse:
    """Return every enabled provider with its id and display name."""
    providers = [
        ProviderInfo(
            id=config.id,
            name=config.name,
            content_type=config.content_type,
            auth_scheme=config.auth_scheme,
        )
        for config in registry.providers.values()
    ]
    return ProvidersResponse(default=registry.default, providers=providers)
