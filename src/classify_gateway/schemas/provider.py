from enum import Enum

from pydantic import BaseModel, ConfigDict, SecretStr

from src.classify_gateway.errors import UnknownProvider


class ProviderId(str, Enum):
    ENDPOINT1 = "endpoint1"
    ENDPOINT2 = "endpoint2"
    ENDPOINT3 = "endpoint3"


class RequestContentType(str, Enum):
    MULTIPART = "multipart"
    OCTET_STREAM = "raw-octet-stream"


class AuthScheme(str, Enum):
    BEARER_TOKEN = "bearer-token"
    PREDICTION_KEY = "prediction-key"


class ProviderConfig(BaseModel):
    """One upstream classification endpoint, fixed at deployment."""

    model_config = ConfigDict(frozen=True)

    id: ProviderId
    name: str
    url: str
    content_type: RequestContentType
    auth_scheme: AuthScheme
    credential: SecretStr
    timeout: float


class ProviderRegistry(BaseModel):
    """Enabled providers keyed by id, plus the one used when none is requested."""

    model_config = ConfigDict(frozen=True)

    providers: dict[ProviderId, ProviderConfig]
    default: ProviderId

    def resolve(self, provider_id: str | None) -> ProviderConfig:
        """Return the config for *provider_id*, falling back to the default."""
        if not provider_id:
            return self.providers[self.default]
        try:
            key = ProviderId(provider_id)
        except ValueError:
            raise UnknownProvider(provider=provider_id) from None
        config = self.providers.get(key)
        if config is None:
            raise UnknownProvider(provider=provider_id)
        return config


class ProviderInfo(BaseModel):
    """Single provider entry returned by /api/providers."""
    id: ProviderId
    name: str
    content_type: RequestContentType
    auth_scheme: AuthScheme


class ProvidersResponse(BaseModel):
    """Response schema for GET /api/providers."""
    default: ProviderId
    providers: list[ProviderInfo]
