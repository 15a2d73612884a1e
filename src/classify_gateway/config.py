import logging
from pathlib import Path
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.classify_gateway.errors import ConfigurationError
from src.classify_gateway.schemas.provider import (
    AuthScheme,
    ProviderConfig,
    ProviderId,
    ProviderRegistry,
    RequestContentType,
)

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────
# Paths
# ──────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent          # src/


# ──────────────────────────────────────────────
# Settings (from environment variables / .env)
# ──────────────────────────────────────────────
class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # CORS settings
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"
    cors_allow_credentials: bool = True
    cors_allow_methods: str = "GET,POST,OPTIONS"
    cors_allow_headers: str = "*"

    # Upstream providers
    endpoint1_url: str = (
        "https://ai-vehicle-id-202411181207.australiaeast.inference.ml.azure.com/predict"
    )
    endpoint1_key: SecretStr | None = None
    endpoint2_url: str = (
        "https://mrlevel05fsdmission01customvision-prediction.cognitiveservices.azure.com"
        "/customvision/v3.0/Prediction/11b2df83-5803-4460-a114-7ab4050aacfb"
        "/classify/iterations/MR_VEHICLE_AI_ID_04/image"
    )
    endpoint2_key: SecretStr | None = None
    endpoint3_url: str = (
        "https://mrlevel05fsdmission01customvision-prediction.cognitiveservices.azure.com"
        "/customvision/v3.0/Prediction/396ef7f4-2ec0-4bd5-990d-af98116abfbe"
        "/classify/iterations/MR_VEHICLE_AI_ID_01/image"
    )
    endpoint3_key: SecretStr | None = None
    enabled_providers: str = "endpoint1,endpoint2,endpoint3"
    default_provider: str = "endpoint1"
    upstream_timeout: float = 30.0
    disconnect_poll_interval: float = 0.5

    # Upload settings
    upload_dir: Path = BASE_DIR / "uploads"
    max_upload_size: int = 10 * 1024 * 1024  # 10 MB
    allowed_content_types: str = "image/jpeg,image/png,image/gif"
    verify_image_content: bool = False

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    host: str = "0.0.0.0"
    port: int = 3111

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def cors_methods_list(self) -> list[str]:
        """Parse CORS methods from comma-separated string."""
        if self.cors_allow_methods == "*":
            return ["*"]
        return [method.strip() for method in self.cors_allow_methods.split(",")]

    @property
    def cors_headers_list(self) -> list[str]:
        """Parse CORS headers from comma-separated string."""
        if self.cors_allow_headers == "*":
            return ["*"]
        return [header.strip() for header in self.cors_allow_headers.split(",")]

    @property
    def enabled_providers_list(self) -> list[str]:
        """Parse enabled provider ids from comma-separated string."""
        return [pid.strip() for pid in self.enabled_providers.split(",") if pid.strip()]

    @property
    def allowed_content_types_set(self) -> set[str]:
        """Parse allowed MIME types from comma-separated string."""
        return {ct.strip().lower() for ct in self.allowed_content_types.split(",") if ct.strip()}


# Global settings instance
settings = Settings()

# ──────────────────────────────────────────────
# Provider catalogue
#   key   → provider id (used as the ``endpoint`` query param)
#   value → dict with:
#       - name: display name shown by the form UI
#       - content_type: how the image is sent upstream
#       - auth_scheme: which header carries the credential
#       - url_setting / key_setting: Settings fields holding URL and secret
# ──────────────────────────────────────────────
PROVIDER_CATALOGUE: dict[ProviderId, dict] = {
    ProviderId.ENDPOINT1: {
        "name": "Model 1 (Azure ML)",
        "content_type": RequestContentType.MULTIPART,
        "auth_scheme": AuthScheme.BEARER_TOKEN,
        "url_setting": "endpoint1_url",
        "key_setting": "endpoint1_key",
    },
    ProviderId.ENDPOINT2: {
        "name": "Model 2 (Custom Vision, iteration 04)",
        "content_type": RequestContentType.OCTET_STREAM,
        "auth_scheme": AuthScheme.PREDICTION_KEY,
        "url_setting": "endpoint2_url",
        "key_setting": "endpoint2_key",
    },
    ProviderId.ENDPOINT3: {
        "name": "Model 3 (Custom Vision, iteration 01)",
        "content_type": RequestContentType.OCTET_STREAM,
        "auth_scheme": AuthScheme.PREDICTION_KEY,
        "url_setting": "endpoint3_url",
        "key_setting": "endpoint3_key",
    },
}


def load_provider_registry(config: Settings) -> ProviderRegistry:
    """Build the immutable provider registry, failing fast on bad configuration.

    Every enabled provider must be a known id with a non-empty URL and
    credential, and the default provider must be among the enabled ones.
    """
    providers: dict[ProviderId, ProviderConfig] = {}
    for raw_id in config.enabled_providers_list:
        try:
            provider_id = ProviderId(raw_id)
        except ValueError:
            raise ConfigurationError(f"Unknown provider in ENABLED_PROVIDERS: {raw_id!r}") from None

        meta = PROVIDER_CATALOGUE[provider_id]
        url: str = getattr(config, meta["url_setting"])
        credential: SecretStr | None = getattr(config, meta["key_setting"])

        if not url:
            raise ConfigurationError(f"{meta['url_setting'].upper()} is empty for {raw_id}")
        if credential is None or not credential.get_secret_value():
            raise ConfigurationError(
                f"{meta['key_setting'].upper()} must be set to enable {raw_id}",
            )

        providers[provider_id] = ProviderConfig(
            id=provider_id,
            name=meta["name"],
            url=url,
            content_type=meta["content_type"],
            auth_scheme=meta["auth_scheme"],
            credential=credential,
            timeout=config.upstream_timeout,
        )
        logger.info("Provider %s configured (%s) → %s", raw_id, meta["auth_scheme"].value, url)

    if not providers:
        raise ConfigurationError("ENABLED_PROVIDERS does not name any provider")

    try:
        default = ProviderId(config.default_provider)
    except ValueError:
        default = None
    if default not in providers:
        raise ConfigurationError(
            f"DEFAULT_PROVIDER {config.default_provider!r} is not an enabled provider",
        )

    return ProviderRegistry(providers=providers, default=default)
