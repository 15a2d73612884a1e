"""Vehicle classification gateway – FastAPI application entry-point."""

from contextlib import asynccontextmanager
import logging
from collections.abc import AsyncIterator

import httpx
import uvicorn
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from src.classify_gateway.config import load_provider_registry, settings
from src.classify_gateway.errors import register_exception_handlers
from src.classify_gateway.router import classify, health, providers

# Configure logging from settings
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Lifespan: validate providers and open the upstream client on startup,
# close it on shutdown
# ──────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("🚀 Loading provider configuration …")
    app.state.provider_registry = load_provider_registry(settings)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    app.state.http_client = httpx.AsyncClient(timeout=settings.upstream_timeout)
    logger.info(
        "✅ %d provider(s) ready, default %s.",
        len(app.state.provider_registry.providers),
        app.state.provider_registry.default.value,
    )
    try:
        yield
    finally:
        logger.info("🛑 Shutting down – closing upstream client …")
        await app.state.http_client.aclose()


# ──────────────────────────────────────────────
# Application factory
# ──────────────────────────────────────────────
app = FastAPI(
    title="Vehicle Classification Gateway",
    description="Classify vehicle photos through interchangeable upstream providers.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS middleware (configured from environment variables) ──
app.add_middleware(
    middleware_class=CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_methods_list,
    allow_headers=settings.cors_headers_list,
)

logger.info("CORS configured with origins: %s", settings.cors_origins_list)

register_exception_handlers(app)

# ── register routers ──
app.get('/')(lambda: {"message": "Vehicle classification gateway. POST images to /api/classify."})
app.include_router(health.router)
app.include_router(providers.router)
app.include_router(classify.router)


def run() -> None:
    """Serve the gateway with uvicorn (``classify-gateway`` console script)."""
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
