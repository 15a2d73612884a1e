"""Router – health check."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness probe; also reports how many providers are enabled once started."""
    registry = getattr(request.app.state, "provider_registry", None)
    if registry is None:
        return {"status": "ok"}
    return {"status": "ok", "providers": len(registry.providers)}
