"""Liveness and readiness probes."""

from fastapi import APIRouter, Request

from veer.core.config import get_settings
from veer.schemas.health import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    return HealthResponse(service=get_settings().app_name)


@router.get("/ready", response_model=ReadinessResponse)
def readiness_check(request: Request) -> ReadinessResponse:
    """Report cache state for operators; a missing cache does not make the service unready."""
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        return ReadinessResponse(cache="disabled")
    return ReadinessResponse(cache="connected" if cache.is_available() else "unavailable")
