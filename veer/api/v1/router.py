"""API router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from veer.api.v1.dependencies (no manual repo/service construction).
"""

from fastapi import APIRouter

from veer.api.v1.endpoints import health, integrations, oauth_callback

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(
    integrations.router, prefix="/integrations/email", tags=["integrations"]
)

# Mounted at /api/auth/oauth: the path is registered as the provider redirect URI.
oauth_router = APIRouter()
oauth_router.include_router(oauth_callback.router, tags=["oauth"])
