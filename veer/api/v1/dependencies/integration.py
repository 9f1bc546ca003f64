"""Integration repository and service dependencies (composition root)."""

from __future__ import annotations

from typing import Annotated

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from veer.infrastructure.cache.post_commit import PostCommitCache
from veer.infrastructure.cache.redis_cache import CacheService
from veer.infrastructure.external.email.factory import EmailProviderFactory
from veer.infrastructure.external.email.oauth_state import OAuthStateCookie
from veer.infrastructure.persistence.database import get_db_transactional
from veer.infrastructure.persistence.repositories import IntegrationRepository
from veer.infrastructure.services import (
    EmailDispatchService,
    IntegrationService,
    TokenService,
)


def get_cache(request: Request) -> CacheService | None:
    """Redis cache from app state (None when disabled)."""
    return getattr(request.app.state, "cache", None)


async def get_request_cache(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
    cache: Annotated[CacheService | None, Depends(get_cache)],
) -> PostCommitCache | None:
    """Cache for the request transaction; tag invalidation runs after commit."""
    if cache is None:
        return None
    return PostCommitCache(cache, db)


def get_http_client(request: Request) -> httpx.AsyncClient | None:
    """Shared HTTP client from app state for OAuth and provider API calls."""
    return getattr(request.app.state, "oauth_http_client", None)


def get_oauth_state_cookie() -> OAuthStateCookie:
    """OAuth state cookie issuer/verifier (composition root)."""
    return OAuthStateCookie()


async def get_integration_repo(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> IntegrationRepository:
    """Integration repository for the request transaction."""
    return IntegrationRepository(db)


def get_token_service(
    repo: Annotated[IntegrationRepository, Depends(get_integration_repo)],
    cache: Annotated[PostCommitCache | None, Depends(get_request_cache)],
    http_client: Annotated[httpx.AsyncClient | None, Depends(get_http_client)],
) -> TokenService:
    return TokenService(repo, cache=cache, http_client=http_client)


def get_email_dispatch_service(
    repo: Annotated[IntegrationRepository, Depends(get_integration_repo)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
    http_client: Annotated[httpx.AsyncClient | None, Depends(get_http_client)],
) -> EmailDispatchService:
    """Email dispatch over the provider factory (composition root)."""
    return EmailDispatchService(
        repo, EmailProviderFactory(token_service, http_client=http_client)
    )


def get_integration_service(
    repo: Annotated[IntegrationRepository, Depends(get_integration_repo)],
    dispatcher: Annotated[EmailDispatchService, Depends(get_email_dispatch_service)],
    cache: Annotated[PostCommitCache | None, Depends(get_request_cache)],
    http_client: Annotated[httpx.AsyncClient | None, Depends(get_http_client)],
) -> IntegrationService:
    """Email integration lifecycle service (composition root)."""
    return IntegrationService(repo, dispatcher, cache=cache, http_client=http_client)
