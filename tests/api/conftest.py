"""HTTP test fixtures: the app built by create_app(), an ASGI client, auth headers.

The integration service is overridden with one over the in-memory repository,
so API tests need neither Postgres nor real providers.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from veer.api.v1.dependencies import get_integration_service
from veer.core.limiter import limiter
from veer.infrastructure.security.jwt import create_access_token
from veer.infrastructure.services import IntegrationService
from veer.main import create_app


@pytest.fixture
def oauth_driver() -> MagicMock:
    """OAuth driver stub: fixed authorization URL, exchange configured per test."""
    driver = MagicMock()
    driver.build_authorization_url.side_effect = (
        lambda state: f"https://accounts.google.com/o/oauth2/v2/auth?state={state}"
    )
    driver.exchange_code = AsyncMock()
    return driver


@pytest.fixture
def api_service(repo, dispatcher, cipher, cache, oauth_driver) -> IntegrationService:
    return IntegrationService(
        repo, dispatcher, cipher, cache=cache, driver_factory=lambda provider: oauth_driver
    )


@pytest.fixture
def app(api_service, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(limiter, "enabled", False)
    application = create_app()
    application.dependency_overrides[get_integration_service] = lambda: api_service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Bearer headers for user-1 (owner@example.com)."""
    token = create_access_token({"sub": "user-1", "email": "owner@example.com"})
    return {"Authorization": f"Bearer {token}"}
