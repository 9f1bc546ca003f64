"""OAuth redirect target: GET /api/auth/oauth/callback/{provider}.

Registered outside /api/v1 because the path is part of the redirect URI
configured with Google and Microsoft. Always answers with a redirect to the
integrations page carrying ?success=connected or ?error=<message>.
"""

from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from veer.api.v1.dependencies import (
    get_integration_service,
    get_oauth_state_cookie,
    get_principal_optional,
)
from veer.application.dtos.integration import OperationResult, Principal
from veer.core.config import get_settings
from veer.core.constants import INTEGRATIONS_PAGE_PATH
from veer.infrastructure.external.email.oauth_state import OAuthStateCookie
from veer.infrastructure.services import IntegrationService
from veer.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

CALLBACK_FAILED_MESSAGE = "Failed to connect account. Please try again."

router = APIRouter()


def integrations_redirect_url(result: OperationResult) -> str:
    """Dashboard URL reporting the outcome of the OAuth flow."""
    query = {"success": "connected"} if result.success else {"error": result.error or "Unknown error"}
    return f"{get_settings().app_url}{INTEGRATIONS_PAGE_PATH}?{urlencode(query)}"


@router.get("/callback/{provider}", response_class=RedirectResponse, status_code=307)
async def oauth_callback(
    request: Request,
    provider: str,
    principal: Annotated[Principal | None, Depends(get_principal_optional)],
    service: Annotated[IntegrationService, Depends(get_integration_service)],
    state_cookie: Annotated[OAuthStateCookie, Depends(get_oauth_state_cookie)],
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
    error_description: Annotated[str | None, Query()] = None,
) -> RedirectResponse:
    """Finish the provider OAuth flow and send the browser back to the dashboard."""
    expected_state = state_cookie.read(request, provider)
    result = OperationResult.fail(CALLBACK_FAILED_MESSAGE)
    try:
        result = await service.complete_oauth_connect(
            principal,
            provider,
            code=code,
            state=state,
            expected_state=expected_state,
            error=error,
            error_description=error_description,
        )
    except Exception:
        logger.exception("OAuth callback for %s failed unexpectedly", provider)
    finally:
        response = RedirectResponse(url=integrations_redirect_url(result), status_code=307)
        state_cookie.clear(response, provider)
    return response
