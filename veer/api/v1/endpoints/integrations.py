"""Email integrations API: list, connect (OAuth or SMTP), test, toggle, disconnect.

Every route acts on the authenticated caller's own integrations. Operation
failures come back as {"success": false, "error": ...} with status 400.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from veer.api.v1.dependencies import (
    get_integration_service,
    get_oauth_state_cookie,
    get_principal,
)
from veer.application.dtos.integration import OperationResult, Principal
from veer.core.limiter import limit_sends, limit_writes
from veer.infrastructure.external.email.oauth_state import OAuthStateCookie
from veer.infrastructure.services import IntegrationService
from veer.schemas.integration import (
    EmailIntegrationsResponse,
    OAuthStartResponse,
    OperationResponse,
    SmtpConfigInput,
    ToggleRequest,
)

router = APIRouter()


def _respond(result: OperationResult) -> OperationResponse | JSONResponse:
    body = OperationResponse(
        success=result.success,
        message=result.message,
        error=result.error,
        details=result.details,
    )
    if result.success:
        return body
    return JSONResponse(status_code=400, content=body.model_dump())


@router.get("", response_model=EmailIntegrationsResponse)
async def list_email_integrations(
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[IntegrationService, Depends(get_integration_service)],
):
    """Connection summary for gmail, outlook and custom SMTP (no secrets)."""
    listing = await service.list_email_integrations(principal)
    return EmailIntegrationsResponse.model_validate(listing.to_dict())


@router.post("/smtp", response_model=OperationResponse)
@limit_sends
async def connect_smtp(
    request: Request,
    body: SmtpConfigInput,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[IntegrationService, Depends(get_integration_service)],
):
    """Store custom SMTP settings, send a test email, and activate on success."""
    return _respond(await service.connect_smtp(principal, body.to_settings()))


@router.put("/smtp", response_model=OperationResponse)
@limit_sends
async def update_smtp(
    request: Request,
    body: SmtpConfigInput,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[IntegrationService, Depends(get_integration_service)],
):
    """Replace custom SMTP settings and re-test them."""
    return _respond(await service.update_smtp(principal, body.to_settings()))


@router.post(
    "/{provider}/connect",
    response_model=OAuthStartResponse,
    responses={400: {"model": OperationResponse}},
)
@limit_writes
async def start_oauth_connect(
    request: Request,
    response: Response,
    provider: str,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[IntegrationService, Depends(get_integration_service)],
    state_cookie: Annotated[OAuthStateCookie, Depends(get_oauth_state_cookie)],
):
    """Return the provider authorization URL and set the state cookie."""
    result = service.start_oauth_connect(provider)
    if not result.success or not result.data or not result.redirect_url:
        return _respond(result)
    state_cookie.issue(response, result.data["oauth_provider"], result.data["state"])
    return OAuthStartResponse(
        authorization_url=result.redirect_url, provider=result.data["oauth_provider"]
    )


@router.post("/{provider}/test", response_model=OperationResponse)
@limit_sends
async def test_integration(
    request: Request,
    provider: str,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[IntegrationService, Depends(get_integration_service)],
):
    """Send a test email through the provider to the caller's address."""
    return _respond(await service.test_integration(principal, provider))


@router.post("/{provider}/toggle", response_model=OperationResponse)
@limit_writes
async def toggle_integration(
    request: Request,
    provider: str,
    body: ToggleRequest,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[IntegrationService, Depends(get_integration_service)],
):
    """Enable (as the only active provider) or disable a connected provider."""
    return _respond(await service.toggle(principal, provider, body.enabled))


@router.delete("/{provider}", response_model=OperationResponse)
@limit_writes
async def disconnect_integration(
    request: Request,
    provider: str,
    principal: Annotated[Principal, Depends(get_principal)],
    service: Annotated[IntegrationService, Depends(get_integration_service)],
):
    """Delete an OAuth integration and its stored tokens."""
    return _respond(await service.disconnect(principal, provider))
