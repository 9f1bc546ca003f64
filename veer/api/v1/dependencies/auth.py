"""Principal resolution from the identity provider's JWT (composition root)."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from veer.application.dtos.integration import Principal
from veer.core.constants import SESSION_COOKIE_NAME
from veer.infrastructure.security.jwt import verify_token

_http_bearer = HTTPBearer(auto_error=False)


async def get_principal_optional(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
) -> Principal | None:
    """Return the caller from the Bearer token (or session cookie) if valid; else None.

    The cookie is only consulted when no Authorization header is sent, so
    browser redirects (OAuth callback) can be authenticated.
    """
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    try:
        payload = verify_token(token)
    except ValueError:
        return None
    email = payload.get("email")
    return Principal(user_id=str(payload["sub"]), email=str(email) if email else None)


async def get_principal(
    principal: Annotated[Principal | None, Depends(get_principal_optional)],
) -> Principal:
    """Return the caller; raise 401 if missing or invalid."""
    if principal is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal
