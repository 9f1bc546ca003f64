"""Presentation-layer dependency injection (composition root).

Routes depend only on these dependencies, not on infrastructure directly.
"""

from veer.api.v1.dependencies.auth import get_principal, get_principal_optional
from veer.api.v1.dependencies.integration import (
    get_cache,
    get_email_dispatch_service,
    get_http_client,
    get_integration_repo,
    get_integration_service,
    get_oauth_state_cookie,
    get_request_cache,
    get_token_service,
)

__all__ = [
    "get_cache",
    "get_email_dispatch_service",
    "get_http_client",
    "get_integration_repo",
    "get_integration_service",
    "get_oauth_state_cookie",
    "get_principal",
    "get_principal_optional",
    "get_request_cache",
    "get_token_service",
]
