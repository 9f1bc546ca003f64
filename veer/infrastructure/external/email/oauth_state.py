"""OAuth state transport: single-use CSRF state in an httpOnly cookie."""

import hmac

from starlette.requests import Request
from starlette.responses import Response

from veer.core.config import get_settings
from veer.core.constants import OAUTH_STATE_COOKIE_PREFIX, OAUTH_STATE_MAX_AGE_SECONDS
from veer.shared.utils.generators import generate_state_token


def state_cookie_name(provider: str) -> str:
    """Cookie name for a provider's state (provider is google or microsoft)."""
    return f"{OAUTH_STATE_COOKIE_PREFIX}{provider}"


def states_match(expected: str | None, received: str | None) -> bool:
    """Exact, constant-time comparison; missing values never match."""
    if not expected or not received:
        return False
    return hmac.compare_digest(expected.encode(), received.encode())


class OAuthStateCookie:
    """Issue, read and clear the OAuth state cookie for one provider."""

    def __init__(self, secure: bool | None = None) -> None:
        self._secure = get_settings().is_production if secure is None else secure

    def issue(self, response: Response, provider: str, state: str | None = None) -> str:
        """Set the provider's state cookie (generating a token when none is given); return the state."""
        state = state or generate_state_token()
        response.set_cookie(
            key=state_cookie_name(provider),
            value=state,
            max_age=OAUTH_STATE_MAX_AGE_SECONDS,
            path="/",
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )
        return state

    @staticmethod
    def read(request: Request, provider: str) -> str | None:
        return request.cookies.get(state_cookie_name(provider))

    def clear(self, response: Response, provider: str) -> None:
        response.delete_cookie(
            key=state_cookie_name(provider),
            path="/",
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )
