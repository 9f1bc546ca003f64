"""JWT verification for the identity provider's bearer tokens.

The identity provider signs tokens with SECRET_KEY; sub is the user id and
email the user's address. Uses veer.core.config for secret and algorithm.
"""

from datetime import timedelta
from typing import Any, cast

from jose import JWTError, jwt

from veer.core.config import get_settings
from veer.shared.utils.datetime import utc_now

DEFAULT_TOKEN_TTL = timedelta(hours=1)


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT with the given claims (used by the identity provider and tests).

    Args:
        data: Claims to encode (sub, email).
        expires_delta: Optional TTL; defaults to one hour.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    to_encode = data.copy()
    to_encode["exp"] = utc_now() + (expires_delta or DEFAULT_TOKEN_TTL)
    encoded = jwt.encode(
        to_encode,
        settings.secret_key.get_secret_value(),
        algorithm=settings.algorithm,
    )
    return cast(str, encoded)


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT. Returns the payload.

    Enforces presence of exp and sub.

    Raises:
        ValueError: If token is invalid, expired, or missing required claims.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if not payload.get("sub"):
        raise ValueError("Token missing required claim: sub")
    return payload
