"""ID and token generators (CUID primary keys, OAuth state tokens)."""

import secrets

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2) for primary keys."""
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_state_token() -> str:
    """Return a CSRF state token: 32 random bytes, hex-encoded (64 chars)."""
    return secrets.token_hex(32)
