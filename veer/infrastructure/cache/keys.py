"""Cache tag and key builders. Single place for the key format.

A tag names a group of cached reads that one mutation invalidates; the
integration listing is cached directly under its tag.
"""

from veer.core.constants import CACHE_PREFIX_USER_INTEGRATIONS, CACHE_TAG_SEP


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains whitespace.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value cannot be used in a key.
    """
    if not value or any(ch.isspace() for ch in value):
        raise ValueError(f"Cache key component {name!r} must be a non-empty token")


def user_integrations_tag(user_id: str) -> str:
    """Tag for everything derived from a user's integrations (user-integrations-{user_id})."""
    _validate_key_component(user_id, "user_id")
    return f"{CACHE_PREFIX_USER_INTEGRATIONS}{CACHE_TAG_SEP}{user_id}"


def email_integrations_key(user_id: str) -> str:
    """Cache key for the email integration listing."""
    return user_integrations_tag(user_id)
