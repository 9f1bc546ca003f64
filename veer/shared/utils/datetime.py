"""Timezone-aware UTC helpers. Token expiry and connection times are always UTC."""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Current time as an aware UTC datetime (patched in tests to move the clock)."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize to aware UTC; naive values (older rows, JS ISO strings) are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def expires_within(expires_at: datetime | None, window: timedelta) -> bool:
    """True when expires_at is known and falls before now + window.

    An unknown expiry is treated as still valid; the provider rejects the
    token on use if it is not.
    """
    expires_at = ensure_utc(expires_at)
    if expires_at is None:
        return False
    return expires_at - utc_now() < window
