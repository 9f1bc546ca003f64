"""Shared utilities: datetime, generators and input validation."""

from veer.shared.utils.datetime import ensure_utc, expires_within, utc_now
from veer.shared.utils.generators import generate_cuid, generate_state_token
from veer.shared.utils.validation import is_valid_hostname

__all__ = [
    "ensure_utc",
    "expires_within",
    "generate_cuid",
    "generate_state_token",
    "is_valid_hostname",
    "utc_now",
]
