"""Shared input rules used by both the API schemas and the SMTP sender."""

import re

# RFC 1123 hostname: dot-separated labels of 1-63 alnum/hyphen chars, no edge hyphens.
HOSTNAME_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def is_valid_hostname(value: str) -> bool:
    return HOSTNAME_RE.fullmatch(value) is not None
