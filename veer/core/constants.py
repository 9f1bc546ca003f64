"""Core constants: cache tags, token lifecycle and OAuth state values.

Single source of truth for literal values shared by services and endpoints.
"""

from datetime import timedelta

# Cache tag prefixes (tag = prefix + CACHE_TAG_SEP + id)
CACHE_PREFIX_USER_INTEGRATIONS = "user-integrations"
CACHE_TAG_SEP = "-"

# Refresh an OAuth access token when it expires within this window.
TOKEN_REFRESH_BUFFER = timedelta(minutes=5)

# OAuth state cookie (CSRF): single use, 10 minute lifetime.
OAUTH_STATE_COOKIE_PREFIX = "oauth_state_"
OAUTH_STATE_MAX_AGE_SECONDS = 600

# Where the OAuth callback sends the browser when done.
INTEGRATIONS_PAGE_PATH = "/dashboard/integrations"

TEST_EMAIL_SUBJECT = "Test Email from Veer"

# Browser session token (same JWT as the Bearer header) for redirect-only routes.
SESSION_COOKIE_NAME = "veer_session"
