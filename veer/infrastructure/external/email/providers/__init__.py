"""Email senders: Gmail, Outlook, custom SMTP."""

from veer.infrastructure.external.email.providers.gmail_provider import GmailProvider
from veer.infrastructure.external.email.providers.oauth_base import OAuthEmailProvider
from veer.infrastructure.external.email.providers.outlook_provider import OutlookProvider
from veer.infrastructure.external.email.providers.smtp_provider import SmtpProvider

__all__ = [
    "GmailProvider",
    "OAuthEmailProvider",
    "OutlookProvider",
    "SmtpProvider",
]
