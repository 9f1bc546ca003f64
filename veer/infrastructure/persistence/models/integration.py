"""Integration ORM model. One row per (user, integration type, provider)."""

from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType
from veer.infrastructure.persistence.database import Base
from veer.infrastructure.persistence.models.mixins import CuidMixin, TimestampMixin


class Integration(CuidMixin, TimestampMixin, Base):
    """Third-party integration for a user. Table: integration.

    Secrets (oauth_token, oauth_refresh_token, smtp_password) hold cipher
    envelopes, never plaintext. oauth_token_expires_at mirrors the expiry in
    the encrypted token bundle so it can be queried.
    """

    __tablename__ = "integration"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "type", "provider", name="uq_integration_user_type_provider"
        ),
    )

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    type: Mapped[IntegrationType] = mapped_column(
        Enum(IntegrationType, name="integration_type"), nullable=False
    )
    provider: Mapped[EmailProvider] = mapped_column(
        Enum(EmailProvider, name="email_provider"), nullable=False
    )
    status: Mapped[IntegrationStatus] = mapped_column(
        Enum(IntegrationStatus, name="integration_status"),
        nullable=False,
        default=IntegrationStatus.INACTIVE,
        index=True,
    )
    email_address: Mapped[str | None] = mapped_column(String, nullable=True)
    connected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    oauth_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    oauth_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    oauth_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    smtp_host: Mapped[str | None] = mapped_column(String, nullable=True)
    smtp_port: Mapped[int | None] = mapped_column(Integer, nullable=True)
    smtp_user: Mapped[str | None] = mapped_column(String, nullable=True)
    smtp_password: Mapped[str | None] = mapped_column(Text, nullable=True)
    smtp_from_email: Mapped[str | None] = mapped_column(String, nullable=True)
