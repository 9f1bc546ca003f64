"""create_integration_table

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-03-02 10:14:27.512044

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

integration_type = sa.Enum("EMAIL", "CALENDAR", "TWILIO", name="integration_type")
email_provider = sa.Enum("GMAIL", "OUTLOOK", "CUSTOM", name="email_provider")
integration_status = sa.Enum(
    "ACTIVE", "INACTIVE", "ERROR", "EXPIRED", name="integration_status"
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "integration",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("type", integration_type, nullable=False),
        sa.Column("provider", email_provider, nullable=False),
        sa.Column(
            "status",
            integration_status,
            server_default="INACTIVE",
            nullable=False,
        ),
        sa.Column("email_address", sa.String(), nullable=True),
        sa.Column("connected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("oauth_token", sa.Text(), nullable=True),
        sa.Column("oauth_refresh_token", sa.Text(), nullable=True),
        sa.Column("oauth_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("smtp_host", sa.String(), nullable=True),
        sa.Column("smtp_port", sa.Integer(), nullable=True),
        sa.Column("smtp_user", sa.String(), nullable=True),
        sa.Column("smtp_password", sa.Text(), nullable=True),
        sa.Column("smtp_from_email", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "type", "provider", name="uq_integration_user_type_provider"
        ),
    )
    op.create_index("ix_integration_user_id", "integration", ["user_id"])
    op.create_index("ix_integration_status", "integration", ["status"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_integration_status", table_name="integration")
    op.drop_index("ix_integration_user_id", table_name="integration")
    op.drop_table("integration")
    integration_status.drop(op.get_bind(), checkfirst=True)
    email_provider.drop(op.get_bind(), checkfirst=True)
    integration_type.drop(op.get_bind(), checkfirst=True)
