"""ORM models. Import here so Alembic autogenerate sees every table."""

from veer.infrastructure.persistence.models.integration import Integration

__all__ = ["Integration"]
