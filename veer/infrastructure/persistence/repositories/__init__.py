"""Repositories (SQLAlchemy implementations of the application ports)."""

from veer.infrastructure.persistence.repositories.base import BaseRepository
from veer.infrastructure.persistence.repositories.integration_repo import (
    IntegrationRepository,
)

__all__ = ["BaseRepository", "IntegrationRepository"]
