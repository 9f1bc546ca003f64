"""Application layer: ports and DTOs.

Depends only on domain definitions (DIP). Infrastructure implements the
interfaces (integration repository, cache invalidation).
"""

from veer.application.dtos import OperationResult, Principal
from veer.application.interfaces import ICacheInvalidator, IIntegrationRepository

__all__ = [
    "ICacheInvalidator",
    "IIntegrationRepository",
    "OperationResult",
    "Principal",
]
