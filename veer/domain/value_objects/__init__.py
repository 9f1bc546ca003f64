"""Domain value objects (immutable, compared by value)."""

from veer.domain.value_objects.token_bundle import TokenBundle

__all__ = ["TokenBundle"]
