"""Core: config, constants, and application bootstrap.

Single place for settings and shared constants.
"""

from veer.core.config import get_settings

__all__ = ["get_settings"]
