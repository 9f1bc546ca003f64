"""Logging setup and logger access for veer modules."""

import logging
import sys

from veer.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Request lines from these libraries can carry OAuth codes and tokens in URLs.
_QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging() -> None:
    """Send logs to stdout at DEBUG (settings.debug) or INFO."""
    level = logging.DEBUG if get_settings().debug else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
