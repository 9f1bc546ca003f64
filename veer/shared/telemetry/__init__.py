"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from veer.shared.telemetry.logging import get_logger, setup_logging
from veer.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "add_span_attributes",
    "get_logger",
    "setup_logging",
    "traced",
]
