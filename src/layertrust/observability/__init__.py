"""Observability module for layertrust.

Structured logging (structlog) and Prometheus-compatible metrics for
signing, verification and trust store activity.

Example:
    >>> from layertrust.observability import get_logger, get_metrics
    >>> logger = get_logger(__name__)
    >>> logger.info("layertrust.verify.started", layer_hash="sha256:...")
    >>> get_metrics().increment_counter("layertrust_layers_signed_total")
"""

from layertrust.observability.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    is_debug_mode,
    sanitize_for_logging,
)
from layertrust.observability.metrics import (
    MetricsCollector,
    get_metrics,
    reset_metrics,
)

__all__ = [
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "get_metrics",
    "is_debug_mode",
    "reset_metrics",
    "MetricsCollector",
    "sanitize_for_logging",
]
