"""
Observability components.

Provides structured logging and metrics collection.
"""

from .logging import (
    ContextualLoggerAdapter,
    clear_container_context,
    clear_correlation_id,
    container_context,
    get_correlation_id,
    get_logger,
    get_logging_context,
    set_container_context,
    set_correlation_id,
)
from .metrics import (
    MetricsCollector,
    OperationStats,
    get_metrics_collector,
    record_operation,
    timed_operation,
    track_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationStats",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    "track_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_container_context",
    "clear_container_context",
    "container_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
]
