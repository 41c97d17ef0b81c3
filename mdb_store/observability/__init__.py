"""
Observability components.

Provides contextual logging, metrics collection and health checks.
"""

from .health import HealthCheckResult, HealthStatus, check_connection_health
from .logging import (
    ContextualLoggerAdapter,
    clear_correlation_id,
    collection_context,
    get_correlation_id,
    get_logger,
    get_logging_context,
    set_correlation_id,
)
from .metrics import (
    MetricsCollector,
    OperationMetrics,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "collection_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
    # Health
    "HealthStatus",
    "HealthCheckResult",
    "check_connection_health",
]
