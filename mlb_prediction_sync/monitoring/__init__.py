"""Monitoring module for structured logging and observability.

Provides structlog configuration (JSON in production, console in development),
correlation IDs for scheduler ticks and HTTP requests, and metrics
dataclasses for the cache and the polling loop.
"""

from mlb_prediction_sync.monitoring.logging import (
    bind_correlation_id,
    configure_logging,
    get_logger,
    unbind_correlation_id,
)
from mlb_prediction_sync.monitoring.metrics import CacheMetrics, SchedulerMetrics

__all__ = [
    "configure_logging",
    "get_logger",
    "bind_correlation_id",
    "unbind_correlation_id",
    "CacheMetrics",
    "SchedulerMetrics",
]
