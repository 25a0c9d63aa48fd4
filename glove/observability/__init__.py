"""Observability infrastructure module.

This module provides monitoring and error tracking:
- Structured logging with session IDs
- Prometheus metrics
- Bugsnag error reporting
"""

from glove.observability.errors import initialize_bugsnag
from glove.observability.logging import configure_logging, get_logger, session_id_ctx
from glove.observability.metrics import (
    BUCKETS,
    AgentMetricsLabels,
    ToolMetricsLabels,
    collect_agent_metrics,
    metrics,
)

__all__ = [
    "BUCKETS",
    "AgentMetricsLabels",
    "ToolMetricsLabels",
    "collect_agent_metrics",
    "configure_logging",
    "get_logger",
    "initialize_bugsnag",
    "metrics",
    "session_id_ctx",
]
