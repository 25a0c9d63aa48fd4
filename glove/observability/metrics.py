"""Prometheus metrics for agent requests, tool calls and compactions.

This module owns every metric the runtime exports. Metrics are registered on
the default prometheus_client registry; expose them with ``metrics()`` from
whatever HTTP surface hosts the agent.
"""

import asyncio
from time import monotonic
from types import TracebackType
from typing import NamedTuple

import prometheus_client

from glove.core.errors import AbortError


class AgentMetricsLabels(NamedTuple):
    agent: str


class ToolMetricsLabels(NamedTuple):
    agent: str
    tool_name: str


BUCKETS = (
    # log spaced, 3 per decade
    0.001,  # 1 ms
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    50,
    100,
    float("inf"),
)


def setup_metrics_factory(registry, name, documentation, labelnames):
    """Create a Prometheus histogram with standard bucket configuration.

    Args:
        registry: Prometheus registry to register the metric with
        name: Metric name (e.g., "glove_tool_call_duration_seconds")
        documentation: Human-readable metric description
        labelnames: Tuple of label names for the histogram

    Returns:
        Configured Prometheus Histogram instance
    """
    return prometheus_client.Histogram(
        name=name,
        documentation=documentation,
        labelnames=labelnames,
        registry=registry,
        buckets=BUCKETS,
    )


request_histogram = setup_metrics_factory(
    prometheus_client.REGISTRY,
    name="glove_request_duration_seconds",
    documentation="Agent request duration (seconds)",
    labelnames=AgentMetricsLabels._fields,
)
request_counter = prometheus_client.Counter(
    "glove_requests_total",
    "Agent requests by outcome",
    labelnames=(*AgentMetricsLabels._fields, "outcome"),
)
tool_histogram = setup_metrics_factory(
    prometheus_client.REGISTRY,
    name="glove_tool_call_duration_seconds",
    documentation="Tool call duration (seconds)",
    labelnames=ToolMetricsLabels._fields,
)
tool_counter = prometheus_client.Counter(
    "glove_tool_calls_total",
    "Tool calls by result status",
    labelnames=(*ToolMetricsLabels._fields, "status"),
)
token_counter = prometheus_client.Counter(
    "glove_model_tokens_total",
    "Model tokens consumed",
    labelnames=("agent", "model", "direction"),
)
compaction_counter = prometheus_client.Counter(
    "glove_compactions_total",
    "History compactions performed",
    labelnames=AgentMetricsLabels._fields,
)


def record_tool_call(labels: ToolMetricsLabels, duration: float, status: str = "success") -> None:
    """Record one finished tool call.

    Args:
        labels: Agent and tool the call belongs to
        duration: Wall time of the call in seconds, permission prompt included
        status: Result status ("success", "error" or "aborted")
    """
    tool_histogram.labels(*labels).observe(duration)
    tool_counter.labels(*labels, str(status)).inc()


def record_agent_tokens(
    agent: str,
    model_name: str | None,
    input_tokens: int,
    output_tokens: int,
) -> None:
    model = model_name or "unknown"
    if input_tokens:
        token_counter.labels(agent, model, "input").inc(input_tokens)
    if output_tokens:
        token_counter.labels(agent, model, "output").inc(output_tokens)


def record_compaction(agent: str) -> None:
    compaction_counter.labels(agent).inc()


class collect_agent_metrics:
    """Time an agent request and count its outcome.

    Usage:
        ```
        async with collect_agent_metrics(AgentMetricsLabels("glove")):
            await agent.ask(message)
        ```
    Exceptions are never suppressed.
    """

    def __init__(self, labels: AgentMetricsLabels) -> None:
        self.labels = labels
        self._start_time = 0.0

    async def __aenter__(self) -> "collect_agent_metrics":
        self._start_time = monotonic()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is None:
            outcome = "success"
        elif isinstance(exc, (AbortError, asyncio.CancelledError)):
            outcome = "aborted"
        else:
            outcome = "error"
        request_histogram.labels(*self.labels).observe(monotonic() - self._start_time)
        request_counter.labels(*self.labels, outcome).inc()
        return False


def metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output for a /metrics endpoint.

    Returns:
        Tuple of (metrics_body, content_type) for the HTTP response
    """
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
