"""Unit tests for runtime metrics.

This module tests the metrics NamedTuples, recording helpers and the
request context manager.
"""

import asyncio

import prometheus_client
import pytest

from glove.core.errors import AbortError
from glove.observability.metrics import (
    AgentMetricsLabels,
    ToolMetricsLabels,
    collect_agent_metrics,
    metrics,
    record_agent_tokens,
    record_compaction,
    record_tool_call,
)


def sample(name: str, **labels: str) -> float:
    return prometheus_client.REGISTRY.get_sample_value(name, labels) or 0.0


class TestLabels:
    """Tests for the label NamedTuples."""

    def test_agent_labels(self):
        """Agent labels carry the agent name."""
        labels = AgentMetricsLabels(agent="my-agent")
        assert labels.agent == "my-agent"
        assert labels._fields == ("agent",)

    def test_tool_labels(self):
        """Tool labels carry agent and tool name."""
        labels = ToolMetricsLabels(agent="my-agent", tool_name="search")
        assert tuple(labels) == ("my-agent", "search")

    def test_immutable(self):
        """Labels are immutable."""
        labels = AgentMetricsLabels(agent="test")
        with pytest.raises(AttributeError):
            labels.agent = "other"  # type: ignore


class TestRecordHelpers:
    """Tests for the recording helpers."""

    def test_record_tool_call_counts_status(self):
        """Each call increments the counter for its status."""
        labels = ToolMetricsLabels(agent="metrics-test", tool_name="lookup")
        before = sample("glove_tool_calls_total", agent="metrics-test", tool_name="lookup", status="error")

        record_tool_call(labels, duration=0.25, status="error")

        after = sample("glove_tool_calls_total", agent="metrics-test", tool_name="lookup", status="error")
        assert after == before + 1

    def test_record_agent_tokens(self):
        """Input and output tokens are counted separately."""
        before_in = sample("glove_model_tokens_total", agent="tok-test", model="m1", direction="input")
        before_out = sample("glove_model_tokens_total", agent="tok-test", model="m1", direction="output")

        record_agent_tokens("tok-test", "m1", input_tokens=100, output_tokens=20)

        assert sample("glove_model_tokens_total", agent="tok-test", model="m1", direction="input") == before_in + 100
        assert sample("glove_model_tokens_total", agent="tok-test", model="m1", direction="output") == before_out + 20

    def test_record_agent_tokens_unknown_model(self):
        """A missing model name is recorded as unknown."""
        before = sample("glove_model_tokens_total", agent="tok-test", model="unknown", direction="input")
        record_agent_tokens("tok-test", None, input_tokens=3, output_tokens=0)
        assert sample("glove_model_tokens_total", agent="tok-test", model="unknown", direction="input") == before + 3

    def test_record_compaction(self):
        """Compactions are counted per agent."""
        before = sample("glove_compactions_total", agent="compact-test")
        record_compaction("compact-test")
        assert sample("glove_compactions_total", agent="compact-test") == before + 1


class TestCollectAgentMetrics:
    """Tests for collect_agent_metrics context manager."""

    async def test_success(self):
        """A clean exit counts as success."""
        labels = AgentMetricsLabels(agent="collect-ok")
        async with collect_agent_metrics(labels) as collector:
            assert collector.labels == labels
        assert sample("glove_requests_total", agent="collect-ok", outcome="success") == 1

    async def test_error_not_suppressed(self):
        """Errors are counted and re-raised."""
        with pytest.raises(ValueError):
            async with collect_agent_metrics(AgentMetricsLabels(agent="collect-err")):
                raise ValueError("boom")
        assert sample("glove_requests_total", agent="collect-err", outcome="error") == 1

    async def test_abort_counted_as_aborted(self):
        """Cancellation counts as aborted, not as an error."""
        with pytest.raises(AbortError):
            async with collect_agent_metrics(AgentMetricsLabels(agent="collect-abort")):
                raise AbortError("stop")
        with pytest.raises(asyncio.CancelledError):
            async with collect_agent_metrics(AgentMetricsLabels(agent="collect-abort")):
                raise asyncio.CancelledError()
        assert sample("glove_requests_total", agent="collect-abort", outcome="aborted") == 2
        assert sample("glove_requests_total", agent="collect-abort", outcome="error") == 0


class TestMetricsEndpoint:
    """Tests for the exposition helper."""

    def test_metrics_output(self):
        """metrics() returns the text exposition with its content type."""
        record_compaction("expose-test")
        body, content_type = metrics()
        assert b"glove_compactions_total" in body
        assert content_type.startswith("text/plain")
