"""Shared test fixtures.

This module provides fixtures used across unit and integration tests:
- A scripted model replaying canned responses
- A recording subscriber capturing every event
- In-memory store and display manager
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

import pytest

from glove.core.cancellation import CancellationToken
from glove.core.display_manager import DisplayManager
from glove.core.messages import Message, ModelPromptResult, PromptRequest, Sender, ToolCall
from glove.core.protocol import NotifyFunction
from glove.stores.memory import MemoryStore

# =============================================================================
# Test doubles
# =============================================================================

ScriptedResponse: TypeAlias = (
    ModelPromptResult | BaseException | Callable[[PromptRequest], Awaitable[ModelPromptResult]]
)


class ScriptedModel:
    """Model that replays a queue of responses.

    Each entry is a ModelPromptResult, an exception to raise, or an async
    callable producing the result from the request. Streams one text_delta per
    agent text, one tool_use per call and a final model_response_complete.
    """

    def __init__(self, responses: list[ScriptedResponse], name: str = "scripted-model") -> None:
        self.name = name
        self.responses = list(responses)
        self.requests: list[PromptRequest] = []
        self.system_prompt: str | None = None

    def set_system_prompt(self, system_prompt: str) -> None:
        self.system_prompt = system_prompt

    async def prompt(
        self,
        request: PromptRequest,
        notify: NotifyFunction,
        cancellation_token: CancellationToken | None = None,
    ) -> ModelPromptResult:
        self.requests.append(request)
        if not self.responses:
            raise RuntimeError("No scripted responses left")

        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            response = await response(request)

        for message in response.messages:
            if message.text:
                await notify("text_delta", message.text)
            for call in message.tool_calls or []:
                await notify("tool_use", call)
        await notify("model_response_complete", response)
        return response


class RecordingSubscriber:
    """Subscriber keeping every event it receives, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    async def record(self, event_name: str, payload: Any) -> None:
        self.events.append((event_name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, event_name: str) -> list[Any]:
        return [payload for name, payload in self.events if name == event_name]


def agent_text(text: str, tokens_in: int = 10, tokens_out: int = 5) -> ModelPromptResult:
    """A model response with a plain text answer."""
    return ModelPromptResult(
        messages=[Message(sender=Sender.AGENT, text=text)],
        tokens_in=tokens_in,
        tokens_out=tokens_out,
    )


def agent_tool_calls(*calls: ToolCall, text: str = "", tokens_in: int = 10) -> ModelPromptResult:
    """A model response requesting tool calls."""
    return ModelPromptResult(
        messages=[Message(sender=Sender.AGENT, text=text, tool_calls=list(calls))],
        tokens_in=tokens_in,
        tokens_out=5,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def scripted_model() -> type[ScriptedModel]:
    """Factory for scripted models: ``scripted_model([agent_text("hi")])``."""
    return ScriptedModel


@pytest.fixture
def text_reply() -> Callable[..., ModelPromptResult]:
    return agent_text


@pytest.fixture
def tool_call_reply() -> Callable[..., ModelPromptResult]:
    return agent_tool_calls


@pytest.fixture
def recording_subscriber() -> RecordingSubscriber:
    return RecordingSubscriber()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore("test-session")


@pytest.fixture
def display_manager() -> DisplayManager:
    return DisplayManager()


@pytest.fixture
def cancellation_token() -> CancellationToken:
    return CancellationToken()
