"""Collaborator protocol definitions.

The runtime never depends on a concrete persistence technology, model vendor
or event sink; it only talks to objects satisfying these protocols.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable, TypeAlias

from glove.core.cancellation import CancellationToken
from glove.core.messages import Message, ModelPromptResult, PermissionStatus, PromptRequest, Task

NotifyFunction: TypeAlias = Callable[[str, Any], Awaitable[None]]
HandOverFunction: TypeAlias = Callable[[Any], Awaitable[Any]]


@runtime_checkable
class StoreAdapter(Protocol):
    """Protocol for conversation persistence.

    Stores own the message history and the turn/token counters of one session.
    """

    @property
    def identifier(self) -> str:
        """Session identifier."""
        ...

    async def get_messages(self) -> list[Message]: ...

    async def append_messages(self, messages: list[Message]) -> None: ...

    async def get_token_count(self) -> int: ...

    async def add_tokens(self, count: int) -> None: ...

    async def get_turn_count(self) -> int: ...

    async def increment_turn(self) -> None: ...

    async def reset_history(self, replacement: list[Message]) -> None:
        """Atomically replace all messages with ``replacement`` and zero both counters."""
        ...


@runtime_checkable
class TaskStore(Protocol):
    """Optional store extension for task tracking."""

    async def get_tasks(self) -> list[Task]: ...

    async def add_tasks(self, tasks: list[Task]) -> None:
        """Replace the stored task list wholesale."""
        ...

    async def update_task(self, task_id: str, **updates: Any) -> None: ...


@runtime_checkable
class PermissionStore(Protocol):
    """Optional store extension for per-tool permission decisions."""

    async def get_permission(self, tool_name: str) -> PermissionStatus: ...

    async def set_permission(self, tool_name: str, status: PermissionStatus) -> None: ...


class ModelAdapter(Protocol):
    """Protocol for a language model collaborator.

    Implementations translate a PromptRequest to a vendor API, call ``notify``
    for every streamed fragment (``text_delta``, ``tool_use``) and exactly once
    with the terminal event (``model_response`` or ``model_response_complete``).
    """

    @property
    def name(self) -> str:
        """Model identifier."""
        ...

    async def prompt(
        self,
        request: PromptRequest,
        notify: NotifyFunction,
        cancellation_token: CancellationToken | None = None,
    ) -> ModelPromptResult: ...

    def set_system_prompt(self, system_prompt: str) -> None: ...


class SubscriberAdapter(Protocol):
    """Protocol for an event sink."""

    async def record(self, event_name: str, payload: Any) -> None: ...
