"""In-process store for tests, prototypes and short-lived sessions."""

import dataclasses
from typing import Any

from glove.core.messages import Message, PermissionStatus, Task


class MemoryStore:
    """Store keeping one session's history, counters, tasks and permissions in memory.

    Implements the store, task and permission protocols. Everything is lost
    when the instance is garbage collected.
    """

    def __init__(self, identifier: str) -> None:
        self._identifier = identifier
        self._messages: list[Message] = []
        self._token_count = 0
        self._turn_count = 0
        self._tasks: list[Task] = []
        self._permissions: dict[str, PermissionStatus] = {}

    def __repr__(self) -> str:
        return f"MemoryStore({self._identifier!r})"

    @property
    def identifier(self) -> str:
        return self._identifier

    async def get_messages(self) -> list[Message]:
        return list(self._messages)

    async def append_messages(self, messages: list[Message]) -> None:
        self._messages.extend(messages)

    async def get_token_count(self) -> int:
        return self._token_count

    async def add_tokens(self, count: int) -> None:
        self._token_count += count

    async def get_turn_count(self) -> int:
        return self._turn_count

    async def increment_turn(self) -> None:
        self._turn_count += 1

    async def reset_history(self, replacement: list[Message]) -> None:
        self._messages = list(replacement)
        self._token_count = 0
        self._turn_count = 0

    async def get_tasks(self) -> list[Task]:
        return [dataclasses.replace(task) for task in self._tasks]

    async def add_tasks(self, tasks: list[Task]) -> None:
        self._tasks = [dataclasses.replace(task) for task in tasks]

    async def update_task(self, task_id: str, **updates: Any) -> None:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                self._tasks[index] = dataclasses.replace(task, **updates)
                return

    async def get_permission(self, tool_name: str) -> PermissionStatus:
        return self._permissions.get(tool_name, PermissionStatus.UNSET)

    async def set_permission(self, tool_name: str, status: PermissionStatus) -> None:
        self._permissions[tool_name] = status
