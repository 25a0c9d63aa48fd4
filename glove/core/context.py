"""Store-backed conversation context."""

from typing import Any

from glove.core.messages import Message, Task
from glove.core.protocol import StoreAdapter, TaskStore
from glove.core.utils import split_at_last_compaction


class Context:
    """View over a store exposing the model-facing history and the task list.

    Task operations degrade to no-ops when the store does not implement the
    task protocol.
    """

    def __init__(self, store: StoreAdapter) -> None:
        self.store = store

    @property
    def supports_tasks(self) -> bool:
        return isinstance(self.store, TaskStore)

    async def get_messages(self) -> list[Message]:
        """History from the last compaction summary onward."""
        return split_at_last_compaction(await self.store.get_messages())

    async def append_messages(self, messages: list[Message]) -> None:
        await self.store.append_messages(messages)

    async def replace_history(self, summary: Message) -> None:
        """Swap the whole history for a single summary and zero the counters."""
        await self.store.reset_history([summary])

    async def get_tasks(self) -> list[Task]:
        if not isinstance(self.store, TaskStore):
            return []
        return await self.store.get_tasks()

    async def add_tasks(self, tasks: list[Task]) -> None:
        if not isinstance(self.store, TaskStore):
            return
        await self.store.add_tasks(tasks)

    async def update_task(self, task_id: str, **updates: Any) -> None:
        if not isinstance(self.store, TaskStore):
            return
        await self.store.update_task(task_id, **updates)
