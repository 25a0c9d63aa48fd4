"""Turn and token accounting with history compaction."""

import logging

from glove.constants import (
    DEFAULT_COMPACTION_CONTEXT_LIMIT,
    DEFAULT_MAX_TURNS,
    SERVICE_NAME,
    TASK_TOOL_NAME,
)
from glove.core.cancellation import CancellationToken
from glove.core.config import CompactionConfig
from glove.core.context import Context
from glove.core.errors import AbortError, CompactionError
from glove.core.messages import Message, Sender, Task
from glove.core.prompt_machine import PromptMachine
from glove.core.protocol import StoreAdapter
from glove.observability.metrics import record_compaction

logger = logging.getLogger(__name__)

SUMMARY_HEADER = "[Conversation summary from compaction]"
SUMMARY_FOOTER = "[End of summary - the conversation continues from here]"
EMPTY_SUMMARY = "No summary was generated"


def format_summary(summary_text: str, tasks: list[Task]) -> str:
    """Wrap a compaction summary, appending the open task list if there is one."""
    task_block = ""
    if tasks:
        task_lines = "\n".join(f"- [{task.status}] {task.content}" for task in tasks)
        task_block = (
            f"\n\n[Current task list: you MUST call {TASK_TOOL_NAME} to update these "
            f"as you continue]\n{task_lines}\n"
        )
    return f"{SUMMARY_HEADER}\n\n{summary_text}{task_block}\n\n{SUMMARY_FOOTER}"


class Observer:
    """Tracks session turns and token usage and compacts the history.

    Compaction is all-or-nothing: the summary is produced first and only then
    swapped in for the whole history in a single store call, so a failed
    summarization leaves history and counters as they were.
    """

    def __init__(
        self,
        store: StoreAdapter,
        context: Context,
        prompt_machine: PromptMachine,
        compaction_instructions: str,
        max_turns: int = DEFAULT_MAX_TURNS,
        compaction_context_limit: int = DEFAULT_COMPACTION_CONTEXT_LIMIT,
        agent_name: str = SERVICE_NAME,
    ) -> None:
        self.store = store
        self.context = context
        self.prompt_machine = prompt_machine
        self.compaction_instructions = compaction_instructions
        self.max_turns = max_turns
        self.compaction_context_limit = compaction_context_limit
        self.agent_name = agent_name

    @classmethod
    def from_config(
        cls,
        store: StoreAdapter,
        context: Context,
        prompt_machine: PromptMachine,
        config: CompactionConfig,
        agent_name: str = SERVICE_NAME,
    ) -> "Observer":
        return cls(
            store,
            context,
            prompt_machine,
            compaction_instructions=config.compaction_instructions,
            max_turns=config.max_turns,
            compaction_context_limit=config.compaction_context_limit,
            agent_name=agent_name,
        )

    def set_compaction_instructions(self, instructions: str) -> None:
        self.compaction_instructions = instructions

    def set_max_turns(self, max_turns: int) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns

    def set_context_compaction_limit(self, limit: int) -> None:
        """Change the token threshold; applies from the next ``try_compaction``."""
        if limit < 1:
            raise ValueError("compaction_context_limit must be at least 1")
        self.compaction_context_limit = limit

    async def turn_complete(self) -> None:
        await self.store.increment_turn()

    async def add_tokens_consumed(self, token_count: int) -> None:
        await self.store.add_tokens(token_count)

    async def get_current_turns(self) -> int:
        return await self.store.get_turn_count() or 0

    async def get_current_token_consumption(self) -> int:
        return await self.store.get_token_count() or 0

    async def should_compact(self) -> bool:
        turns = await self.get_current_turns()
        tokens = await self.get_current_token_consumption()
        return turns >= self.max_turns or tokens >= self.compaction_context_limit

    async def try_compaction(self, cancellation_token: CancellationToken | None = None) -> bool:
        """Compact the history if either counter reached its threshold.

        Args:
            cancellation_token: Token aborting the summarization call

        Returns:
            True if the history was compacted

        Raises:
            AbortError: If the token fires during summarization
            CompactionError: If the summary could not be produced or committed
        """
        if not await self.should_compact():
            return False

        history = await self.context.get_messages()
        logger.info("Compacting %d messages", len(history))
        request = Message(sender=Sender.USER, text=self.compaction_instructions)

        try:
            result = await self.prompt_machine.run(
                [*history, request], cancellation_token=cancellation_token
            )
            summary_text = "\n".join(
                m.text for m in result.messages if m.sender == Sender.AGENT and m.text
            )
            tasks = await self.context.get_tasks()
            summary = Message(
                sender=Sender.USER,
                text=format_summary(summary_text or EMPTY_SUMMARY, tasks),
                is_compaction=True,
            )
            await self.context.replace_history(summary)
        except AbortError:
            raise
        except Exception as e:
            logger.error("Compaction failed, history left untouched: %s", e)
            raise CompactionError(str(e)) from e

        record_compaction(self.agent_name)
        logger.info("Compaction complete, history replaced with summary")
        return True
