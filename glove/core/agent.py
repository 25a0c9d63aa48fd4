"""The agent loop: prompt, execute tools, repeat until the model answers."""

import dataclasses
import logging

from glove.constants import DEFAULT_MAX_ITERATIONS, SERVICE_NAME, TOOL_RESULTS_PLACEHOLDER
from glove.core.cancellation import CancellationToken
from glove.core.context import Context
from glove.core.errors import LoopLimitExceededError
from glove.core.executor import Executor
from glove.core.messages import Message, ModelPromptResult, Sender, TaskStatus
from glove.core.observer import Observer
from glove.core.prompt_machine import PromptMachine
from glove.core.protocol import HandOverFunction, StoreAdapter
from glove.observability.metrics import record_agent_tokens

logger = logging.getLogger(__name__)


class Agent:
    """Drives one request from the user message to the model's final answer.

    Each iteration prompts the model with the post-compaction history. A
    response without tool calls ends the request; otherwise every requested
    call is executed and the results are appended as a synthetic user message
    before the next iteration.
    """

    def __init__(
        self,
        store: StoreAdapter,
        executor: Executor,
        context: Context,
        observer: Observer,
        prompt_machine: PromptMachine,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        agent_name: str = SERVICE_NAME,
    ) -> None:
        self.store = store
        self.executor = executor
        self.context = context
        self.observer = observer
        self.prompt_machine = prompt_machine
        self.max_iterations = max_iterations
        self.agent_name = agent_name

    async def ask(
        self,
        message: Message,
        hand_over: HandOverFunction | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> ModelPromptResult:
        """Run the agent loop for one incoming message.

        Everything appended to the store before a failure stays there.

        Args:
            message: The incoming user message
            hand_over: Secondary input channel passed through to tools
            cancellation_token: Token aborting the request at any suspension point

        Returns:
            The final model response (the one without tool calls)

        Raises:
            AbortError: If the token fires
            LoopLimitExceededError: If the model keeps calling tools past max_iterations
            ModelPromptError: If the model call fails
            CompactionError: If compaction was due and failed
        """
        await self.context.append_messages([message])
        iterations = 0

        while True:
            if cancellation_token:
                cancellation_token.raise_if_cancelled()
            if iterations >= self.max_iterations:
                logger.error("Agent loop hit max_iterations=%d", self.max_iterations)
                raise LoopLimitExceededError(self.max_iterations)

            messages = await self.context.get_messages()
            result = await self.prompt_machine.run(
                messages, self.executor.tools, cancellation_token
            )
            iterations += 1
            record_agent_tokens(
                self.agent_name,
                getattr(self.prompt_machine.model, "name", None),
                result.tokens_in,
                result.tokens_out,
            )

            await self.context.append_messages(result.messages)
            await self.observer.add_tokens_consumed(result.tokens_in)

            tool_calls = result.tool_calls
            if not tool_calls:
                await self.observer.turn_complete()
                await self.observer.try_compaction(cancellation_token)
                await self._auto_complete_tasks()
                logger.debug("Request finished after %d iterations", iterations)
                return result

            logger.debug("Executing %d tool calls (iteration %d)", len(tool_calls), iterations)
            for call in tool_calls:
                self.executor.add_tool_call_to_stack(call)
            tool_results = await self.executor.execute_tool_stack(hand_over, cancellation_token)

            # Results are committed before any abort so every stored tool call has its result.
            await self.context.append_messages(
                [
                    Message(
                        sender=Sender.USER,
                        text=TOOL_RESULTS_PLACEHOLDER,
                        tool_results=tool_results,
                    )
                ]
            )
            if cancellation_token:
                cancellation_token.raise_if_cancelled()

            await self.observer.try_compaction(cancellation_token)

    async def _auto_complete_tasks(self) -> None:
        tasks = await self.context.get_tasks()
        if not any(task.status == TaskStatus.IN_PROGRESS for task in tasks):
            return
        updated = [
            dataclasses.replace(task, status=TaskStatus.COMPLETED)
            if task.status == TaskStatus.IN_PROGRESS
            else task
            for task in tasks
        ]
        await self.context.add_tasks(updated)
        logger.debug("Marked in-progress tasks as completed")
