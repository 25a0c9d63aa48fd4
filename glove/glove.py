"""Glove builder and runnable.

``Glove`` wires a store, a model and a display manager into a working agent:
tools are folded in, subscribers attached, the registry frozen with
``build()``, and requests processed with ``process_request``.

Example:
    ```python
    glove = (
        Glove(GloveConfig(store, model, DisplayManager(), "You are helpful.", compaction))
        .fold("list_dir", "List a directory", ListDirInput, list_dir)
        .add_subscriber(LoggingSubscriber())
        .build()
    )
    result = await glove.process_request("list files")
    ```
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from pydantic import BaseModel

from glove.constants import DEFAULT_MAX_ITERATIONS, DEFAULT_MAX_RETRIES, GENERIC_RENDERER, SERVICE_NAME
from glove.core.agent import Agent
from glove.core.cancellation import CancellationToken
from glove.core.config import CompactionConfig
from glove.core.context import Context
from glove.core.display_manager import DisplayManager
from glove.core.errors import AbortError, GloveAlreadyBuiltError, GloveNotBuiltError, SessionBusyError
from glove.core.executor import Executor, Tool
from glove.core.messages import ContentPart, ContentType, Message, ModelPromptResult, Sender
from glove.core.observer import Observer
from glove.core.prompt_machine import PromptMachine
from glove.core.protocol import HandOverFunction, ModelAdapter, StoreAdapter, SubscriberAdapter, TaskStore
from glove.core.task_tool import create_task_tool
from glove.observability.logging import session_id_ctx
from glove.observability.metrics import AgentMetricsLabels, collect_agent_metrics

logger = logging.getLogger(__name__)

FoldFunction: TypeAlias = Callable[[Any, DisplayManager], Awaitable[Any]]


@dataclass(frozen=True)
class GloveConfig:
    """Everything needed to assemble an agent.

    Attributes:
        store: Persistence for history, counters, tasks and permissions
        model: Model collaborator
        display_manager: Slot stack shared with the UI
        system_prompt: System prompt installed on the model
        compaction_config: When and how to compact the history
        max_retries: Retries of a failing tool body after the first attempt
        max_iterations: Model calls allowed within one request
        retry_wait: Seconds to wait between tool retries
        agent_name: Label used for metrics
    """

    store: StoreAdapter
    model: ModelAdapter
    display_manager: DisplayManager
    system_prompt: str
    compaction_config: CompactionConfig
    max_retries: int = DEFAULT_MAX_RETRIES
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    retry_wait: float = 0.0
    agent_name: str = SERVICE_NAME


class Glove:
    """Builder and runnable for one agent session.

    Tools and subscribers are added while building. ``build()`` freezes the
    tool registry; only then can requests be processed, one at a time.
    """

    def __init__(self, config: GloveConfig) -> None:
        self.config = config
        self._store = config.store
        self._display_manager = config.display_manager
        self._built = False
        self._busy = False

        self.context = Context(self._store)
        self.prompt_machine = PromptMachine(config.model, config.system_prompt)
        self.executor = Executor(
            display_manager=self._display_manager,
            store=self._store,
            max_retries=config.max_retries,
            retry_wait=config.retry_wait,
            agent_name=config.agent_name,
        )
        self.observer = Observer.from_config(
            self._store,
            self.context,
            self.prompt_machine,
            config.compaction_config,
            agent_name=config.agent_name,
        )
        self.agent = Agent(
            self._store,
            self.executor,
            self.context,
            self.observer,
            self.prompt_machine,
            max_iterations=config.max_iterations,
            agent_name=config.agent_name,
        )

        if isinstance(self._store, TaskStore):
            self.executor.register_tool(create_task_tool(self.context))

    @property
    def display_manager(self) -> DisplayManager:
        return self._display_manager

    @property
    def store(self) -> StoreAdapter:
        return self._store

    @property
    def built(self) -> bool:
        return self._built

    @property
    def busy(self) -> bool:
        """Whether a request is currently being processed."""
        return self._busy

    def fold(
        self,
        name: str,
        description: str,
        input_schema: type[BaseModel],
        do: FoldFunction,
        requires_permission: bool = False,
        un_abortable: bool = False,
    ) -> "Glove":
        """Register a tool whose body receives the display manager.

        ``do`` may return a ToolResultData or any plain value; plain values are
        reported to the model as a successful result.

        Args:
            name: Unique tool name
            description: Description shown to the model
            input_schema: Pydantic model validating the tool input
            do: Async body called with the validated input and the display manager
            requires_permission: Ask for approval before the first run
            un_abortable: Run to completion even when the request is cancelled

        Returns:
            This builder, for chaining

        Raises:
            GloveAlreadyBuiltError: If called after build()
            ToolRegistryError: If the name is already registered
        """
        display_manager = self._display_manager

        async def run(input: Any, hand_over: HandOverFunction | None) -> Any:
            return await do(input, display_manager)

        return self.add_tool(
            Tool(
                name=name,
                description=description,
                input_schema=input_schema,
                run=run,
                requires_permission=requires_permission,
                un_abortable=un_abortable,
            )
        )

    def add_tool(self, tool: Tool) -> "Glove":
        """Register a fully specified tool.

        Raises:
            GloveAlreadyBuiltError: If called after build()
        """
        if self._built:
            raise GloveAlreadyBuiltError()
        self.executor.register_tool(tool)
        return self

    def add_subscriber(self, subscriber: SubscriberAdapter) -> "Glove":
        """Attach a subscriber to both model and tool events."""
        self.prompt_machine.add_subscriber(subscriber)
        self.executor.add_subscriber(subscriber)
        return self

    def remove_subscriber(self, subscriber: SubscriberAdapter) -> "Glove":
        self.prompt_machine.remove_subscriber(subscriber)
        self.executor.remove_subscriber(subscriber)
        return self

    def build(self) -> "Glove":
        """Freeze the tool registry and make the agent runnable."""
        self.executor.freeze()
        self._built = True
        logger.info(
            "Built agent '%s' with tools: %s",
            self.config.agent_name,
            ", ".join(tool.name for tool in self.executor.tools) or "none",
        )
        return self

    def set_model(self, model: ModelAdapter) -> None:
        """Use a different model for subsequent prompts and compactions."""
        self.prompt_machine.set_model(model)

    async def process_request(
        self,
        request: str | list[ContentPart],
        cancellation_token: CancellationToken | None = None,
    ) -> ModelPromptResult:
        """Process one user request to completion.

        Args:
            request: Plain text or ordered multimodal content parts
            cancellation_token: Token aborting the request when fired

        Returns:
            The model's final response

        Raises:
            GloveNotBuiltError: If build() has not been called
            SessionBusyError: If another request is still running
            AbortError: If the token fires
            GloveError: For any other fatal failure of the request
        """
        if not self._built:
            raise GloveNotBuiltError()
        if self._busy:
            raise SessionBusyError(self._store.identifier)

        self._busy = True
        session_token = session_id_ctx.set(self._store.identifier)
        try:
            async with collect_agent_metrics(AgentMetricsLabels(self.config.agent_name)):
                return await self.agent.ask(
                    self._to_message(request), self._hand_over, cancellation_token
                )
        except AbortError as e:
            logger.info("Request aborted: %s", e)
            raise
        except Exception:
            logger.error("Request failed", exc_info=True)
            raise
        finally:
            session_id_ctx.reset(session_token)
            self._busy = False

    async def _hand_over(self, input: Any) -> Any:
        renderer = GENERIC_RENDERER
        if isinstance(input, dict) and isinstance(input.get("renderer"), str):
            renderer = input["renderer"]
        return await self._display_manager.request_input(renderer, input)

    @staticmethod
    def _to_message(request: str | list[ContentPart]) -> Message:
        if isinstance(request, str):
            return Message(sender=Sender.USER, text=request)
        text = "\n".join(
            part.text for part in request if part.type == ContentType.TEXT and part.text
        )
        return Message(sender=Sender.USER, text=text, content=list(request))
