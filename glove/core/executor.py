"""Tool registry and tool-call execution engine."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from time import monotonic
from typing import Any, TypeAlias

from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_fixed,
    wait_none,
)

from glove.constants import DEFAULT_MAX_RETRIES, PERMISSION_RENDERER, SERVICE_NAME
from glove.core.cancellation import CancellationToken
from glove.core.display_manager import DisplayManager
from glove.core.errors import AbortError, ToolRegistryError
from glove.core.messages import PermissionStatus, ToolCall, ToolResult, ToolResultData
from glove.core.protocol import HandOverFunction, PermissionStore, StoreAdapter, SubscriberAdapter
from glove.core.subscribers import EventName, SubscriberSet
from glove.core.utils import race_cancellation
from glove.observability.metrics import ToolMetricsLabels, record_tool_call

logger = logging.getLogger(__name__)

ToolRunFunction: TypeAlias = Callable[[Any, HandOverFunction | None], Awaitable[ToolResultData]]


@dataclass(frozen=True)
class Tool:
    """A callable tool exposed to the model.

    Attributes:
        name: Unique registry key (matched case-insensitively)
        description: Description shown to the model
        input_schema: Pydantic model validating the model-provided arguments
        run: Async body receiving the validated input and an optional hand-over function
        requires_permission: Ask for approval before the first run
        un_abortable: Run to completion even when the request is cancelled
    """

    name: str
    description: str
    input_schema: type[BaseModel]
    run: ToolRunFunction
    requires_permission: bool = False
    un_abortable: bool = False

    def json_schema(self) -> dict[str, Any]:
        """JSON schema of the tool input, for model adapters."""
        return self.input_schema.model_json_schema()


class Executor:
    """Executes the tool calls requested in one model response.

    Calls are queued with ``add_tool_call_to_stack`` and drained by
    ``execute_tool_stack``, which runs them one after another so results keep
    the order of the response. Every failure mode short of the request being
    cancelled (unknown tool, invalid input, permission denied, body errors)
    becomes an error result the model can read.
    """

    def __init__(
        self,
        display_manager: DisplayManager | None = None,
        store: StoreAdapter | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_wait: float = 0.0,
        agent_name: str = SERVICE_NAME,
    ) -> None:
        """Initialize the executor.

        Args:
            display_manager: Stack used to ask for tool permission
            store: Store consulted for permission decisions, if it supports them
            max_retries: Retries of a failing tool body after the first attempt
            retry_wait: Seconds to wait between retries
            agent_name: Label used for metrics
        """
        self.display_manager = display_manager
        self.store = store
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self.agent_name = agent_name
        self.tool_call_stack: list[ToolCall] = []
        self.subscribers = SubscriberSet()
        self._tools: dict[str, Tool] = {}
        self._frozen = False

    @property
    def tools(self) -> list[Tool]:
        """Registered tools, in registration order."""
        return list(self._tools.values())

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register_tool(self, tool: Tool) -> None:
        """Add a tool to the registry.

        Raises:
            ToolRegistryError: If the registry is frozen or the name is taken
        """
        if self._frozen:
            raise ToolRegistryError(f"Cannot register '{tool.name}': tool registry is frozen")
        key = tool.name.lower()
        if key in self._tools:
            raise ToolRegistryError(f"Tool name collision: '{tool.name}' is already registered")
        self._tools[key] = tool

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name.lower())

    def add_subscriber(self, subscriber: SubscriberAdapter) -> None:
        self.subscribers.add(subscriber)

    def remove_subscriber(self, subscriber: SubscriberAdapter) -> None:
        self.subscribers.remove(subscriber)

    async def notify_subscribers(self, event_name: str, payload: Any) -> None:
        await self.subscribers.notify(event_name, payload)

    def add_tool_call_to_stack(self, call: ToolCall) -> None:
        self.tool_call_stack.append(call)

    async def execute_tool_stack(
        self,
        hand_over: HandOverFunction | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> list[ToolResult]:
        """Run every queued call and return one result per call, in order.

        The queue is empty when this returns, whether or not calls failed.

        Args:
            hand_over: Secondary input channel passed to tool bodies
            cancellation_token: Token aborting abortable tools when fired

        Returns:
            Results in the order the calls were queued
        """
        calls = list(self.tool_call_stack)
        results: list[ToolResult] = []
        try:
            for call in calls:
                result = await self._execute_call(call, hand_over, cancellation_token)
                results.append(result)
                await self.notify_subscribers(EventName.TOOL_USE_RESULT, result)
        finally:
            self.tool_call_stack = []
        return results

    async def _execute_call(
        self,
        call: ToolCall,
        hand_over: HandOverFunction | None,
        cancellation_token: CancellationToken | None,
    ) -> ToolResult:
        tool = self.get_tool(call.tool_name)
        await self.notify_subscribers(EventName.TOOL_USE, call)

        start_time = monotonic()
        data = await self._resolve_call(tool, call, hand_over, cancellation_token)
        record_tool_call(
            ToolMetricsLabels(self.agent_name, tool.name if tool else call.tool_name),
            duration=monotonic() - start_time,
            status=data.status,
        )
        return ToolResult(tool_name=call.tool_name, call_id=call.id, result=data)

    async def _resolve_call(
        self,
        tool: Tool | None,
        call: ToolCall,
        hand_over: HandOverFunction | None,
        cancellation_token: CancellationToken | None,
    ) -> ToolResultData:
        # Abortable calls queued after the token fired never start.
        if cancellation_token and cancellation_token.cancelled and not (tool and tool.un_abortable):
            return ToolResultData.aborted()

        if tool is None:
            logger.warning("Model requested unknown tool '%s'", call.tool_name)
            return ToolResultData.error(f"No tool called {call.tool_name} exists.")

        try:
            parsed = tool.input_schema.model_validate(
                call.input_args if call.input_args is not None else {}
            )
        except ValidationError as e:
            logger.info("Invalid input for tool '%s': %s", tool.name, e)
            return ToolResultData.error(
                f"TOOL_INPUT_INVALID: failed to validate the input args provided for "
                f"'{tool.name}': {e}",
                data=e.errors(include_url=False, include_context=False),
            )

        token = None if tool.un_abortable else cancellation_token

        if tool.requires_permission:
            try:
                permitted = await race_cancellation(self._check_permission(tool, parsed), token)
            except AbortError:
                return ToolResultData.aborted()
            if not permitted:
                return ToolResultData.error(
                    f'Permission denied for tool "{tool.name}". '
                    "The user has not granted permission to run this tool."
                )

        try:
            return await self._run_with_retries(tool, parsed, hand_over, token)
        except AbortError:
            logger.info("Tool '%s' aborted", tool.name)
            return ToolResultData.aborted()
        except Exception as e:
            logger.warning(
                "Tool '%s' failed after %d retries: %s", tool.name, self.max_retries, e
            )
            return ToolResultData.error(
                f"Failed to run tool successfully. Tool errored out with {e!r}, "
                f"after {self.max_retries}/{self.max_retries} retries."
            )

    async def _run_with_retries(
        self,
        tool: Tool,
        parsed: BaseModel,
        hand_over: HandOverFunction | None,
        cancellation_token: CancellationToken | None,
    ) -> ToolResultData:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_fixed(self.retry_wait) if self.retry_wait else wait_none(),
            retry=retry_if_exception_type(Exception) & retry_if_not_exception_type(AbortError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                value = await race_cancellation(tool.run(parsed, hand_over), cancellation_token)
        if isinstance(value, ToolResultData):
            return value
        return ToolResultData.success(data=value)

    async def _check_permission(self, tool: Tool, parsed: BaseModel) -> bool:
        if not isinstance(self.store, PermissionStore):
            return True

        status = await self.store.get_permission(tool.name)
        if status == PermissionStatus.GRANTED:
            return True
        if status == PermissionStatus.DENIED:
            return False

        if self.display_manager is None:
            logger.warning("No display manager to ask permission for tool '%s'", tool.name)
            return False

        try:
            answer = await self.display_manager.request_input(
                PERMISSION_RENDERER,
                {"tool_name": tool.name, "tool_input": parsed.model_dump(mode="json")},
            )
        except AbortError:
            raise
        except Exception as e:
            logger.info("Permission request for tool '%s' was dismissed: %s", tool.name, e)
            return False

        allowed = bool(answer)
        await self.store.set_permission(
            tool.name, PermissionStatus.GRANTED if allowed else PermissionStatus.DENIED
        )
        logger.info("Permission for tool '%s' %s", tool.name, "granted" if allowed else "denied")
        return allowed
