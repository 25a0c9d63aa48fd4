"""Subscriber that mirrors runtime events into the log."""

import logging
from typing import Any

from glove.core.messages import ModelPromptResult, ToolCall, ToolResult
from glove.core.subscribers import EventName


class LoggingSubscriber:
    """Logs every runtime event.

    Text deltas are logged at DEBUG since they arrive once per streamed
    fragment; tool activity and model responses are logged at INFO.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    async def record(self, event_name: str, payload: Any) -> None:
        match event_name:
            case EventName.TEXT_DELTA:
                self.logger.debug("Text delta: %r", payload)
            case EventName.TOOL_USE if isinstance(payload, ToolCall):
                self.logger.info("Tool call %s requested (id=%s)", payload.tool_name, payload.id)
            case EventName.TOOL_USE_RESULT if isinstance(payload, ToolResult):
                self.logger.info(
                    "Tool call %s finished with status=%s (id=%s)",
                    payload.tool_name,
                    payload.result.status,
                    payload.call_id,
                )
            case EventName.MODEL_RESPONSE | EventName.MODEL_RESPONSE_COMPLETE if isinstance(
                payload, ModelPromptResult
            ):
                self.logger.info(
                    "Model response: %d messages, %d tool calls, tokens in=%d out=%d",
                    len(payload.messages),
                    len(payload.tool_calls),
                    payload.tokens_in,
                    payload.tokens_out,
                )
            case _:
                self.logger.info("Event %s: %r", event_name, payload)
