"""Model prompting with event fan-out."""

import logging
from typing import TYPE_CHECKING, Any

from glove.core.cancellation import CancellationToken
from glove.core.errors import AbortError, ModelPromptError
from glove.core.messages import Message, ModelPromptResult, PromptRequest
from glove.core.protocol import ModelAdapter, SubscriberAdapter
from glove.core.subscribers import SubscriberSet
from glove.core.utils import race_cancellation, strip_render_data

if TYPE_CHECKING:
    from glove.core.executor import Tool

logger = logging.getLogger(__name__)


class PromptMachine:
    """Turns one prompt request into a model response.

    Streaming reassembly is the model adapter's concern; the prompt machine
    only forwards every event the adapter emits to its subscribers, in call
    order, before the model call resolves.
    """

    def __init__(self, model: ModelAdapter, system_prompt: str) -> None:
        """Initialize the prompt machine.

        Args:
            model: Model collaborator used for every prompt
            system_prompt: System prompt installed on the model
        """
        self.system_prompt = system_prompt
        self.subscribers = SubscriberSet()
        self._model = model
        model.set_system_prompt(system_prompt)

    @property
    def model(self) -> ModelAdapter:
        return self._model

    def set_model(self, model: ModelAdapter) -> None:
        """Switch to a new model, installing the current system prompt on it."""
        model.set_system_prompt(self.system_prompt)
        self._model = model
        logger.info("Switched model to '%s'", getattr(model, "name", type(model).__name__))

    def add_subscriber(self, subscriber: SubscriberAdapter) -> None:
        self.subscribers.add(subscriber)

    def remove_subscriber(self, subscriber: SubscriberAdapter) -> None:
        self.subscribers.remove(subscriber)

    async def notify_subscribers(self, event_name: str, payload: Any) -> None:
        await self.subscribers.notify(event_name, payload)

    async def run(
        self,
        messages: list[Message],
        tools: "list[Tool] | None" = None,
        cancellation_token: CancellationToken | None = None,
    ) -> ModelPromptResult:
        """Prompt the model with the given history and tool catalog.

        Render data is stripped from the history before it reaches the model.

        Args:
            messages: Conversation history to send
            tools: Tools the model may call
            cancellation_token: Token that aborts the call when fired

        Returns:
            The model's response

        Raises:
            AbortError: If the token fires or the model reports cancellation
            ModelPromptError: If the model call fails for any other reason
        """
        request = PromptRequest(messages=strip_render_data(messages), tools=list(tools or []))
        model_name = getattr(self._model, "name", None)
        logger.debug(
            "Prompting model '%s' with %d messages and %d tools",
            model_name,
            len(request.messages),
            len(request.tools),
        )
        try:
            return await race_cancellation(
                self._model.prompt(request, self.notify_subscribers, cancellation_token),
                cancellation_token,
            )
        except AbortError:
            raise
        except Exception as e:
            logger.error("Model '%s' prompt failed: %s", model_name, e)
            raise ModelPromptError(str(e), model_name=model_name) from e
