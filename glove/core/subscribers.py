"""Event fan-out to registered subscribers."""

import logging
from enum import StrEnum
from typing import Any

from glove.core.protocol import SubscriberAdapter

logger = logging.getLogger(__name__)


class EventName(StrEnum):
    """Events broadcast to subscribers."""

    TEXT_DELTA = "text_delta"
    TOOL_USE = "tool_use"
    TOOL_USE_RESULT = "tool_use_result"
    MODEL_RESPONSE = "model_response"
    MODEL_RESPONSE_COMPLETE = "model_response_complete"


class SubscriberSet:
    """Ordered set of subscribers notified in registration order.

    A subscriber that raises is logged and skipped; the remaining subscribers
    still receive the event.
    """

    def __init__(self) -> None:
        self._subscribers: list[SubscriberAdapter] = []

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber: object) -> bool:
        return subscriber in self._subscribers

    def add(self, subscriber: SubscriberAdapter) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def remove(self, subscriber: SubscriberAdapter) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    async def notify(self, event_name: str, payload: Any) -> None:
        """Deliver one event to every subscriber, in order.

        Args:
            event_name: Name of the event (see EventName)
            payload: Event payload, passed through verbatim
        """
        for subscriber in list(self._subscribers):
            try:
                await subscriber.record(event_name, payload)
            except Exception:
                logger.warning(
                    "Subscriber %r failed to record '%s' event",
                    subscriber,
                    event_name,
                    exc_info=True,
                )
