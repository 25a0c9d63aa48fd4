"""Unit tests for subscriber fan-out."""

from unittest.mock import AsyncMock

from glove.core.subscribers import EventName, SubscriberSet


class TestSubscriberSet:
    """Tests for SubscriberSet."""

    async def test_notifies_in_registration_order(self):
        """Subscribers receive each event in the order they were added."""
        calls = []

        class Named:
            def __init__(self, name):
                self.name = name

            async def record(self, event_name, payload):
                calls.append((self.name, event_name, payload))

        subscribers = SubscriberSet()
        subscribers.add(Named("a"))
        subscribers.add(Named("b"))

        await subscribers.notify(EventName.TEXT_DELTA, "hi")

        assert calls == [("a", "text_delta", "hi"), ("b", "text_delta", "hi")]

    def test_add_is_idempotent(self):
        """Adding the same subscriber twice keeps one entry."""
        subscriber = AsyncMock()
        subscribers = SubscriberSet()
        subscribers.add(subscriber)
        subscribers.add(subscriber)
        assert len(subscribers) == 1
        assert subscriber in subscribers

    def test_remove_unknown_is_noop(self):
        """Removing a subscriber that was never added does nothing."""
        subscribers = SubscriberSet()
        subscribers.remove(AsyncMock())
        assert len(subscribers) == 0

    async def test_failure_isolated(self):
        """A failing subscriber does not stop delivery to the rest."""
        broken, healthy = AsyncMock(), AsyncMock()
        broken.record.side_effect = RuntimeError("boom")
        subscribers = SubscriberSet()
        subscribers.add(broken)
        subscribers.add(healthy)

        await subscribers.notify(EventName.TOOL_USE, {"x": 1})

        healthy.record.assert_awaited_once_with("tool_use", {"x": 1})

    def test_event_names(self):
        """Event names match their wire strings."""
        assert EventName.MODEL_RESPONSE_COMPLETE == "model_response_complete"
        assert EventName.TOOL_USE_RESULT == "tool_use_result"
