"""
Tests for the in-process event bus.
"""
import pytest

from storefront.core.events import NOTIFICATION_TOPIC, EventBus, Notification


class TestEventBus:

    @pytest.mark.asyncio
    async def test_delivers_to_sync_and_async_handlers_in_order(self):
        bus = EventBus()
        calls = []

        def first(event):
            calls.append(("first", event))

        async def second(event):
            calls.append(("second", event))

        bus.subscribe("topic", first)
        bus.subscribe("topic", second)

        delivered = await bus.publish("topic", 42)

        assert delivered == 2
        assert calls == [("first", 42), ("second", 42)]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, caplog):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe("topic", broken)
        bus.subscribe("topic", received.append)

        delivered = await bus.publish("topic", "hello")

        assert received == ["hello"]
        assert delivered == 1
        assert "failed on topic 'topic'" in caplog.text

    @pytest.mark.asyncio
    async def test_unsubscribe_callable(self, subscriber_count):
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe("topic", received.append)

        unsubscribe()
        await bus.publish("topic", 1)

        assert received == []
        assert subscriber_count(bus, "topic") == 0

    def test_unsubscribe_unknown_handler(self):
        bus = EventBus()
        assert bus.unsubscribe("topic", print) is False

    @pytest.mark.asyncio
    async def test_topics_are_isolated(self):
        bus = EventBus()
        received = []
        bus.subscribe("a", received.append)

        await bus.publish("b", 1)

        assert received == []

    @pytest.mark.asyncio
    async def test_notify_publishes_notification(self):
        bus = EventBus()
        received = []
        bus.subscribe(NOTIFICATION_TOPIC, received.append)

        notification = await bus.notify("Saved", "All good", user_key="u@example.com")

        assert received == [notification]
        assert isinstance(notification, Notification)
        assert notification.variant == "default"
        assert notification.user_key == "u@example.com"
