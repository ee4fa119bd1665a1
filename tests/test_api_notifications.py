"""Tests for the notification channel."""

import asyncio

import pytest

from snapmixer.api.errors import ConnectionLost
from snapmixer.api.notifications import NotificationChannel
from snapmixer.api.protocol import JsonRpcNotification


def _note(method: str) -> JsonRpcNotification:
    return JsonRpcNotification(method=method)


class TestNotificationChannel:
    """Tests for NotificationChannel and Subscription."""

    @pytest.mark.asyncio
    async def test_every_subscriber_gets_every_message_in_order(self) -> None:
        """Test fan-out preserves publish order."""
        channel = NotificationChannel()
        first = channel.subscribe()
        second = channel.subscribe()

        for method in ("a", "b", "c"):
            channel.publish(_note(method))

        assert [(await first.get()).method for _ in range(3)] == ["a", "b", "c"]
        assert [(await second.get()).method for _ in range(3)] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_late_subscriber_misses_earlier_messages(self) -> None:
        """Test that a subscription only sees later messages."""
        channel = NotificationChannel()
        channel.publish(_note("early"))
        subscription = channel.subscribe()
        channel.publish(_note("late"))
        assert (await subscription.get()).method == "late"
        assert subscription.backlog == 0

    @pytest.mark.asyncio
    async def test_close_subscription_ends_iteration(self) -> None:
        """Test that closing a subscription stops the async for loop."""
        channel = NotificationChannel()
        subscription = channel.subscribe()
        channel.publish(_note("a"))
        subscription.close()
        channel.publish(_note("b"))

        received = [n.method async for n in subscription]
        assert received == ["a"]
        assert subscription.closed is True
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_close_with_error_raises_after_backlog(self) -> None:
        """Test that the close error is raised after queued messages."""
        channel = NotificationChannel()
        subscription = channel.subscribe()
        channel.publish(_note("a"))
        error = ConnectionLost("gone")
        channel.close(error)

        assert (await subscription.get()).method == "a"
        with pytest.raises(ConnectionLost):
            await subscription.get()
        # Further reads end the same way, each with its own exception
        with pytest.raises(ConnectionLost) as second:
            await subscription.get()
        with pytest.raises(ConnectionLost) as third:
            await subscription.get()
        assert second.value is not third.value
        assert str(second.value) == str(third.value) == "gone"

    @pytest.mark.asyncio
    async def test_channel_reusable_after_close(self) -> None:
        """Test that new subscriptions work after the channel was closed."""
        channel = NotificationChannel()
        old = channel.subscribe()
        channel.close()
        new = channel.subscribe()
        channel.publish(_note("x"))

        assert old.closed is True
        assert (await new.get()).method == "x"

    @pytest.mark.asyncio
    async def test_waiting_consumer_wakes_on_publish(self) -> None:
        """Test that a consumer blocked in get() receives a later message."""
        channel = NotificationChannel()
        subscription = channel.subscribe()
        waiter = asyncio.create_task(subscription.get())
        await asyncio.sleep(0)
        channel.publish(_note("wake"))
        notification = await asyncio.wait_for(waiter, timeout=1.0)
        assert notification.method == "wake"

    def test_publish_without_subscribers(self) -> None:
        """Test that publishing with nobody listening is harmless."""
        channel = NotificationChannel()
        channel.publish(_note("nobody"))
        assert channel.subscriber_count == 0
