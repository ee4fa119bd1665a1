"""Publish/subscribe channel for unsolicited server messages."""

import asyncio
import logging
from typing import Self

from snapmixer.api.errors import copy_error
from snapmixer.api.protocol import JsonRpcNotification

logger = logging.getLogger(__name__)


class _Closed:
    """Queue marker ending a subscription."""

    def __init__(self, error: BaseException | None) -> None:
        self.error = error


class Subscription:
    """Ordered stream of notifications for one consumer.

    Iterate with ``async for``. Iteration ends when the subscription or its
    channel is closed; if the channel was closed because the connection was
    lost, the loss is raised after all earlier notifications were delivered.

    Example:
        async for notification in rpc.subscribe():
            print(notification.method)
    """

    def __init__(self, channel: "NotificationChannel") -> None:
        self._channel = channel
        self._queue: asyncio.Queue[JsonRpcNotification | _Closed] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Return True once the subscription no longer receives messages."""
        return self._closed

    @property
    def backlog(self) -> int:
        """Return the number of notifications delivered but not yet consumed."""
        return self._queue.qsize()

    def _put(self, notification: JsonRpcNotification) -> None:
        if not self._closed:
            self._queue.put_nowait(notification)

    def _end(self, error: BaseException | None) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_Closed(error))

    def close(self) -> None:
        """Stop receiving notifications."""
        self._channel._discard(self)
        self._end(None)

    async def get(self) -> JsonRpcNotification:
        """Wait for the next notification.

        Raises:
            StopAsyncIteration: If the subscription was closed.
            ConnectionLost: If the connection was lost.
        """
        item = await self._queue.get()
        if isinstance(item, _Closed):
            # Keep the marker so later reads end the same way
            self._queue.put_nowait(item)
            if item.error is not None:
                raise copy_error(item.error)
            raise StopAsyncIteration
        return item

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> JsonRpcNotification:
        return await self.get()


class NotificationChannel:
    """Fan out every published notification to all current subscribers.

    Subscriptions are scoped to the channel (and so to one RPC client);
    there is no process-wide emitter. Queues are unbounded so publishing
    never blocks the read loop; ``Subscription.backlog`` exposes how far
    a consumer lags behind.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        """Return the number of live subscriptions."""
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Create a new subscription receiving every later notification."""
        subscription = Subscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, notification: JsonRpcNotification) -> None:
        """Deliver a notification to every subscriber, in publish order."""
        if not self._subscriptions:
            logger.debug("Dropping notification %r: no subscribers", notification.method)
            return
        for subscription in self._subscriptions:
            subscription._put(notification)

    def close(self, error: BaseException | None = None) -> None:
        """End every current subscription.

        The channel stays usable: subscriptions created afterwards receive
        notifications published afterwards.

        Args:
            error: Raised to each subscriber after its backlog is drained.
        """
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription._end(error)

    def _discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
