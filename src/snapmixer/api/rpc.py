"""JSON-RPC 2.0 client over a streaming TCP connection.

Responses are matched to calls by id, in whatever order they arrive.
Anything else the server sends (Snapcast pushes ``Client.OnVolumeChanged``
and friends whenever state changes) goes to notification subscribers.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any, Self

from snapmixer.api.correlator import RequestCorrelator
from snapmixer.api.errors import (
    ConnectionLost,
    DecodeError,
    NotConnected,
    RemoteError,
)
from snapmixer.api.framing import FrameDecoder, decode_stream
from snapmixer.api.notifications import NotificationChannel, Subscription
from snapmixer.api.protocol import (
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    Params,
    encode_message,
)
from snapmixer.api.transport import ConnectionState, Transport
from snapmixer.models.endpoint import Endpoint

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[JsonRpcNotification], Awaitable[None] | None]


class JsonRpcClient:
    """Async JSON-RPC client for one Snapcast server connection.

    Example:
        async with JsonRpcClient(Endpoint("192.168.1.100")) as rpc:
            status = await rpc.call("Server.GetStatus")
            async for notification in rpc.subscribe():
                print(notification.method)
    """

    _DEFAULT_TIMEOUT: float = 10.0

    def __init__(self, endpoint: Endpoint, connect_timeout: float = _DEFAULT_TIMEOUT) -> None:
        """Initialize the client.

        Args:
            endpoint: Server address.
            connect_timeout: Seconds to wait for the TCP handshake.
        """
        self._endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._transport: Transport | None = None
        self._notifications = NotificationChannel()
        self._correlator = RequestCorrelator(self._notifications)
        self._receive_task: asyncio.Task[None] | None = None

    @property
    def endpoint(self) -> Endpoint:
        """Return the server endpoint."""
        return self._endpoint

    @property
    def state(self) -> ConnectionState:
        """Return the connection state."""
        if self._transport is None:
            return ConnectionState.DISCONNECTED
        return self._transport.state

    @property
    def is_connected(self) -> bool:
        """Return True if calls can be issued."""
        return self.state is ConnectionState.OPEN

    @property
    def pending_count(self) -> int:
        """Return the number of calls awaiting a response."""
        return len(self._correlator)

    async def __aenter__(self) -> Self:
        """Enter async context (open)."""
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context (close)."""
        await self.close()

    async def open(self) -> None:
        """Connect to the server and start receiving.

        Calling ``open`` on an open client does nothing. After a fault or a
        close a new connection is made with a fresh decoder.

        Raises:
            ConnectError: If the connection cannot be established.
        """
        if self.is_connected:
            return
        # Calls and subscriptions of the old connection already ended with it
        await self._release()

        transport = Transport(self._endpoint, self._connect_timeout)
        self._transport = transport
        await transport.open()
        self._receive_task = asyncio.create_task(
            self._receive_loop(transport, FrameDecoder()),
            name=f"snapmixer-receive-{self._endpoint}",
        )

    async def close(self) -> None:
        """Close the connection, failing any call still waiting."""
        await self._shutdown(ConnectionLost("Connection closed"))

    def subscribe(self) -> Subscription:
        """Subscribe to unsolicited messages from the server.

        The subscription ends (raising ``ConnectionLost``) when the current
        connection faults or is closed.
        """
        return self._notifications.subscribe()

    def on_notification(self, handler: NotificationHandler) -> "asyncio.Task[None]":
        """Feed every unsolicited message to ``handler`` from a background task.

        The handler may be a plain function or a coroutine function. The task
        finishes when the subscription ends; cancel it to unsubscribe.

        Returns:
            The task running the subscription.
        """
        subscription = self.subscribe()

        async def pump() -> None:
            try:
                async for notification in subscription:
                    try:
                        result = handler(notification)
                        if asyncio.iscoroutine(result):
                            await result
                    except Exception:
                        logger.exception(
                            "Notification handler failed on %r", notification.method
                        )
            except ConnectionLost as e:
                logger.debug("Notification handler stopped: %s", e)
            finally:
                subscription.close()

        return asyncio.create_task(pump())

    async def call(self, method: str, params: Params | None = None) -> Any:
        """Call a JSON-RPC method and wait for its result.

        Args:
            method: Method name.
            params: Method parameters.

        Returns:
            The ``result`` member of the response.

        Raises:
            NotConnected: If the connection is not open (nothing is sent).
            ConnectionLost: If the connection faults before the response.
            RemoteError: If the server answers with an error object.
        """
        transport = self._transport
        if transport is None or not transport.is_open:
            raise NotConnected(f"Not connected to {self._endpoint}")

        request = JsonRpcRequest.call(method, params, self._next_id())
        future = self._correlator.register(request.id)
        try:
            logger.debug("-> %s %s (id=%s)", method, params, request.id)
            try:
                await transport.write(encode_message(request.to_dict()))
            except ConnectionLost as e:
                self._correlator.discard(request.id)
                await self._fault(transport, e)
                raise
            message = await future
        finally:
            self._correlator.discard(request.id)

        response = JsonRpcResponse.from_dict(message)
        if response.error is not None:
            raise RemoteError(response.error, method)
        return response.result

    async def notify(self, method: str, params: Params | None = None) -> None:
        """Send a notification; no response is expected or awaited.

        Raises:
            NotConnected: If the connection is not open.
            ConnectionLost: If the write fails.
        """
        transport = self._transport
        if transport is None or not transport.is_open:
            raise NotConnected(f"Not connected to {self._endpoint}")

        notification = JsonRpcNotification(method, params)
        logger.debug("-> %s %s (notification)", method, params)
        try:
            await transport.write(encode_message(notification.to_dict()))
        except ConnectionLost as e:
            await self._fault(transport, e)
            raise

    def _next_id(self) -> str:
        """Generate a request id unique among outstanding calls."""
        request_id = str(uuid.uuid4())
        while request_id in self._correlator:
            request_id = str(uuid.uuid4())
        return request_id

    async def _receive_loop(self, transport: Transport, decoder: FrameDecoder) -> None:
        """Decode the inbound stream and route each message."""
        error: ConnectionLost
        try:
            async for message in decode_stream(transport.chunks(), decoder):
                if self._correlator.dispatch(message):
                    logger.debug("<- response (id=%s)", message.get("id"))
                else:
                    logger.debug("<- notification %s", _method_of(message))
            error = ConnectionLost(f"Connection closed by {self._endpoint}")
        except DecodeError as e:
            logger.error("Dropping connection to %s: %s", self._endpoint, e)
            error = ConnectionLost(f"Invalid data from {self._endpoint}")
            error.__cause__ = e
        except ConnectionLost as e:
            error = e

        logger.warning("Lost connection to %s: %s", self._endpoint, error)
        await self._fault(transport, error)

    async def _fault(self, transport: Transport, error: ConnectionLost) -> None:
        """Fail everything tied to ``transport`` after an I/O or decode error."""
        if transport is not self._transport:
            return
        await transport.abort()
        self._correlator.fail_all(error)
        self._notifications.close(error)

    async def _shutdown(self, error: ConnectionLost) -> None:
        await self._release()
        self._correlator.fail_all(error)
        self._notifications.close(error)

    async def _release(self) -> None:
        """Stop the receive task and close the transport."""
        task, self._receive_task = self._receive_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        if self._transport is not None:
            await self._transport.close()


def _method_of(message: Any) -> str:
    if isinstance(message, dict):
        return str(message.get("method", ""))
    return type(message).__name__
