"""TCP byte-stream transport to a Snapcast server.

Snapcast exposes its JSON-RPC control API on a raw TCP socket (port 1705 by
default), not over HTTP or WebSocket.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any, Self

from snapmixer.api.errors import ConnectError, ConnectionLost, NotConnected
from snapmixer.models.endpoint import Endpoint

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle of a transport connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    FAULTED = "faulted"


class Transport:
    """A single duplex TCP connection.

    Example:
        async with Transport(Endpoint("192.168.1.100")) as transport:
            await transport.write(b'{"jsonrpc":"2.0","id":"1","method":"Server.GetStatus"}\\r\\n')
            async for chunk in transport.chunks():
                ...
    """

    _DEFAULT_TIMEOUT: float = 10.0
    _READ_CHUNK_SIZE: int = 4096

    def __init__(
        self,
        endpoint: Endpoint,
        connect_timeout: float = _DEFAULT_TIMEOUT,
        read_chunk_size: int = _READ_CHUNK_SIZE,
    ) -> None:
        """Initialize the transport.

        Args:
            endpoint: Server address.
            connect_timeout: Seconds to wait for the TCP handshake.
            read_chunk_size: Maximum bytes per received chunk.
        """
        self._endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._read_chunk_size = read_chunk_size
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._state = ConnectionState.DISCONNECTED

    @property
    def endpoint(self) -> Endpoint:
        """Return the server endpoint."""
        return self._endpoint

    @property
    def state(self) -> ConnectionState:
        """Return the connection state."""
        return self._state

    @property
    def is_open(self) -> bool:
        """Return True if the connection can be used."""
        return self._state is ConnectionState.OPEN

    async def __aenter__(self) -> Self:
        """Enter async context (open)."""
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context (close)."""
        await self.close()

    async def open(self) -> None:
        """Open the connection.

        Raises:
            ConnectError: If the connection cannot be established.
        """
        if self._state is ConnectionState.OPEN:
            return

        self._state = ConnectionState.CONNECTING
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self._endpoint.host, self._endpoint.port),
                timeout=self._connect_timeout,
            )
        except (OSError, TimeoutError) as e:
            self._state = ConnectionState.FAULTED
            self._reader = None
            self._writer = None
            raise ConnectError(f"Failed to connect to {self._endpoint}: {e}") from e

        self._state = ConnectionState.OPEN
        logger.info("Connected to %s", self._endpoint)

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield raw chunks as they arrive.

        The iterator ends on an orderly close by the peer and raises
        ``ConnectionLost`` on an I/O error. Either way the connection is
        faulted afterwards.

        Raises:
            NotConnected: If the connection is not open.
            ConnectionLost: On a read error.
        """
        reader = self._reader
        if reader is None or self._state is not ConnectionState.OPEN:
            raise NotConnected(f"Not connected to {self._endpoint}")

        while True:
            try:
                chunk = await reader.read(self._read_chunk_size)
            except OSError as e:
                self._mark_faulted()
                raise ConnectionLost(f"Connection to {self._endpoint} failed: {e}") from e
            if not chunk:
                logger.info("Server %s closed the connection", self._endpoint)
                self._mark_faulted()
                return
            yield chunk

    async def write(self, data: bytes) -> None:
        """Send bytes to the server.

        Raises:
            NotConnected: If the connection is not open.
            ConnectionLost: On a write error.
        """
        writer = self._writer
        if writer is None or self._state is not ConnectionState.OPEN:
            raise NotConnected(f"Not connected to {self._endpoint}")
        try:
            writer.write(data)
            await writer.drain()
        except OSError as e:
            self._mark_faulted()
            raise ConnectionLost(f"Write to {self._endpoint} failed: {e}") from e

    async def close(self) -> None:
        """Release the socket. Safe to call repeatedly."""
        writer, self._writer = self._writer, None
        self._reader = None
        if self._state is not ConnectionState.FAULTED:
            self._state = ConnectionState.DISCONNECTED
        if writer is None:
            return
        try:
            writer.close()
            await asyncio.wait_for(writer.wait_closed(), timeout=1.0)
        except (OSError, TimeoutError) as e:
            logger.debug("Expected error while closing %s: %s", self._endpoint, e)
        logger.info("Disconnected from %s", self._endpoint)

    async def abort(self) -> None:
        """Mark the connection faulted and release the socket."""
        self._mark_faulted()
        await self.close()

    def _mark_faulted(self) -> None:
        if self._state is ConnectionState.OPEN or self._state is ConnectionState.CONNECTING:
            self._state = ConnectionState.FAULTED
