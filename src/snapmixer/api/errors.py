"""Exceptions raised by the JSON-RPC layer.

Connection-level failures (``RpcConnectionError`` and its subclasses) fault
the whole connection and fail every pending call. ``RemoteError`` is an
application-level failure reported by the server for a single call and leaves
the connection usable.
"""

import copy

from snapmixer.api.protocol import JsonRpcError


class RpcError(Exception):
    """Base class for all errors raised by the RPC layer."""


class RpcConnectionError(RpcError, ConnectionError):
    """The connection is unusable."""


class ConnectError(RpcConnectionError):
    """The initial connection attempt failed."""


class ConnectionLost(RpcConnectionError):
    """An established connection was closed or faulted."""


class NotConnected(RpcConnectionError):
    """A call was attempted while the connection is not open."""


class DecodeError(RpcError, ValueError):
    """Received bytes could not be decoded as JSON."""


class RemoteError(RpcError):
    """The server answered a call with a JSON-RPC error object."""

    def __init__(self, error: JsonRpcError, method: str = "") -> None:
        self.error = error
        self.method = method
        prefix = f"{method} failed: " if method else ""
        super().__init__(f"{prefix}{error}")

    @property
    def code(self) -> int:
        """Return the JSON-RPC error code."""
        return self.error.code

    @property
    def message(self) -> str:
        """Return the JSON-RPC error message."""
        return self.error.message


def copy_error(error: BaseException) -> BaseException:
    """Return a fresh instance of ``error`` with the same cause.

    Each waiting task gets its own instance, so tracebacks collected while it
    propagates through one task do not leak into another.
    """
    clone = copy.copy(error)
    clone.__cause__ = error.__cause__
    clone.__traceback__ = None
    return clone
