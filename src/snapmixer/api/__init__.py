"""API client for Snapcast JSON-RPC over TCP."""

from snapmixer.api.client import SnapcastClient, clamp_percent, parse_server_status
from snapmixer.api.errors import (
    ConnectError,
    ConnectionLost,
    DecodeError,
    NotConnected,
    RemoteError,
    RpcConnectionError,
    RpcError,
)
from snapmixer.api.protocol import (
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
)
from snapmixer.api.rpc import JsonRpcClient
from snapmixer.api.transport import ConnectionState, Transport

__all__ = [
    "ConnectError",
    "ConnectionLost",
    "ConnectionState",
    "DecodeError",
    "JsonRpcClient",
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "NotConnected",
    "RemoteError",
    "RpcConnectionError",
    "RpcError",
    "SnapcastClient",
    "Transport",
    "clamp_percent",
    "parse_server_status",
]
