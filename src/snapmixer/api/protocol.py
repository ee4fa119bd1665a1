"""JSON-RPC 2.0 message types for Snapcast communication."""

import json
from dataclasses import dataclass
from typing import Any

# Messages on the wire are terminated by CRLF. The terminator is only a
# convenience for humans; frames are delimited by JSON structure.
MESSAGE_TERMINATOR = b"\r\n"

Params = dict[str, Any] | list[Any]


@dataclass(frozen=True)
class JsonRpcRequest:
    """A JSON-RPC 2.0 request.

    Attributes:
        id: Request identifier, unique among outstanding calls.
        method: Method name to call.
        params: Method parameters (dict or list).
    """

    id: str
    method: str
    params: Params | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        result: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": self.id,
            "method": self.method,
        }
        if self.params is not None:
            result["params"] = self.params
        return result

    @classmethod
    def call(
        cls,
        method: str,
        params: Params | None = None,
        request_id: str = "1",
    ) -> "JsonRpcRequest":
        """Create a method call request."""
        return cls(id=request_id, method=method, params=params)


@dataclass(frozen=True)
class JsonRpcError:
    """A JSON-RPC 2.0 error object.

    Attributes:
        code: Error code.
        message: Error message.
        data: Additional error data.
    """

    code: int
    message: str
    data: Any = None

    def __str__(self) -> str:
        """Return error message representation."""
        if self.data:
            return f"[{self.code}] {self.message}: {self.data}"
        return f"[{self.code}] {self.message}"

    @classmethod
    def from_dict(cls, data: Any) -> "JsonRpcError":
        """Create an error from the ``error`` member of a response.

        Servers occasionally send a bare string instead of an object.
        """
        if not isinstance(data, dict):
            return cls(code=-1, message=str(data))
        return cls(
            code=data.get("code", -1),
            message=data.get("message", "Unknown error"),
            data=data.get("data"),
        )


@dataclass(frozen=True)
class JsonRpcResponse:
    """A JSON-RPC 2.0 response.

    Attributes:
        id: Request identifier matching the request.
        result: Result data (None if error).
        error: Error data (None if success).
    """

    id: str | int | None = None
    result: Any = None
    error: JsonRpcError | None = None

    @property
    def is_success(self) -> bool:
        """Return True if response indicates success."""
        return self.error is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JsonRpcResponse":
        """Create response from JSON dict."""
        error_data = data.get("error")
        error: JsonRpcError | None = None
        if error_data is not None:
            error = JsonRpcError.from_dict(error_data)
        return cls(
            id=data.get("id"),
            result=data.get("result"),
            error=error,
        )


@dataclass(frozen=True)
class JsonRpcNotification:
    """A JSON-RPC 2.0 notification.

    Outbound notifications carry no id and expect no answer. Inbound, any
    message that does not answer a pending call is delivered as a
    notification; ``raw`` keeps the decoded value as received.

    Attributes:
        method: Notification method name (empty if the message had none).
        params: Notification parameters.
        raw: The decoded message, for inbound notifications.
    """

    method: str
    params: Params | None = None
    raw: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict (no ``id`` member)."""
        result: dict[str, Any] = {"jsonrpc": "2.0", "method": self.method}
        if self.params is not None:
            result["params"] = self.params
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JsonRpcNotification":
        """Create notification from JSON dict."""
        return cls(
            method=data.get("method", ""),
            params=data.get("params"),
            raw=data,
        )

    @classmethod
    def from_message(cls, message: Any) -> "JsonRpcNotification":
        """Wrap any decoded value (object, batch array) as a notification."""
        if isinstance(message, dict):
            return cls.from_dict(message)
        return cls(method="", raw=message)


def encode_message(message: dict[str, Any]) -> bytes:
    """Serialize a message for the wire (compact JSON plus CRLF)."""
    return json.dumps(message, separators=(",", ":")).encode("utf-8") + MESSAGE_TERMINATOR
