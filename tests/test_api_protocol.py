"""Tests for JSON-RPC protocol types."""

import json

from snapmixer.api.protocol import (
    MESSAGE_TERMINATOR,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    encode_message,
)


class TestJsonRpcRequest:
    """Tests for JsonRpcRequest."""

    def test_to_dict_without_params(self) -> None:
        """Test that params is omitted when not given."""
        request = JsonRpcRequest(id="abc", method="Server.GetStatus")
        assert request.to_dict() == {
            "jsonrpc": "2.0",
            "id": "abc",
            "method": "Server.GetStatus",
        }

    def test_to_dict_with_params(self) -> None:
        """Test converting a request with params to dict."""
        params = {"id": "client-1", "volume": {"percent": 50}}
        request = JsonRpcRequest(id="abc", method="Client.SetVolume", params=params)
        assert request.to_dict()["params"] == params

    def test_call_factory(self) -> None:
        """Test using the call factory method."""
        request = JsonRpcRequest.call("Client.GetStatus", {"id": "c1"}, request_id="r5")
        assert request.id == "r5"
        assert request.method == "Client.GetStatus"
        assert request.params == {"id": "c1"}


class TestJsonRpcResponse:
    """Tests for JsonRpcResponse."""

    def test_from_dict_success(self) -> None:
        """Test parsing a successful response."""
        response = JsonRpcResponse.from_dict(
            {"jsonrpc": "2.0", "id": "r1", "result": {"volume": {"percent": 10}}}
        )
        assert response.id == "r1"
        assert response.result == {"volume": {"percent": 10}}
        assert response.is_success is True

    def test_from_dict_error(self) -> None:
        """Test parsing an error response."""
        response = JsonRpcResponse.from_dict(
            {
                "jsonrpc": "2.0",
                "id": "r1",
                "error": {"code": -32602, "message": "Invalid params", "data": "id"},
            }
        )
        assert response.is_success is False
        assert response.error == JsonRpcError(-32602, "Invalid params", "id")

    def test_from_dict_null_result(self) -> None:
        """Test that a null result is still a success."""
        response = JsonRpcResponse.from_dict({"jsonrpc": "2.0", "id": "r1", "result": None})
        assert response.is_success is True
        assert response.result is None


class TestJsonRpcError:
    """Tests for JsonRpcError."""

    def test_error_str(self) -> None:
        """Test error string representation."""
        error = JsonRpcError(code=-32601, message="Method not found")
        assert str(error) == "[-32601] Method not found"

    def test_error_str_with_data(self) -> None:
        """Test error string representation with data."""
        error = JsonRpcError(code=-1, message="Error", data="details")
        assert str(error) == "[-1] Error: details"

    def test_from_dict_defaults(self) -> None:
        """Test defaults for missing members."""
        error = JsonRpcError.from_dict({})
        assert error.code == -1
        assert error.message == "Unknown error"

    def test_from_non_dict(self) -> None:
        """Test that a bare string error is accepted."""
        error = JsonRpcError.from_dict("boom")
        assert error.code == -1
        assert error.message == "boom"


class TestJsonRpcNotification:
    """Tests for JsonRpcNotification."""

    def test_to_dict_has_no_id(self) -> None:
        """Test that an outbound notification carries no id."""
        notification = JsonRpcNotification("Client.SetVolume", {"id": "c1"})
        assert notification.to_dict() == {
            "jsonrpc": "2.0",
            "method": "Client.SetVolume",
            "params": {"id": "c1"},
        }

    def test_from_dict(self) -> None:
        """Test parsing a notification from dict."""
        data = {
            "jsonrpc": "2.0",
            "method": "Client.OnVolumeChanged",
            "params": {"id": "c1", "volume": {"percent": 20, "muted": False}},
        }
        notification = JsonRpcNotification.from_dict(data)
        assert notification.method == "Client.OnVolumeChanged"
        assert notification.params == data["params"]
        assert notification.raw is data

    def test_from_message_response_without_method(self) -> None:
        """Test that a stray response becomes a notification with no method."""
        data = {"jsonrpc": "2.0", "id": "unknown", "result": 1}
        notification = JsonRpcNotification.from_message(data)
        assert notification.method == ""
        assert notification.raw == data

    def test_from_message_array(self) -> None:
        """Test that a batch array is kept as raw."""
        notification = JsonRpcNotification.from_message([{"method": "a"}])
        assert notification.method == ""
        assert notification.raw == [{"method": "a"}]


class TestEncodeMessage:
    """Tests for encode_message."""

    def test_compact_json_with_terminator(self) -> None:
        """Test that messages are compact JSON followed by CRLF."""
        data = encode_message({"jsonrpc": "2.0", "id": "1", "method": "Server.GetStatus"})
        assert data.endswith(MESSAGE_TERMINATOR)
        assert b" " not in data
        assert json.loads(data) == {"jsonrpc": "2.0", "id": "1", "method": "Server.GetStatus"}
