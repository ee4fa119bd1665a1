"""Test fixtures for snapmixer tests."""

import asyncio
import json
from typing import Any

import pytest

from snapmixer.api.errors import RemoteError
from snapmixer.api.protocol import JsonRpcError


class MockStreamReader:
    """Mock asyncio StreamReader returning canned chunks."""

    def __init__(self, chunks: list[bytes], error: OSError | None = None) -> None:
        self._chunks = list(chunks)
        self._error = error

    async def read(self, n: int = -1) -> bytes:
        """Return the next chunk, then EOF (or the configured error)."""
        await asyncio.sleep(0)
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        return b""


class MockStreamWriter:
    """Mock asyncio StreamWriter recording written data."""

    def __init__(self, error: OSError | None = None) -> None:
        self.data: list[bytes] = []
        self._closed = False
        self._error = error

    def write(self, data: bytes) -> None:
        """Record written data."""
        if self._error is not None:
            raise self._error
        self.data.append(data)

    async def drain(self) -> None:
        """Mock drain."""
        pass

    def close(self) -> None:
        """Mark as closed."""
        self._closed = True

    async def wait_closed(self) -> None:
        """Mock wait_closed."""
        pass

    def is_closing(self) -> bool:
        """Check if closing."""
        return self._closed

    def messages(self) -> list[dict[str, Any]]:
        """Return every written message decoded."""
        return [json.loads(line) for chunk in self.data for line in chunk.splitlines() if line]


class FakeRpc:
    """Stand-in for JsonRpcClient that serves a static server tree."""

    def __init__(self, groups: list[dict[str, Any]]) -> None:
        self.groups = groups
        self.calls: list[tuple[str, Any]] = []
        self.error: Exception | None = None

    def _client(self, client_id: str) -> dict[str, Any]:
        for group in self.groups:
            for client in group["clients"]:
                if client["id"] == client_id:
                    return client
        raise RemoteError(JsonRpcError(-32603, "Client not found"))

    def _group(self, group_id: str) -> dict[str, Any]:
        for group in self.groups:
            if group["id"] == group_id:
                return group
        raise RemoteError(JsonRpcError(-32603, "Group not found"))

    def sent(self, method: str) -> list[Any]:
        """Return params of every call to ``method``."""
        return [params for m, params in self.calls if m == method]

    async def call(self, method: str, params: Any = None) -> Any:
        """Answer a call from the in-memory tree (or raise ``error`` if set)."""
        self.calls.append((method, params))
        if self.error is not None:
            raise self.error
        if method == "Server.GetStatus":
            return {"server": {"groups": self.groups, "server": {}}}
        if method == "Client.GetStatus":
            return {"client": self._client(params["id"])}
        if method == "Group.GetStatus":
            return {"group": self._group(params["id"])}
        if method == "Client.SetVolume":
            volume = self._client(params["id"])["config"]["volume"]
            volume.update(params["volume"])
            return {"volume": dict(volume)}
        if method == "Group.SetMute":
            self._group(params["id"])["muted"] = params["mute"]
            return {"mute": params["mute"]}
        raise RemoteError(JsonRpcError(-32601, "Method not found"))


def make_client(
    client_id: str,
    volume: int = 50,
    muted: bool = False,
    name: str = "",
    host: str = "",
    connected: bool = True,
) -> dict[str, Any]:
    """Build a client object as Snapcast reports it."""
    return {
        "id": client_id,
        "connected": connected,
        "host": {"name": host or client_id, "ip": "192.168.1.10"},
        "config": {
            "name": name,
            "volume": {"percent": volume, "muted": muted},
        },
    }


def make_group(
    group_id: str,
    clients: list[dict[str, Any]],
    name: str = "",
    muted: bool = False,
) -> dict[str, Any]:
    """Build a group object as Snapcast reports it."""
    return {"id": group_id, "name": name, "muted": muted, "clients": clients}


@pytest.fixture
def sample_status() -> dict[str, Any]:
    """Return a Server.GetStatus result with two groups."""
    return {
        "server": {
            "groups": [
                make_group(
                    "g-living",
                    [
                        make_client("c-tv", 40, name="TV"),
                        make_client("c-sofa", 80, name="Sofa"),
                    ],
                    name="Living Room",
                ),
                make_group(
                    "g-kitchen",
                    [make_client("c-kitchen", 30, muted=True, name="Kitchen")],
                    name="Kitchen",
                ),
            ],
            "server": {
                "snapserver": {"version": "0.27.0"},
                "host": {"name": "snapserver", "ip": "192.168.1.2"},
            },
            "streams": [],
        }
    }


@pytest.fixture
def mock_connection():
    """Create mock connection for testing."""

    def _mock_connection(chunks: list[bytes], error: OSError | None = None):
        reader = MockStreamReader(chunks, error)
        writer = MockStreamWriter()
        return reader, writer

    return _mock_connection
