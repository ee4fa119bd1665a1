"""Snapcast control API on top of the JSON-RPC client.

The facade holds no state of its own: every query goes to the server, so two
calls never disagree because of a stale cache. Read-modify-write helpers
(``adjust_client_volume``, ``toggle_client_mute``...) take two round-trips
and do not detect a change made by someone else in between.
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from snapmixer.api.rpc import JsonRpcClient
from snapmixer.models.client import Client
from snapmixer.models.group import Group
from snapmixer.models.server_state import ServerState

logger = logging.getLogger(__name__)

MIN_PERCENT = 0
MAX_PERCENT = 100


def clamp_percent(value: float) -> int:
    """Round a volume half-up to an integer percent within 0-100.

    Raises:
        ValueError: If ``value`` is NaN or infinite.
    """
    if not math.isfinite(value):
        raise ValueError(f"Invalid volume {value!r}")
    return max(MIN_PERCENT, min(MAX_PERCENT, math.floor(value + 0.5)))


class SnapcastClient:
    """Semantic operations on a Snapcast server's clients and groups.

    Example:
        async with JsonRpcClient(Endpoint("192.168.1.100")) as rpc:
            snapcast = SnapcastClient(rpc)
            await snapcast.adjust_client_volume("00:11:22:33:44:55", -5)
    """

    def __init__(self, rpc: JsonRpcClient) -> None:
        """Initialize the facade.

        Args:
            rpc: Connected (or connectable) JSON-RPC client.
        """
        self._rpc = rpc

    @property
    def rpc(self) -> JsonRpcClient:
        """Return the underlying RPC client."""
        return self._rpc

    # -- Server ---------------------------------------------------------------

    async def get_server_status(self) -> dict[str, Any]:
        """Get the full server tree (Server.GetStatus)."""
        return await self._rpc.call("Server.GetStatus")

    async def get_server_state(self) -> ServerState:
        """Get the server tree parsed into models."""
        return parse_server_status(await self.get_server_status())

    # -- Clients --------------------------------------------------------------

    async def get_client_status(self, client_id: str) -> dict[str, Any]:
        """Get one client's status (Client.GetStatus).

        Returns:
            The ``client`` object of the result.
        """
        result = await self._rpc.call("Client.GetStatus", {"id": client_id})
        return result["client"]

    async def get_client_volume_percent(self, client_id: str) -> int:
        """Return the client's current volume in percent."""
        client = await self.get_client_status(client_id)
        return client["config"]["volume"]["percent"]

    async def get_client_muted(self, client_id: str) -> bool:
        """Return True if the client is muted."""
        client = await self.get_client_status(client_id)
        return client["config"]["volume"]["muted"]

    async def set_client_muted(self, client_id: str, muted: bool) -> Any:
        """Set only the client's mute flag (Client.SetVolume).

        The volume percent is left untouched.
        """
        return await self._rpc.call(
            "Client.SetVolume",
            {"id": client_id, "volume": {"muted": muted}},
        )

    async def set_client_volume_percent(self, client_id: str, percent: float) -> Any:
        """Set the client's volume (Client.SetVolume).

        Args:
            client_id: ID of the client.
            percent: Requested volume; clamped to 0-100 before sending.
        """
        clamped = clamp_percent(percent)
        if clamped != percent:
            logger.debug("Volume %s for %s clamped to %d", percent, client_id, clamped)
        return await self._rpc.call(
            "Client.SetVolume",
            {"id": client_id, "volume": {"percent": clamped}},
        )

    async def adjust_client_volume(self, client_id: str, delta: float) -> Any:
        """Change the client's volume by ``delta`` percent points (clamped)."""
        current = await self.get_client_volume_percent(client_id)
        return await self.set_client_volume_percent(client_id, current + delta)

    async def toggle_client_mute(self, client_id: str) -> Any:
        """Invert the client's mute flag."""
        muted = await self.get_client_muted(client_id)
        return await self.set_client_muted(client_id, not muted)

    # -- Groups ---------------------------------------------------------------

    async def get_group_status(self, group_id: str) -> dict[str, Any]:
        """Get one group's status (Group.GetStatus).

        Returns:
            The ``group`` object of the result.
        """
        result = await self._rpc.call("Group.GetStatus", {"id": group_id})
        return result["group"]

    async def get_group_muted(self, group_id: str) -> bool:
        """Return True if the group is muted."""
        group = await self.get_group_status(group_id)
        return group["muted"]

    async def set_group_muted(self, group_id: str, muted: bool) -> Any:
        """Set the group mute state (Group.SetMute)."""
        return await self._rpc.call("Group.SetMute", {"id": group_id, "mute": muted})

    async def toggle_group_mute(self, group_id: str) -> Any:
        """Invert the group's mute state."""
        muted = await self.get_group_muted(group_id)
        return await self.set_group_muted(group_id, not muted)

    async def set_group_volume_percent(
        self,
        group_id: str,
        percent: float,
        base_volumes: Mapping[str, float] | None = None,
    ) -> dict[str, float]:
        """Scale every client of a group so the loudest lands on ``percent``.

        Relative levels between clients are preserved as far as clamping
        allows. Passing the fractional volumes returned by a previous call as
        ``base_volumes`` keeps repeated small steps from drifting due to
        rounding. If every client is silent they are all set to ``percent``.

        Args:
            group_id: ID of the group.
            percent: Target volume of the loudest client (clamped to 0-100).
            base_volumes: Optional fractional volume per client ID, used
                instead of the reported percent.

        Returns:
            The new fractional volume per client ID.
        """
        group = await self.get_group_status(group_id)
        bases = _base_volumes(group, base_volumes)
        return await self._scale_group(group_id, bases, percent)

    async def adjust_group_volume(
        self,
        group_id: str,
        delta: float,
        base_volumes: Mapping[str, float] | None = None,
    ) -> dict[str, float]:
        """Move the loudest client of a group by ``delta``, scaling the others.

        Returns:
            The new fractional volume per client ID.
        """
        group = await self.get_group_status(group_id)
        bases = _base_volumes(group, base_volumes)
        if not bases:
            return {}
        return await self._scale_group(group_id, bases, max(bases.values()) + delta)

    async def _scale_group(
        self,
        group_id: str,
        bases: dict[str, float],
        percent: float,
    ) -> dict[str, float]:
        if not bases:
            logger.debug("Group %s has no clients; nothing to scale", group_id)
            return {}

        target = float(max(MIN_PERCENT, min(MAX_PERCENT, percent)))
        loudest = max(bases.values())
        if loudest <= 0:
            new_volumes = dict.fromkeys(bases, target)
        else:
            factor = target / loudest
            new_volumes = {
                client_id: max(0.0, min(float(MAX_PERCENT), base * factor))
                for client_id, base in bases.items()
            }

        for client_id, volume in new_volumes.items():
            await self.set_client_volume_percent(client_id, volume)
        return new_volumes


def _base_volumes(
    group: dict[str, Any],
    overrides: Mapping[str, float] | None,
) -> dict[str, float]:
    bases: dict[str, float] = {}
    for client in group.get("clients", []):
        client_id = client.get("id", "")
        reported = client.get("config", {}).get("volume", {}).get("percent", 0)
        if overrides is not None and client_id in overrides:
            bases[client_id] = float(overrides[client_id])
        else:
            bases[client_id] = float(reported)
    return bases


def _parse_client(data: dict[str, Any]) -> Client:
    config = data.get("config", {})
    host = data.get("host", {})
    volume = config.get("volume", {})
    return Client(
        id=data.get("id", ""),
        host_name=host.get("name", ""),
        name=config.get("name", ""),
        volume=volume.get("percent", 0),
        muted=volume.get("muted", False),
        connected=data.get("connected", True),
    )


def parse_server_status(data: dict[str, Any]) -> ServerState:
    """Parse a Server.GetStatus result into a ServerState.

    Snapcast's response structure:
    {
      "server": {
        "groups": [{"id": "...", "name": "...", "muted": false, "clients": [...]}],
        "server": {
          "snapserver": {"version": "..."},
          "host": {"name": "...", "ip": "..."}
        },
        "streams": [...]
      }
    }

    Args:
        data: Raw result from the server.

    Returns:
        ServerState with parsed models.
    """
    server_data = data.get("server", {})
    inner_server = server_data.get("server", {})
    snapserver_info = inner_server.get("snapserver", {})
    host_info = inner_server.get("host", {})

    groups: list[Group] = []
    clients: list[Client] = []
    for g in server_data.get("groups", []):
        group_clients = [_parse_client(c) for c in g.get("clients", [])]
        clients.extend(group_clients)
        groups.append(
            Group(
                id=g.get("id", ""),
                name=g.get("name", ""),
                muted=g.get("muted", False),
                client_ids=[c.id for c in group_clients],
            )
        )

    return ServerState(
        groups=groups,
        clients=clients,
        version=snapserver_info.get("version", ""),
        host=host_info.get("name", ""),
    )
