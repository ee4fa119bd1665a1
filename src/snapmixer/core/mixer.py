"""Mixer controller - bridges key actions to Snapcast API calls.

The controller keeps what the terminal UI needs between redraws: the last
server snapshot, which group or client has focus, and the fractional volumes
used for proportional group scaling. Every action goes to the server; the
snapshot is refreshed from the server afterwards, never updated locally.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from snapmixer.api.client import SnapcastClient, clamp_percent
from snapmixer.api.errors import ConnectionLost, RemoteError, RpcConnectionError
from snapmixer.api.rpc import JsonRpcClient
from snapmixer.models.server_state import ServerState

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[], None]

# Seconds of quiet before volume notifications trigger a refresh
VOLUME_REFRESH_DEBOUNCE = 0.3


class MixerController:
    """Focus, volume and mute actions for the terminal mixer.

    Remote errors are collected in ``errors`` for display; connection errors
    set ``connection_lost`` instead, so the UI can tell a failed adjustment
    from a dead connection.

    Example:
        controller = MixerController(SnapcastClient(rpc))
        await controller.refresh()
        controller.move_focus(1)
        await controller.adjust_volume(5)
    """

    def __init__(
        self,
        snapcast: SnapcastClient,
        on_change: ChangeHandler | None = None,
        volume_debounce: float = VOLUME_REFRESH_DEBOUNCE,
    ) -> None:
        """Initialize the controller.

        Args:
            snapcast: The Snapcast API facade.
            on_change: Called whenever something visible changed.
            volume_debounce: Quiet period before a volume notification
                triggers a refresh, in seconds.
        """
        self._snapcast = snapcast
        self._on_change = on_change
        self._volume_debounce = volume_debounce
        self._refresh_task: asyncio.Task[None] | None = None
        self._state: ServerState | None = None
        self._focus: str | None = None
        self._fractional_volumes: dict[str, float] = {}
        self._errors: list[str] = []
        self._connection_lost = False

    @property
    def state(self) -> ServerState | None:
        """Return the last server snapshot."""
        return self._state

    @property
    def focus(self) -> str | None:
        """Return the focused group or client ID."""
        return self._focus

    @property
    def errors(self) -> list[str]:
        """Return error messages not yet dismissed."""
        return list(self._errors)

    @property
    def connection_lost(self) -> bool:
        """Return True once the connection to the server failed."""
        return self._connection_lost

    @property
    def fractional_volumes(self) -> dict[str, float]:
        """Return the fractional volume tracked per client ID."""
        return dict(self._fractional_volumes)

    def set_on_change(self, handler: ChangeHandler | None) -> None:
        """Set the change handler."""
        self._on_change = handler

    def dismiss(self) -> bool:
        """Clear error messages.

        Returns:
            True if there was anything to dismiss.
        """
        if not self._errors:
            return False
        self._errors.clear()
        self._changed()
        return True

    # -- Server state ---------------------------------------------------------

    async def refresh(self) -> bool:
        """Re-read the server state.

        Returns:
            True if the state was refreshed.
        """
        state = await self._run("refresh", self._snapcast.get_server_state())
        if state is None:
            return False
        self._state = state
        self._update_fractional_volumes(state)
        if self._focus is not None and self._focus not in state.focus_order():
            self._focus = None
        self._changed()
        return True

    def _update_fractional_volumes(self, state: ServerState) -> None:
        """Drop fractional volumes that no longer match the server."""
        for client in state.clients:
            fractional = self._fractional_volumes.get(client.id)
            if fractional is None or clamp_percent(fractional) != client.volume:
                self._fractional_volumes[client.id] = float(client.volume)

    async def watch(self, rpc: JsonRpcClient) -> None:
        """Refresh after server notifications until the connection ends.

        Volume notifications arrive in bursts while a key is held down, so
        they only trigger a refresh once they have been quiet for
        ``volume_debounce`` seconds. Other notifications refresh immediately.
        """
        try:
            async for notification in rpc.subscribe():
                if notification.method == "Client.OnVolumeChanged":
                    self._schedule_refresh(self._volume_debounce)
                else:
                    logger.debug("Notification %s; refreshing", notification.method)
                    await self.refresh()
        except ConnectionLost as e:
            logger.info("Stopped watching notifications: %s", e)
            self._connection_lost = True
            self._changed()
        finally:
            if self._refresh_task is not None:
                self._refresh_task.cancel()
                self._refresh_task = None

    def _schedule_refresh(self, delay: float) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = asyncio.create_task(self._refresh_later(delay))

    async def _refresh_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.refresh()

    # -- Focus ----------------------------------------------------------------

    def move_focus(self, delta: int) -> bool:
        """Move focus through groups and clients.

        Returns:
            True if the focus changed.
        """
        if self._state is None:
            return False
        return self._set_focus(_step(self._state.focus_order(), self._focus, delta))

    def move_focus_group(self, delta: int) -> bool:
        """Move focus from group to group.

        From a client, moving forward goes to the next group and moving back
        goes to the client's own group.

        Returns:
            True if the focus changed.
        """
        if self._state is None:
            return False
        group_ids = [g.id for g in self._state.sorted_groups()]
        current = self._focus
        if current is not None and current not in group_ids:
            parent = self._state.get_group_of_client(current)
            if parent is not None and parent.id in group_ids:
                index = group_ids.index(parent.id)
                target = index + delta + (0 if delta > 0 else 1)
                target = max(0, min(len(group_ids) - 1, target))
                return self._set_focus(group_ids[target])
            current = None
        return self._set_focus(_step(group_ids, current, delta))

    def _set_focus(self, focus: str | None) -> bool:
        if focus is None or focus == self._focus:
            return False
        self._focus = focus
        self._changed()
        return True

    # -- Actions --------------------------------------------------------------

    async def adjust_volume(self, delta: float) -> bool:
        """Change the focused client's (or group's) volume by ``delta``."""
        if self._state is None or self._focus is None:
            return False
        if self._state.get_group(self._focus) is not None:
            return await self._scale_group(
                self._snapcast.adjust_group_volume(
                    self._focus, delta, self._fractional_volumes
                )
            )
        if self._state.get_client(self._focus) is None:
            return False
        base = self._fractional_volumes.get(self._focus)
        if base is None:
            return await self._apply(
                "adjust volume", self._snapcast.adjust_client_volume(self._focus, delta)
            )
        return await self.set_volume(base + delta)

    async def set_volume(self, percent: float) -> bool:
        """Set the focused client's volume, or scale the focused group to it."""
        if self._state is None or self._focus is None:
            return False
        if self._state.get_group(self._focus) is not None:
            return await self._scale_group(
                self._snapcast.set_group_volume_percent(
                    self._focus, percent, self._fractional_volumes
                )
            )
        if self._state.get_client(self._focus) is None:
            return False
        target = max(0.0, min(100.0, float(percent)))
        if not await self._apply(
            "set volume", self._snapcast.set_client_volume_percent(self._focus, target)
        ):
            return False
        self._fractional_volumes[self._focus] = target
        return True

    async def toggle_mute(self) -> bool:
        """Toggle mute of the focused client or group."""
        if self._state is None or self._focus is None:
            return False
        if self._state.get_group(self._focus) is not None:
            return await self._apply(
                "toggle group mute", self._snapcast.toggle_group_mute(self._focus)
            )
        if self._state.get_client(self._focus) is None:
            return False
        return await self._apply(
            "toggle mute", self._snapcast.toggle_client_mute(self._focus)
        )

    async def toggle_group_mute(self) -> bool:
        """Toggle mute of the focused group, or of the focused client's group."""
        if self._state is None or self._focus is None:
            return False
        group = self._state.get_group(self._focus) or self._state.get_group_of_client(
            self._focus
        )
        if group is None:
            return False
        return await self._apply(
            "toggle group mute", self._snapcast.toggle_group_mute(group.id)
        )

    async def _scale_group(self, operation: Awaitable[dict[str, float]]) -> bool:
        new_volumes = await self._run("set group volume", operation)
        if new_volumes is None:
            return False
        self._fractional_volumes.update(new_volumes)
        await self.refresh()
        return True

    async def _apply(self, action: str, operation: Awaitable[Any]) -> bool:
        """Run an action and refresh the snapshot if it succeeded."""
        if await self._run(action, operation, failed=_FAILED) is _FAILED:
            return False
        await self.refresh()
        return True

    async def _run(self, action: str, operation: Awaitable[Any], failed: Any = None) -> Any:
        """Await an API call, recording its failure for display."""
        try:
            return await operation
        except RemoteError as e:
            logger.warning("Failed to %s: %s", action, e)
            self._errors.append(f"Failed to {action}: {e}")
        except RpcConnectionError as e:
            logger.warning("Connection error during %s: %s", action, e)
            self._connection_lost = True
        self._changed()
        return failed

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()


_FAILED = object()


def _step(ids: list[str], current: str | None, delta: int) -> str | None:
    """Return the ID ``delta`` places from ``current``, clamped to the ends.

    Without a current position, moving forward starts at the first ID and
    moving back at the last.
    """
    if not ids:
        return None
    if current is None or current not in ids:
        start = -1 if delta > 0 else len(ids)
    else:
        start = ids.index(current)
    return ids[max(0, min(len(ids) - 1, start + delta))]
