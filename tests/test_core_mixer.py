"""Tests for the mixer controller."""

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

from snapmixer.api.client import SnapcastClient
from snapmixer.api.errors import ConnectionLost, RemoteError
from snapmixer.api.notifications import NotificationChannel
from snapmixer.api.protocol import JsonRpcError, JsonRpcNotification
from snapmixer.core.mixer import MixerController

from .conftest import FakeRpc


async def settle() -> None:
    """Let pending tasks run."""
    for _ in range(20):
        await asyncio.sleep(0)


@pytest.fixture
def rpc(sample_status: dict[str, Any]) -> FakeRpc:
    """Return a fake server serving the sample tree."""
    return FakeRpc(sample_status["server"]["groups"])


@pytest.fixture
def changes() -> list[int]:
    """Collect change notifications."""
    return []


@pytest.fixture
def controller(rpc: FakeRpc, changes: list[int]) -> MixerController:
    """Return a controller over the fake server."""
    return MixerController(
        SnapcastClient(rpc),  # type: ignore[arg-type]
        on_change=lambda: changes.append(1),
        volume_debounce=0.05,
    )


def volume_of(controller: MixerController, client_id: str) -> int:
    """Return a client's volume in the controller's snapshot."""
    assert controller.state is not None
    client = controller.state.get_client(client_id)
    assert client is not None
    return client.volume


class TestRefreshAndFocus:
    """Tests for state refresh and focus movement."""

    @pytest.mark.asyncio
    async def test_refresh(self, controller: MixerController, changes: list[int]) -> None:
        """Test that refresh loads the tree and reports a change."""
        assert controller.state is None
        assert await controller.refresh() is True
        assert controller.state is not None
        assert controller.state.client_count == 3
        assert controller.fractional_volumes == {"c-tv": 40.0, "c-sofa": 80.0, "c-kitchen": 30.0}
        assert changes

    def test_no_focus_before_refresh(self, controller: MixerController) -> None:
        """Test that focus cannot move without state."""
        assert controller.move_focus(1) is False
        assert controller.move_focus_group(1) is False
        assert controller.focus is None

    @pytest.mark.asyncio
    async def test_move_focus(self, controller: MixerController) -> None:
        """Test moving through groups and clients in display order."""
        await controller.refresh()
        visited = []
        for _ in range(5):
            controller.move_focus(1)
            visited.append(controller.focus)
        assert visited == ["g-kitchen", "c-kitchen", "g-living", "c-sofa", "c-tv"]

        # Clamped at the end
        assert controller.move_focus(1) is False
        assert controller.focus == "c-tv"

    @pytest.mark.asyncio
    async def test_move_focus_back_from_nothing(self, controller: MixerController) -> None:
        """Test that moving back without focus starts at the last entry."""
        await controller.refresh()
        controller.move_focus(-1)
        assert controller.focus == "c-tv"

    @pytest.mark.asyncio
    async def test_move_focus_group(self, controller: MixerController) -> None:
        """Test jumping between groups."""
        await controller.refresh()
        controller.move_focus_group(1)
        assert controller.focus == "g-kitchen"
        controller.move_focus_group(1)
        assert controller.focus == "g-living"
        controller.move_focus_group(-1)
        assert controller.focus == "g-kitchen"

    @pytest.mark.asyncio
    async def test_move_focus_group_from_client(self, controller: MixerController) -> None:
        """Test that from a client, back goes to its group and forward to the next."""
        await controller.refresh()
        controller.move_focus(2)
        assert controller.focus == "c-kitchen"
        controller.move_focus_group(-1)
        assert controller.focus == "g-kitchen"

        controller.move_focus(1)
        controller.move_focus_group(1)
        assert controller.focus == "g-living"

    @pytest.mark.asyncio
    async def test_focus_dropped_when_gone(
        self, controller: MixerController, rpc: FakeRpc
    ) -> None:
        """Test that focus is cleared when its target disappears."""
        await controller.refresh()
        controller.move_focus(-1)
        rpc.groups.pop(0)
        await controller.refresh()
        assert controller.focus is None


class TestVolumeActions:
    """Tests for volume and mute actions."""

    @pytest.mark.asyncio
    async def test_nothing_focused(self, controller: MixerController, rpc: FakeRpc) -> None:
        """Test actions without focus do nothing."""
        await controller.refresh()
        assert await controller.adjust_volume(5) is False
        assert await controller.toggle_mute() is False
        assert rpc.sent("Client.SetVolume") == []

    @pytest.mark.asyncio
    async def test_adjust_client_volume(self, controller: MixerController) -> None:
        """Test adjusting the focused client."""
        await controller.refresh()
        controller.move_focus(-1)  # c-tv at 40
        assert await controller.adjust_volume(5) is True
        assert volume_of(controller, "c-tv") == 45

    @pytest.mark.asyncio
    async def test_set_client_volume_clamped(self, controller: MixerController) -> None:
        """Test snapping the focused client past the top."""
        await controller.refresh()
        controller.move_focus(-1)
        await controller.set_volume(120)
        assert volume_of(controller, "c-tv") == 100
        assert controller.fractional_volumes["c-tv"] == 100.0

    @pytest.mark.asyncio
    async def test_adjust_group_volume(self, controller: MixerController) -> None:
        """Test that a focused group scales its clients by the loudest."""
        await controller.refresh()
        controller.move_focus(3)  # g-living: sofa 80, tv 40
        assert controller.focus == "g-living"
        assert await controller.adjust_volume(-40) is True
        assert volume_of(controller, "c-sofa") == 40
        assert volume_of(controller, "c-tv") == 20

    @pytest.mark.asyncio
    async def test_group_steps_do_not_drift(self, controller: MixerController) -> None:
        """Test that down then up returns to the original levels."""
        await controller.refresh()
        controller.move_focus(3)
        await controller.adjust_volume(-1)
        assert controller.fractional_volumes["c-tv"] == pytest.approx(39.5)
        await controller.adjust_volume(1)
        assert controller.fractional_volumes["c-tv"] == pytest.approx(40.0)
        assert volume_of(controller, "c-tv") == 40
        assert volume_of(controller, "c-sofa") == 80

    @pytest.mark.asyncio
    async def test_set_group_volume(self, controller: MixerController) -> None:
        """Test snapping a focused group."""
        await controller.refresh()
        controller.move_focus(3)
        await controller.set_volume(100)
        assert volume_of(controller, "c-sofa") == 100
        assert volume_of(controller, "c-tv") == 50

    @pytest.mark.asyncio
    async def test_toggle_client_mute(self, controller: MixerController) -> None:
        """Test muting the focused client."""
        await controller.refresh()
        controller.move_focus(2)  # c-kitchen, muted
        assert await controller.toggle_mute() is True
        assert controller.state is not None
        kitchen = controller.state.get_client("c-kitchen")
        assert kitchen is not None
        assert kitchen.muted is False

    @pytest.mark.asyncio
    async def test_toggle_mute_on_group(self, controller: MixerController, rpc: FakeRpc) -> None:
        """Test that toggle_mute on a group mutes the group."""
        await controller.refresh()
        controller.move_focus(3)
        await controller.toggle_mute()
        assert rpc.sent("Group.SetMute") == [{"id": "g-living", "mute": True}]

    @pytest.mark.asyncio
    async def test_toggle_group_mute_from_client(
        self, controller: MixerController, rpc: FakeRpc
    ) -> None:
        """Test that toggle_group_mute acts on the focused client's group."""
        await controller.refresh()
        controller.move_focus(-1)  # c-tv
        assert await controller.toggle_group_mute() is True
        assert rpc.sent("Group.SetMute") == [{"id": "g-living", "mute": True}]
        assert controller.state is not None
        group = controller.state.get_group("g-living")
        assert group is not None
        assert group.muted is True


class TestErrors:
    """Tests for error reporting."""

    @pytest.mark.asyncio
    async def test_remote_error_is_listed(
        self, controller: MixerController, rpc: FakeRpc
    ) -> None:
        """Test that a server error is shown and can be dismissed."""
        await controller.refresh()
        controller.move_focus(-1)
        rpc.error = RemoteError(JsonRpcError(-32603, "Internal error"), "Client.SetVolume")

        assert await controller.adjust_volume(1) is False
        assert len(controller.errors) == 1
        assert "Internal error" in controller.errors[0]
        assert controller.connection_lost is False

        assert controller.dismiss() is True
        assert controller.errors == []
        assert controller.dismiss() is False

    @pytest.mark.asyncio
    async def test_connection_error_sets_flag(
        self, controller: MixerController, rpc: FakeRpc
    ) -> None:
        """Test that a connection error is reported as connection loss."""
        await controller.refresh()
        controller.move_focus(-1)
        rpc.error = ConnectionLost("gone")

        assert await controller.toggle_mute() is False
        assert controller.connection_lost is True
        assert controller.errors == []

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_state(
        self, controller: MixerController, rpc: FakeRpc
    ) -> None:
        """Test that a failed refresh keeps the previous snapshot."""
        await controller.refresh()
        state = controller.state
        rpc.error = ConnectionLost("gone")
        assert await controller.refresh() is False
        assert controller.state is state


class TestWatch:
    """Tests for notification-driven refresh."""

    @pytest.mark.asyncio
    async def test_refresh_on_notifications(
        self, controller: MixerController, rpc: FakeRpc
    ) -> None:
        """Test immediate and debounced refreshes, then connection loss."""
        channel = NotificationChannel()
        task = asyncio.create_task(controller.watch(SimpleNamespace(subscribe=channel.subscribe)))
        await settle()

        channel.publish(JsonRpcNotification("Server.OnUpdate"))
        await settle()
        assert len(rpc.sent("Server.GetStatus")) == 1

        for _ in range(3):
            channel.publish(JsonRpcNotification("Client.OnVolumeChanged"))
        await settle()
        assert len(rpc.sent("Server.GetStatus")) == 1
        await asyncio.sleep(0.15)
        assert len(rpc.sent("Server.GetStatus")) == 2

        channel.close(ConnectionLost("gone"))
        await asyncio.wait_for(task, timeout=1.0)
        assert controller.connection_lost is True
