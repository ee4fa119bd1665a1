"""Full-screen terminal mixer built on prompt_toolkit."""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from contextlib import suppress
from typing import Any

from prompt_toolkit.application import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings, KeyPressEvent
from prompt_toolkit.layout import (
    ConditionalContainer,
    Float,
    FloatContainer,
    FormattedTextControl,
    HSplit,
    Layout,
    Window,
)
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Frame

from snapmixer.api.rpc import JsonRpcClient
from snapmixer.core.mixer import MixerController
from snapmixer.ui.render import StyleAndText, render_help, render_mixer

logger = logging.getLogger(__name__)

STYLE = Style.from_dict(
    {
        "title": "bold",
        "group": "#888888 bold",
        "group.focused": "bg:ansiblue #ffffff bold",
        "name": "#ffffff",
        "name.unnamed": "#999999",
        "disconnected": "italic",
        "muted": "ansired bold",
        "bar": "#666666",
        "bar.focused": "ansicyan",
        "error": "ansired",
        "banner": "bg:ansired #ffffff bold",
        "dim": "#888888",
        "help.key": "bold",
    }
)

_SNAP_KEYS = "1234567890"


class MixerApp:
    """Terminal UI showing one volume bar per client.

    Example:
        app = MixerApp(controller, rpc)
        await app.run()
    """

    def __init__(
        self,
        controller: MixerController,
        rpc: JsonRpcClient,
        step: int = 1,
        large_step: int = 5,
    ) -> None:
        """Initialize the app.

        Args:
            controller: Mixer state and actions.
            rpc: RPC client whose notifications trigger refreshes.
            step: Volume change per arrow key press.
            large_step: Volume change per shifted arrow key press.
        """
        self._controller = controller
        self._rpc = rpc
        self._step = step
        self._large_step = large_step
        self._show_help = False
        self._application = self._build_application()

    @property
    def application(self) -> Application[None]:
        """Return the prompt_toolkit application."""
        return self._application

    @property
    def help_visible(self) -> bool:
        """Return True while the help overlay is shown."""
        return self._show_help

    def _mixer_text(self) -> list[StyleAndText]:
        width = self._application.output.get_size().columns
        title: list[StyleAndText] = [
            ("class:title", f" Snapmixer - {self._rpc.endpoint}"),
            ("class:dim", "   (? for help)\n\n"),
        ]
        return title + render_mixer(
            self._controller.state,
            self._controller.focus,
            width,
            errors=self._controller.errors,
            connection_lost=self._controller.connection_lost,
        )

    def _build_application(self) -> Application[None]:
        help_visible = Condition(lambda: self._show_help)

        mixer = Window(FormattedTextControl(self._mixer_text), wrap_lines=False)
        help_frame = ConditionalContainer(
            Frame(Window(FormattedTextControl(render_help)), title="Help"),
            filter=help_visible,
        )
        body = FloatContainer(
            content=HSplit([mixer]),
            floats=[Float(content=help_frame)],
        )
        return Application(
            layout=Layout(body),
            key_bindings=self._build_key_bindings(),
            style=STYLE,
            full_screen=True,
            mouse_support=False,
        )

    def _build_key_bindings(self) -> KeyBindings:  # noqa: PLR0915
        kb = KeyBindings()
        help_visible = Condition(lambda: self._show_help)
        mixer_active = ~help_visible
        controller = self._controller

        @kb.add("q")
        @kb.add("c-c")
        def _quit(event: KeyPressEvent) -> None:
            event.app.exit()

        @kb.add("escape")
        def _dismiss(event: KeyPressEvent) -> None:
            if self._show_help:
                self._show_help = False
            elif not controller.dismiss():
                event.app.exit()

        @kb.add("?")
        @kb.add("f1")
        def _toggle_help(event: KeyPressEvent) -> None:
            self._show_help = not self._show_help

        @kb.add("up", filter=mixer_active)
        @kb.add("k", filter=mixer_active)
        def _prev(event: KeyPressEvent) -> None:
            controller.move_focus(-1)

        @kb.add("down", filter=mixer_active)
        @kb.add("j", filter=mixer_active)
        def _next(event: KeyPressEvent) -> None:
            controller.move_focus(1)

        @kb.add("s-up", filter=mixer_active)
        @kb.add("K", filter=mixer_active)
        def _prev_group(event: KeyPressEvent) -> None:
            controller.move_focus_group(-1)

        @kb.add("s-down", filter=mixer_active)
        @kb.add("J", filter=mixer_active)
        def _next_group(event: KeyPressEvent) -> None:
            controller.move_focus_group(1)

        def volume_action(delta: int) -> Callable[[KeyPressEvent], None]:
            def handler(event: KeyPressEvent) -> None:
                self._spawn(event, controller.adjust_volume(delta))

            return handler

        kb.add("left", filter=mixer_active)(volume_action(-self._step))
        kb.add("h", filter=mixer_active)(volume_action(-self._step))
        kb.add("right", filter=mixer_active)(volume_action(self._step))
        kb.add("l", filter=mixer_active)(volume_action(self._step))
        kb.add("s-left", filter=mixer_active)(volume_action(-self._large_step))
        kb.add("H", filter=mixer_active)(volume_action(-self._large_step))
        kb.add("s-right", filter=mixer_active)(volume_action(self._large_step))
        kb.add("L", filter=mixer_active)(volume_action(self._large_step))

        for index, key in enumerate(_SNAP_KEYS, start=1):
            percent = index * 10

            def snap(event: KeyPressEvent, percent: int = percent) -> None:
                self._spawn(event, controller.set_volume(percent))

            kb.add(key, filter=mixer_active)(snap)

        @kb.add("m", filter=mixer_active)
        def _toggle_mute(event: KeyPressEvent) -> None:
            self._spawn(event, controller.toggle_mute())

        @kb.add("g", filter=mixer_active)
        def _toggle_group_mute(event: KeyPressEvent) -> None:
            self._spawn(event, controller.toggle_group_mute())

        return kb

    def _spawn(self, event: KeyPressEvent, action: Coroutine[Any, Any, Any]) -> None:
        event.app.create_background_task(action)

    async def run(self) -> None:
        """Show the mixer until the user quits."""
        self._controller.set_on_change(self._application.invalidate)
        watcher = asyncio.create_task(self._controller.watch(self._rpc))
        try:
            await self._controller.refresh()
            await self._application.run_async()
        finally:
            self._controller.set_on_change(None)
            watcher.cancel()
            with suppress(asyncio.CancelledError):
                await watcher
