"""Render the mixer as prompt_toolkit formatted text.

Everything here is a pure function of the controller's state so it can be
tested without a terminal.
"""

from collections.abc import Sequence

from snapmixer.models.server_state import ServerState

StyleAndText = tuple[str, str]

BAR_FILLED = "█"
BAR_EMPTY = "░"

_MAX_NAME_WIDTH = 24
_MIN_BAR_WIDTH = 10
# indent + name gap + mute column + gap + " 100%"
_FIXED_WIDTH = 4 + 2 + 1 + 1 + 5

KEY_HELP: list[tuple[str, str]] = [
    ("?, F1", "toggle this help"),
    ("up/down, k/j", "select group or client"),
    ("shift-up/down, K/J", "jump between groups"),
    ("left/right, h/l", "adjust volume"),
    ("shift-left/right, H/L", "adjust volume in large increments"),
    ("1, 2, ..., 9, 0", "set volume to 10%, 20%, ..., 90%, 100%"),
    ("m", "toggle mute of the selection"),
    ("g", "toggle group mute"),
    ("esc", "dismiss errors / help"),
    ("q, ctrl-c", "quit"),
]


def volume_bar(percent: int, width: int) -> str:
    """Return a bar of ``width`` cells filled to ``percent``."""
    width = max(0, width)
    filled = round(width * max(0, min(100, percent)) / 100)
    return BAR_FILLED * filled + BAR_EMPTY * (width - filled)


def _fit(text: str, width: int) -> str:
    if len(text) <= width:
        return text.ljust(width)
    return text[: max(0, width - 1)] + "…"


def render_mixer(
    state: ServerState | None,
    focus: str | None,
    width: int = 80,
    *,
    errors: Sequence[str] = (),
    connection_lost: bool = False,
) -> list[StyleAndText]:
    """Render groups and their clients as volume bars.

    Args:
        state: Last server snapshot (None while loading).
        focus: Focused group or client ID.
        width: Available terminal columns.
        errors: Error messages to show below the mixer.
        connection_lost: Whether to show the connection-lost banner.

    Returns:
        Formatted text fragments.
    """
    fragments: list[StyleAndText] = []

    if connection_lost:
        fragments.append(("class:banner", " Connection to server lost. Press q to quit. "))
        fragments.append(("", "\n\n"))

    if state is None:
        fragments.append(("class:dim", "Loading server status…\n"))
    elif not state.groups:
        fragments.append(("class:dim", "No groups on this server.\n"))
    else:
        name_width = min(
            _MAX_NAME_WIDTH,
            max((len(c.display_name) for c in state.clients), default=0),
        )
        bar_width = max(_MIN_BAR_WIDTH, width - name_width - _FIXED_WIDTH)

        for group in state.sorted_groups():
            style = "class:group.focused" if group.id == focus else "class:group"
            fragments.append((style, f" {group.display_name} "))
            if group.muted:
                fragments.append(("class:muted", " (muted)"))
            fragments.append(("", "\n"))

            for client in state.sorted_clients(group):
                focused = client.id == focus
                name_style = "class:name" if client.has_name else "class:name.unnamed"
                if not client.connected:
                    name_style += " class:disconnected"
                fragments.append(("", "    "))
                fragments.append((name_style, _fit(client.display_name, name_width)))
                fragments.append(("", "  "))
                fragments.append(("class:muted", "M" if client.muted else " "))
                fragments.append(("", " "))
                bar_style = "class:bar.focused" if focused else "class:bar"
                fragments.append((bar_style, volume_bar(client.volume, bar_width)))
                fragments.append(("", f" {client.volume:>3}%\n"))
            fragments.append(("", "\n"))

    for message in errors:
        fragments.append(("class:error", f"{message}\n"))

    return fragments


def render_help() -> list[StyleAndText]:
    """Render the key binding table."""
    key_width = max(len(keys) for keys, _ in KEY_HELP)
    fragments: list[StyleAndText] = []
    for keys, description in KEY_HELP:
        fragments.append(("class:help.key", keys.ljust(key_width)))
        fragments.append(("", f"  {description}\n"))
    return fragments
