"""Client model representing a Snapcast audio endpoint."""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Client:
    """A Snapcast client (audio endpoint/speaker).

    Attributes:
        id: Unique client identifier from server.
        host_name: Hostname of the client device (empty if unknown).
        name: Configured display name (empty string if unset).
        volume: Volume level 0-100.
        muted: Whether audio is muted.
        connected: Whether client is connected to server.
    """

    id: str
    host_name: str = ""
    name: str = ""
    volume: int = 0
    muted: bool = False
    connected: bool = True

    def __post_init__(self) -> None:
        """Validate and clamp volume to 0-100 range."""
        if self.volume < 0 or self.volume > 100:  # noqa: PLR2004
            clamped = max(0, min(100, self.volume))
            logger.warning(
                "Client %s volume %d out of range, clamped to %d",
                self.id,
                self.volume,
                clamped,
            )
            object.__setattr__(self, "volume", clamped)

    @property
    def has_name(self) -> bool:
        """Return True if the client has a configured name."""
        return bool(self.name)

    @property
    def display_name(self) -> str:
        """Return configured name, falling back to host name, then ID."""
        if self.name:
            return self.name
        if self.host_name:
            return f"Client on host {self.host_name}"
        return f"Client with ID {self.id}"
