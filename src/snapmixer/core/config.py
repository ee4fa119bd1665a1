"""Configuration manager using QSettings for persistent storage."""

import logging

from PySide6.QtCore import QSettings

from snapmixer.models.endpoint import DEFAULT_PORT, Endpoint

logger = logging.getLogger(__name__)

# Settings keys
_KEY_SERVER_HOST = "server/host"
_KEY_SERVER_PORT = "server/port"
_KEY_VOLUME_STEP = "volume/step"
_KEY_VOLUME_LARGE_STEP = "volume/large_step"

DEFAULT_HOST = "localhost"
DEFAULT_STEP = 1
DEFAULT_LARGE_STEP = 5


class ConfigManager:
    """Wrapper around QSettings for type-safe config access.

    QSettings stores config in platform-specific locations:
    - Windows: HKEY_CURRENT_USER\\Software\\Snapmixer\\Snapmixer
    - macOS: ~/Library/Preferences/com.Snapmixer.Snapmixer.plist
    - Linux: ~/.config/Snapmixer/Snapmixer.conf

    Example:
        config = ConfigManager()
        endpoint = config.get_endpoint()
        config.set_volume_step(2)
    """

    def __init__(self, organization: str = "Snapmixer", application: str = "Snapmixer") -> None:
        """Initialize the config manager.

        Args:
            organization: Organization name for QSettings.
            application: Application name for QSettings.
        """
        self._settings = QSettings(organization, application)

    @property
    def settings(self) -> QSettings:
        """Return the underlying QSettings instance."""
        return self._settings

    # -- Server ---------------------------------------------------------------

    def get_host(self) -> str:
        """Return the default server host (default "localhost")."""
        value = self._settings.value(_KEY_SERVER_HOST, DEFAULT_HOST, str)
        return str(value) if value else DEFAULT_HOST

    def get_port(self) -> int:
        """Return the default server port (default 1705)."""
        try:
            value = int(self._settings.value(_KEY_SERVER_PORT, DEFAULT_PORT, int))  # type: ignore[arg-type]
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring invalid stored port: %s", e)
            return DEFAULT_PORT
        return value if 0 < value <= 65535 else DEFAULT_PORT  # noqa: PLR2004

    def get_endpoint(self) -> Endpoint:
        """Return the stored server endpoint."""
        return Endpoint(self.get_host(), self.get_port())

    def set_endpoint(self, endpoint: Endpoint) -> None:
        """Persist the server endpoint.

        Args:
            endpoint: Server address to use by default.
        """
        self._settings.setValue(_KEY_SERVER_HOST, endpoint.host)
        self._settings.setValue(_KEY_SERVER_PORT, endpoint.port)

    # -- Volume steps ---------------------------------------------------------

    def get_volume_step(self) -> int:
        """Return the small volume step in percent (default 1)."""
        value = self._settings.value(_KEY_VOLUME_STEP, DEFAULT_STEP, int)
        return max(1, min(100, int(value)))  # type: ignore[arg-type]

    def set_volume_step(self, step: int) -> None:
        """Set the small volume step.

        Args:
            step: Percent points per key press (1-100).
        """
        self._settings.setValue(_KEY_VOLUME_STEP, max(1, min(100, step)))

    def get_volume_large_step(self) -> int:
        """Return the large volume step in percent (default 5)."""
        value = self._settings.value(_KEY_VOLUME_LARGE_STEP, DEFAULT_LARGE_STEP, int)
        return max(1, min(100, int(value)))  # type: ignore[arg-type]

    def set_volume_large_step(self, step: int) -> None:
        """Set the large volume step.

        Args:
            step: Percent points per shifted key press (1-100).
        """
        self._settings.setValue(_KEY_VOLUME_LARGE_STEP, max(1, min(100, step)))

    # -- General settings ------------------------------------------------------

    def clear(self) -> None:
        """Clear all settings (useful for testing or reset)."""
        self._settings.clear()

    def sync(self) -> None:
        """Force settings to be written to disk."""
        self._settings.sync()
