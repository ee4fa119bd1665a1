"""Core application logic between the API client and the terminal UI.

Classes:
    ConfigManager: QSettings wrapper for configuration.
    MixerController: Focus and volume/mute actions for the mixer.
"""

from snapmixer.core.config import ConfigManager
from snapmixer.core.mixer import MixerController

__all__ = ["ConfigManager", "MixerController"]
