"""Terminal user interface."""

from snapmixer.ui.app import MixerApp
from snapmixer.ui.render import render_help, render_mixer, volume_bar

__all__ = ["MixerApp", "render_help", "render_mixer", "volume_bar"]
