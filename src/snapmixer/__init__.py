"""Snapmixer: terminal volume mixer for Snapcast servers."""

__version__ = "0.1.0"
