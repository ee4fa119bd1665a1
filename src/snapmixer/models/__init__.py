"""Data models for the Snapcast server, its groups and clients."""

from snapmixer.models.client import Client
from snapmixer.models.endpoint import DEFAULT_PORT, Endpoint
from snapmixer.models.group import Group
from snapmixer.models.server_state import ServerState

__all__ = [
    "Client",
    "DEFAULT_PORT",
    "Endpoint",
    "Group",
    "ServerState",
]
