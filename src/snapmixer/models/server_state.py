"""ServerState model representing complete server snapshot."""

from dataclasses import dataclass, field

from snapmixer.models.client import Client
from snapmixer.models.group import Group


@dataclass(frozen=True, slots=True)
class ServerState:
    """Snapshot of the server tree at a point in time.

    Attributes:
        groups: Groups on the server, in server order.
        clients: All clients, flattened from the groups.
        version: Snapserver version string.
        host: Server's hostname (as reported by server).
    """

    groups: list[Group] = field(default_factory=list)
    clients: list[Client] = field(default_factory=list)
    version: str = ""
    host: str = ""

    @property
    def group_count(self) -> int:
        """Return number of groups."""
        return len(self.groups)

    @property
    def client_count(self) -> int:
        """Return number of clients."""
        return len(self.clients)

    def get_client(self, client_id: str) -> Client | None:
        """Return client by ID or None if not found."""
        for client in self.clients:
            if client.id == client_id:
                return client
        return None

    def get_group(self, group_id: str) -> Group | None:
        """Return group by ID or None if not found."""
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def get_group_of_client(self, client_id: str) -> Group | None:
        """Return the group containing a client, or None."""
        for group in self.groups:
            if client_id in group.client_ids:
                return group
        return None

    def sorted_groups(self) -> list[Group]:
        """Return groups ordered by display name."""
        return sorted(self.groups, key=lambda g: g.display_name)

    def sorted_clients(self, group: Group) -> list[Client]:
        """Return the group's known clients ordered by display name."""
        clients = [c for c in (self.get_client(cid) for cid in group.client_ids) if c]
        return sorted(clients, key=lambda c: c.display_name)

    def focus_order(self) -> list[str]:
        """Return group and client IDs in display order.

        Each group is followed by its clients.
        """
        ids: list[str] = []
        for group in self.sorted_groups():
            ids.append(group.id)
            ids.extend(c.id for c in self.sorted_clients(group))
        return ids
