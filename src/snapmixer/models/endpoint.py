"""Server endpoint model."""

from dataclasses import dataclass

DEFAULT_PORT = 1705
_MAX_PORT = 65535


@dataclass(frozen=True, slots=True)
class Endpoint:
    """Address of a Snapcast server's JSON-RPC TCP socket.

    Attributes:
        host: Server hostname or IP address.
        port: TCP port (default 1705).
    """

    host: str
    port: int = DEFAULT_PORT

    def __str__(self) -> str:
        """Return the address as host:port."""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @classmethod
    def parse(cls, value: str, default_port: int = DEFAULT_PORT) -> "Endpoint":
        """Parse ``HOST[:PORT]``.

        Accepts ``host``, ``host:port``, ``[v6addr]:port`` and a bare IPv6
        address.

        Args:
            value: The address string.
            default_port: Port used when none is given.

        Raises:
            ValueError: If the host is empty or the port is not a valid number.
        """
        value = value.strip()
        host = value
        port_str: str | None = None

        if value.startswith("["):
            close = value.find("]")
            if close == -1:
                raise ValueError(f"Invalid server address {value!r}")
            host = value[1:close]
            rest = value[close + 1 :]
            if rest:
                if not rest.startswith(":"):
                    raise ValueError(f"Invalid server address {value!r}")
                port_str = rest[1:]
        elif value.count(":") == 1:
            host, port_str = value.split(":", 1)

        if not host:
            raise ValueError(f"Missing host in {value!r}")
        if port_str is None:
            return cls(host, default_port)
        if not port_str:
            raise ValueError(f"Missing port after ':' in {value!r}")

        try:
            port = int(port_str)
        except ValueError:
            raise ValueError(f"Invalid port number {port_str}") from None
        if not 0 < port <= _MAX_PORT:
            raise ValueError(f"Invalid port number {port_str}")
        return cls(host, port)
