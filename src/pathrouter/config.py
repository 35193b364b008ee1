"""Server configuration.

ServerConfig is a frozen dataclass, immutable once the router holds it.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Transport limits shared by every listener of a router::

        config = ServerConfig(max_body_bytes=16 * 1024)
    """

    max_header_bytes: int = 64 * 1024
    max_body_bytes: int = 1 * 1024 * 1024
    # Seconds a client gets to send its request head
    read_timeout: float = 5.0

    def __post_init__(self):
        if self.max_header_bytes <= 0:
            raise ValueError("max_header_bytes must be positive")
        if self.max_body_bytes < 0:
            raise ValueError("max_body_bytes cannot be negative")
        if self.read_timeout <= 0:
            raise ValueError("read_timeout must be positive")
