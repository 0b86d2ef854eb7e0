"""Connection parameters handed from the entry point to the exchange.

Built once at startup from parsed arguments and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass

from ntpsync.config.settings import settings
from ntpsync.protocol.errors import ConfigurationError

MAX_PORT = 65535


@dataclass(frozen=True)
class ConnectionParameters:
    host: str
    port: int = settings.DEFAULT_PORT
    timeout: float = settings.DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not isinstance(self.host, str) or not self.host.strip():
            raise ConfigurationError("NTP server host must be a non-empty string")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 < self.port <= MAX_PORT:
            raise ConfigurationError(f"Invalid NTP server port: {self.port!r}")
        # Zero would make the receive either non-blocking or unbounded
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            raise ConfigurationError(f"Invalid receive timeout: {self.timeout!r}")
