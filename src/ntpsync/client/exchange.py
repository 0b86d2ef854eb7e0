"""Single-shot NTP request/reply exchange.

One call to :meth:`NTPClient.query` walks a linear state machine:

    RESOLVING -> CONNECTED -> AWAITING_REPLY -> DECODED

Any failure raises an :class:`~ntpsync.protocol.errors.NtpError` subclass and
ends the exchange. There is no retry; callers wanting resilience loop around
``query`` themselves. The UDP socket is opened in CONNECTED and is closed on
every exit path.
"""

from __future__ import annotations

import socket
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ntpsync.config.connection import ConnectionParameters
from ntpsync.protocol.errors import (
    HostResolutionError,
    NtpError,
    ReceiveError,
    SendError,
    SocketError,
)
from ntpsync.protocol.packet import (
    NTP_HEADER_SIZE,
    build_request,
    extract_transmit_seconds,
    serialize,
    to_unix_epoch,
)
from ntpsync.utils.logging_config import get_logger

logger = get_logger(__name__)

ISO_FORMAT = "%Y-%m-%d %H:%M:%S"
DISPLAY_FORMATS = ("iso", "ctime")


class ExchangeState(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    CONNECTED = "connected"
    AWAITING_REPLY = "awaiting_reply"
    DECODED = "decoded"
    FAILED = "failed"


@dataclass(frozen=True)
class ExchangeResult:
    """Outcome of one successful exchange."""

    address: str
    port: int
    ntp_seconds: int
    unix_seconds: int

    def render(self, display_format: str = "iso") -> str:
        """Render the server time in the local time zone.

        ``iso`` gives ``YYYY-MM-DD HH:MM:SS``; ``ctime`` gives the platform
        ``Day Mon DD HH:MM:SS YYYY`` string.
        """
        if display_format == "iso":
            return time.strftime(ISO_FORMAT, time.localtime(self.unix_seconds))
        if display_format == "ctime":
            return time.ctime(self.unix_seconds)
        raise ValueError(f"Unknown display format: {display_format}")


class NTPClient:
    """NTP client performing exactly one request/reply cycle per query."""

    def __init__(
        self,
        params: ConnectionParameters,
        socket_factory: Callable[..., socket.socket] = socket.socket,
    ):
        self.params = params
        self._socket_factory = socket_factory
        self.state = ExchangeState.IDLE
        self.log = logger.bind(host=params.host, port=params.port)

    def _transition(self, state: ExchangeState, **fields) -> None:
        self.state = state
        self.log.debug("exchange state changed", state=state.value, **fields)

    def resolve(self) -> str:
        """Resolve the host to its first IPv4 address."""
        self._transition(ExchangeState.RESOLVING)
        try:
            _, _, addresses = socket.gethostbyname_ex(self.params.host)
        except (socket.gaierror, socket.herror, UnicodeError) as exc:
            raise HostResolutionError(self.params.host, str(exc)) from exc
        if not addresses:
            raise HostResolutionError(self.params.host)
        self.log.debug("host resolved", addresses=addresses, selected=addresses[0])
        return addresses[0]

    def _open_socket(self) -> socket.socket:
        try:
            sock = self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        except OSError as exc:
            raise SocketError(f"Failed to open UDP socket: {exc}") from exc
        try:
            sock.settimeout(self.params.timeout)
        except (OSError, ValueError, OverflowError) as exc:
            sock.close()
            raise SocketError(f"Failed to set receive timeout: {exc}") from exc
        return sock

    def _exchange(self, sock: socket.socket, address: str) -> bytes:
        request = serialize(build_request())
        self._transition(ExchangeState.AWAITING_REPLY, address=address)
        try:
            sent = sock.sendto(request, (address, self.params.port))
        except OSError as exc:
            raise SendError(f"Failed to send data to the host: {exc}") from exc
        self.log.debug("request sent", bytes=sent)

        try:
            # Source address is not checked against the server we sent to
            data, source = sock.recvfrom(NTP_HEADER_SIZE)
        except socket.timeout as exc:
            raise ReceiveError(
                f"Failed to read data from the host (timed out after {self.params.timeout} secs)"
            ) from exc
        except OSError as exc:
            raise ReceiveError(f"Failed to read data from the host: {exc}") from exc
        self.log.debug("reply received", bytes=len(data), source=source)
        return data

    def query(self) -> ExchangeResult:
        """Run one exchange and return the decoded server transmit time."""
        started = time.monotonic()
        try:
            address = self.resolve()
            with self._open_socket() as sock:
                self._transition(ExchangeState.CONNECTED, address=address, timeout=self.params.timeout)
                data = self._exchange(sock, address)

            ntp_seconds = extract_transmit_seconds(data)
        except NtpError as exc:
            self._transition(ExchangeState.FAILED, error=type(exc).__name__)
            self.log.warning(
                "ntp exchange failed",
                error=str(exc),
                elapsed=round(time.monotonic() - started, 3),
            )
            raise

        result = ExchangeResult(
            address=address,
            port=self.params.port,
            ntp_seconds=ntp_seconds,
            unix_seconds=to_unix_epoch(ntp_seconds),
        )
        self._transition(
            ExchangeState.DECODED,
            ntp_seconds=result.ntp_seconds,
            unix_seconds=result.unix_seconds,
            elapsed=round(time.monotonic() - started, 3),
        )
        return result
