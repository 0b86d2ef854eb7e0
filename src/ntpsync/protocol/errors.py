"""Error taxonomy for the NTP client.

Every failure is fatal for a single exchange. Errors are raised up to the
command-line entry point, which prints one diagnostic line and picks the
exit status.
"""


class NtpError(Exception):
    """Base class for all client errors."""


class ArgumentError(NtpError):
    """Bad, duplicate, missing or unknown command-line value."""


class ConfigurationError(ArgumentError, ValueError):
    """Connection parameters failed validation."""


class HostResolutionError(NtpError):
    """The server host did not resolve to any IPv4 address."""

    def __init__(self, host: str, reason: str = "no addresses found"):
        self.host = host
        super().__init__(f'Invalid NTP server host: "{host}" ({reason})')


class SocketError(NtpError):
    """The UDP socket could not be opened or configured."""


class SendError(NtpError):
    """The request datagram could not be sent."""


class ReceiveError(NtpError):
    """No usable reply arrived within the timeout (timeout or I/O failure)."""


class MalformedReply(NtpError):
    """The reply is shorter than the fixed NTP header."""

    def __init__(self, length: int, expected: int):
        self.length = length
        self.expected = expected
        super().__init__(f"Malformed NTP reply: got {length} bytes, expected at least {expected}")
