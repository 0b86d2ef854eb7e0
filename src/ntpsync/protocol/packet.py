"""NTP packet header codec.

Fixed 48-byte header as laid out in RFC 5905 section 7.3, big-endian on the
wire. Extension fields, key identifier and message digest are neither sent
nor parsed.

    0                   1                   2                   3
    0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1 2 3 4 5 6 7 8 9 0 1
   +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
   |LI | VN  |Mode |    Stratum    |     Poll      |   Precision   |
   +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
   |                 Root Delay / Root Dispersion                  |
   |                     Reference Identifier                      |
   |                  Reference Timestamp (64)                     |
   |                  Originate Timestamp (64)                     |
   |                   Receive Timestamp (64)                      |
   |                  Transmit Timestamp (64)                      |
   +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
"""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass

from ntpsync.protocol.errors import MalformedReply

# 4 single-byte fields followed by 11 32-bit words
NTP_HEADER_FORMAT = "!4B11I"
NTP_HEADER_SIZE = struct.calcsize(NTP_HEADER_FORMAT)  # 48

# Seconds between the NTP epoch (1900-01-01) and the Unix epoch (1970-01-01)
NTP_DELTA = 2208988800

TRANSMIT_SECONDS_OFFSET = 40
_TRANSMIT_SECONDS = struct.Struct("!I")

# Leap indicator (RFC 5905 Figure 9)
LEAP_NO_WARNING = 0

NTP_VERSION = 4

# Association modes (RFC 5905 Figure 10)
MODE_CLIENT = 3
MODE_SERVER = 4


@dataclass
class Header:
    """NTP packet header fields in wire order."""

    li_vn_mode: int = 0
    stratum: int = 0
    poll: int = 0
    precision: int = 0
    root_delay: int = 0
    root_dispersion: int = 0
    ref_id: int = 0
    reference_timestamp_sec: int = 0
    reference_timestamp_frac: int = 0
    origin_timestamp_sec: int = 0
    origin_timestamp_frac: int = 0
    receive_timestamp_sec: int = 0
    receive_timestamp_frac: int = 0
    transmit_timestamp_sec: int = 0
    transmit_timestamp_frac: int = 0

    @staticmethod
    def pack_li_vn_mode(leap: int, version: int, mode: int) -> int:
        """Pack leap indicator (2 bits), version (3 bits) and mode (3 bits)."""
        if not 0 <= leap <= 3:
            raise ValueError(f"leap indicator out of range: {leap}")
        if not 0 <= version <= 7:
            raise ValueError(f"version out of range: {version}")
        if not 0 <= mode <= 7:
            raise ValueError(f"mode out of range: {mode}")
        return (leap << 6) | (version << 3) | mode


def build_request() -> Header:
    """Return a client request header: LI=0, VN=4, Mode=3, everything else zero."""
    return Header(li_vn_mode=Header.pack_li_vn_mode(LEAP_NO_WARNING, NTP_VERSION, MODE_CLIENT))


def serialize(header: Header) -> bytes:
    """Pack a header into its 48-byte network representation."""
    return struct.pack(NTP_HEADER_FORMAT, *astuple(header))


def extract_transmit_seconds(buffer: bytes) -> int:
    """Read the transmit timestamp seconds (bytes 40-43) from a reply.

    The fractional part and all other fields are ignored, as are any bytes
    past the fixed header.
    """
    if len(buffer) < NTP_HEADER_SIZE:
        raise MalformedReply(len(buffer), NTP_HEADER_SIZE)
    (seconds,) = _TRANSMIT_SECONDS.unpack_from(buffer, TRANSMIT_SECONDS_OFFSET)
    return seconds


def to_unix_epoch(ntp_seconds: int) -> int:
    # No era disambiguation: after the 2036 rollover this yields pre-1970 values.
    return ntp_seconds - NTP_DELTA
