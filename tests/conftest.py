"""Shared fixtures: loopback UDP servers standing in for an NTP server."""

from __future__ import annotations

import socket
import struct
import threading
from typing import List, Optional

import pytest

from ntpsync.protocol.packet import (
    LEAP_NO_WARNING,
    MODE_SERVER,
    NTP_HEADER_FORMAT,
    NTP_VERSION,
    Header,
)

KNOWN_NTP_SECONDS = 3944083247
KNOWN_UNIX_SECONDS = 1735094447


def make_reply(transmit_seconds: int, length: int = 48, transmit_fraction: int = 0) -> bytes:
    """Craft a server reply with the given transmit timestamp seconds."""
    words = [0] * 11
    words[9] = transmit_seconds
    words[10] = transmit_fraction
    li_vn_mode = Header.pack_li_vn_mode(LEAP_NO_WARNING, NTP_VERSION, MODE_SERVER)
    reply = struct.pack(NTP_HEADER_FORMAT, li_vn_mode, 2, 6, 0xE9, *words)
    if length <= len(reply):
        return reply[:length]
    return reply + b"\xff" * (length - len(reply))


class FakeNtpServer:
    """Answers a single request on 127.0.0.1 with a fixed reply (or stays silent)."""

    def __init__(self, reply: Optional[bytes]):
        self.reply = reply
        self.requests: List[bytes] = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(5)
        self.port = self.sock.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        try:
            data, addr = self.sock.recvfrom(1024)
        except OSError:
            return
        self.requests.append(data)
        if self.reply is not None:
            self.sock.sendto(self.reply, addr)

    def start(self) -> "FakeNtpServer":
        self.thread.start()
        return self

    def stop(self):
        self.thread.join(timeout=6)
        self.sock.close()


@pytest.fixture
def ntp_server():
    """Factory fixture: ntp_server(reply_bytes) -> running FakeNtpServer."""
    servers: List[FakeNtpServer] = []

    def _start(reply: Optional[bytes] = None) -> FakeNtpServer:
        server = FakeNtpServer(make_reply(KNOWN_NTP_SECONDS) if reply is None else reply).start()
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.stop()


@pytest.fixture
def silent_server():
    """A bound UDP port that receives the request but never answers."""
    server = FakeNtpServer(None).start()
    yield server
    server.stop()


class FakeSocket:
    """Minimal socket double for exercising failure paths."""

    def __init__(self, fail_on: Optional[str] = None, exc: Optional[BaseException] = None, reply: bytes = b""):
        self.fail_on = fail_on
        self.exc = exc or OSError("simulated failure")
        self.reply = reply
        self.closed = False
        self.timeout = None
        self.sent: List[bytes] = []

    def settimeout(self, value):
        if self.fail_on == "settimeout":
            raise self.exc
        self.timeout = value

    def sendto(self, data, address):
        if self.fail_on == "sendto":
            raise self.exc
        self.sent.append(data)
        return len(data)

    def recvfrom(self, bufsize):
        if self.fail_on == "recvfrom":
            raise self.exc
        return self.reply[:bufsize], ("127.0.0.1", 123)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
        return False
