"""Command-line entry point for the NTP client.

Usage examples:
  - ntp-sync -s oceania.pool.ntp.org
  - ntp-sync -s oceania.pool.ntp.org -p 123 -t 5
  - ntp-sync -s 103.76.40.123 -f ctime

``main`` is the only place that turns errors into an exit status; everything
below it raises.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from ntpsync.client.exchange import DISPLAY_FORMATS, NTPClient
from ntpsync.config.connection import MAX_PORT, ConnectionParameters
from ntpsync.config.settings import settings
from ntpsync.protocol.errors import ArgumentError, NtpError
from ntpsync.utils.logging_config import setup_logging

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

EXAMPLES = """examples:
  ntp-sync -s oceania.pool.ntp.org
  ntp-sync -s oceania.pool.ntp.org -p 123
  ntp-sync -s oceania.pool.ntp.org -p 123 -t 5
  ntp-sync -s 103.76.40.123
  ntp-sync -s 103.76.40.123 -p 123 -t 10 -f ctime
"""


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting on bad input."""

    def error(self, message):
        raise ArgumentError(message)


class StoreOnce(argparse.Action):
    """Store an option value, rejecting repeats of the same option."""

    def __call__(self, parser, namespace, values, option_string=None):
        marker = f"_{self.dest}_given"
        if getattr(namespace, marker, False):
            raise ArgumentError(f"{option_string} specified multiple times in command line args")
        setattr(namespace, marker, True)
        setattr(namespace, self.dest, values)


def _digits_only(value: str, label: str) -> int:
    # int() would also accept "+5", " 5" and "5_0"
    if not value.isascii() or not value.isdigit():
        raise argparse.ArgumentTypeError(f'{label}: "{value}"')
    return int(value)


def port_number(value: str) -> int:
    port = _digits_only(value, "Invalid NTP server port")
    if not 0 < port <= MAX_PORT:
        raise argparse.ArgumentTypeError(f'Invalid NTP server port: "{value}"')
    return port


def timeout_seconds(value: str) -> int:
    timeout = _digits_only(value, "Invalid receive timeout")
    if timeout == 0:
        raise argparse.ArgumentTypeError(f'Invalid receive timeout: "{value}"')
    return timeout


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="ntp-sync",
        description="Query an NTP server once and print its transmit time in local time.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-s",
        "--server",
        required=True,
        action=StoreOnce,
        metavar="HOST",
        help="NTP server host name or IPv4 address",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=port_number,
        default=settings.DEFAULT_PORT,
        action=StoreOnce,
        metavar="PORT",
        help=f"NTP server UDP port (default: {settings.DEFAULT_PORT})",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=timeout_seconds,
        default=settings.DEFAULT_TIMEOUT,
        action=StoreOnce,
        metavar="SECS",
        help=f"Receive timeout in whole seconds (default: {settings.DEFAULT_TIMEOUT})",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=DISPLAY_FORMATS,
        default=settings.DISPLAY_FORMAT,
        action=StoreOnce,
        help=f"Display format for the server time (default: {settings.DISPLAY_FORMAT})",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=settings.LOG_LEVEL.upper(),
        help=f"Structured log level (default: {settings.LOG_LEVEL.upper()})",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_PATH,
        help="Write structured logs to this file instead of stderr",
    )
    return parser


def parse_args(argv: List[str]) -> tuple[ConnectionParameters, argparse.Namespace]:
    args = build_parser().parse_args(argv)
    params = ConnectionParameters(host=args.server, port=args.port, timeout=args.timeout)
    return params, args


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        build_parser().print_help()
        return 1

    try:
        params, args = parse_args(argv)
    except ArgumentError as exc:
        print(exc)
        return 1
    except SystemExit as exc:
        # -h/--help: argparse has already printed usage
        return exc.code or 0

    logger = setup_logging(args.log_level, component="ntp-sync", log_path=args.log_file)
    logger.info("starting ntp query", host=params.host, port=params.port, timeout=params.timeout)

    print(f"Using server {params.host}:{params.port} and receive timeout of {params.timeout} secs")

    try:
        result = NTPClient(params).query()
    except NtpError as exc:
        print(exc)
        return 1

    print(f"ntp_time: {result.render(args.format)}")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
