"""Command-line front end for rs485term."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .config import SerialSettings, coerce_settings
from .services import PortService
from .settings import DEFAULT_BAUD_RATE, configure_logging
from .transport import ConnectError, SerialTransactor, TransactError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rs485term",
        description=(
            "Send one line to an RS-485 device and print its reply. "
            "Without --command the GUI is started."
        ),
    )
    parser.add_argument(
        "--list-ports",
        action="store_true",
        help="print available serial ports and exit",
    )
    parser.add_argument(
        "--port", help="serial device or pyserial URL, e.g. COM3, /dev/ttyUSB0, loop://"
    )
    parser.add_argument(
        "--baud",
        type=int,
        default=DEFAULT_BAUD_RATE,
        help="baud rate (default: %(default)s)",
    )
    parser.add_argument("--command", help="line to send; the reply is printed")
    parser.add_argument(
        "--settle-ms",
        dest="settle_delay_ms",
        type=int,
        help="transceiver settling delay around the write (default: 50)",
    )
    parser.add_argument(
        "--read-timeout-ms",
        dest="read_timeout_ms",
        type=int,
        help="reply timeout (default: 2000)",
    )
    parser.add_argument(
        "--write-timeout-ms",
        dest="write_timeout_ms",
        type=int,
        help="write timeout (default: 500)",
    )
    parser.add_argument(
        "--rts-active-low",
        dest="rts_active_high",
        action="store_false",
        default=None,
        help="drive RTS low to transmit",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log each TX/RX line"
    )
    return parser


def run_once(
    transactor: SerialTransactor, port: str, baudrate: int, command: str
) -> int:
    """Connect, exchange one line, and disconnect. Returns a process exit code."""
    connection = None
    try:
        connection = transactor.connect(port, baudrate)
        response = transactor.transact(connection, command)
    except ConnectError as exc:
        logger.error("%s", exc)
        return 1
    except TransactError as exc:
        logger.error("Transaction failed (%s): %s", exc.kind.value, exc)
        return 1
    finally:
        transactor.disconnect(connection)
    print(response)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.list_ports:
        for port in PortService().list_ports():
            print(port)
        return 0

    settings: SerialSettings = coerce_settings(vars(args))

    if args.command is None:
        from .app import main as _app_main

        _app_main(settings, port=args.port, baudrate=args.baud)
        return 0

    if not args.port:
        parser.error("--command requires --port")
    return run_once(SerialTransactor(settings), args.port, args.baud, args.command)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
