"""Exceptions raised by the serial transport."""

from __future__ import annotations

import enum

__all__ = [
    "ConnectError",
    "NotConnectedError",
    "SerialTransactorError",
    "TransactError",
    "TransactErrorKind",
    "TransactTimeout",
    "TransportFault",
]


class SerialTransactorError(Exception):
    """Base class for every error surfaced by the transport layer."""


class ConnectError(SerialTransactorError):
    """The port could not be opened or configured; nothing is left open."""

    def __init__(self, port: str, detail: str) -> None:
        super().__init__(f"Could not open {port}: {detail}")
        self.port = port
        self.detail = detail


class TransactErrorKind(enum.Enum):
    NOT_CONNECTED = "not_connected"
    TIMEOUT = "timeout"
    IO_FAILURE = "io_failure"


class TransactError(SerialTransactorError):
    """A request/response exchange failed; ``kind`` says how."""

    kind: TransactErrorKind = TransactErrorKind.IO_FAILURE


class NotConnectedError(TransactError):
    kind = TransactErrorKind.NOT_CONNECTED


class TransactTimeout(TransactError):
    """No complete line arrived in time. The connection stays usable."""

    kind = TransactErrorKind.TIMEOUT

    def __init__(self, timeout_ms: int, partial: bytes = b"") -> None:
        super().__init__(f"No response received within {timeout_ms} ms")
        self.timeout_ms = timeout_ms
        self.partial = partial


class TransportFault(TransactError):
    """The port failed underneath the exchange and should be reopened."""

    kind = TransactErrorKind.IO_FAILURE
