"""Transport layer for rs485term."""

from .errors import (
    ConnectError,
    NotConnectedError,
    SerialTransactorError,
    TransactError,
    TransactErrorKind,
    TransactTimeout,
    TransportFault,
)
from .transactor import Connection, SerialTransactor

__all__ = [
    "ConnectError",
    "Connection",
    "NotConnectedError",
    "SerialTransactor",
    "SerialTransactorError",
    "TransactError",
    "TransactErrorKind",
    "TransactTimeout",
    "TransportFault",
]
