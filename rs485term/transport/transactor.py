"""Half-duplex RS-485 request/response over pyserial."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import serial
from serial.serialutil import Timeout

from ..config import SerialSettings
from .errors import ConnectError, NotConnectedError, TransactTimeout, TransportFault

SerialFactory = Callable[..., serial.SerialBase]
SleepFunc = Callable[[float], None]

_LOGGER = logging.getLogger(__name__)

# A port closed under a blocked call fails with whatever the backend raises.
_IO_ERRORS = (serial.SerialException, OSError, TypeError, ValueError)


def _open_serial(port: str, **kwargs) -> serial.SerialBase:
    """Build an unopened port; accepts device names and pyserial URLs (``loop://``)."""
    return serial.serial_for_url(port, do_not_open=True, **kwargs)


def _direction_levels(settings: SerialSettings) -> tuple[bool, bool]:
    """Return the RTS levels for (transmit, receive)."""
    if settings.rts_active_high:
        return True, False
    return False, True


def _read_line(ser: serial.SerialBase, terminator: bytes, timeout: float) -> bytes:
    """Read up to *terminator* within one overall *timeout*.

    Returns whatever arrived, with or without the terminator, once the
    deadline passes or the port stops delivering.
    """
    deadline = Timeout(timeout)
    original_timeout = ser.timeout
    line = bytearray()
    try:
        while not line.endswith(terminator):
            remaining = deadline.time_left()
            if remaining <= 0:
                break
            ser.timeout = remaining
            chunk = ser.read(1)
            if not chunk:
                break
            line += chunk
    finally:
        ser.timeout = original_timeout
    return bytes(line)


class Connection:
    """An open serial endpoint owned by a single caller."""

    def __init__(
        self,
        ser: serial.SerialBase,
        *,
        port: str,
        baudrate: int,
        settings: SerialSettings,
    ) -> None:
        self.port = port
        self.baudrate = baudrate
        self.settings = settings
        self._serial: Optional[serial.SerialBase] = ser

    @property
    def serial(self) -> Optional[serial.SerialBase]:
        return self._serial

    @property
    def is_open(self) -> bool:
        return bool(self._serial is not None and self._serial.is_open)

    def close(self) -> None:
        ser = self._serial
        self._serial = None
        if ser is None:
            return
        try:
            ser.close()
        except Exception:
            _LOGGER.debug("Error while closing %s", self.port, exc_info=True)

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"Connection({self.port!r}, {self.baudrate}, {state})"


class SerialTransactor:
    """Open RS-485 ports and run one command/response exchange at a time.

    The transceiver's driver is keyed by RTS. Each exchange asserts it, waits
    ``settle_delay_ms``, writes the command line, waits again, releases RTS and
    only then starts reading the reply. Calls are blocking and not synchronized;
    callers serialize their own use of a connection.
    """

    def __init__(
        self,
        settings: Optional[SerialSettings] = None,
        *,
        serial_factory: SerialFactory = _open_serial,
        sleep: SleepFunc = time.sleep,
    ) -> None:
        self.settings = settings or SerialSettings()
        self._serial_factory = serial_factory
        self._sleep = sleep

    def connect(self, port: str, baudrate: int) -> Connection:
        """Open *port* at *baudrate* with 8-N-1 framing and no flow control."""
        if not port:
            raise ConnectError(str(port), "no port selected")
        if not isinstance(baudrate, int) or isinstance(baudrate, bool) or baudrate < 1:
            raise ConnectError(port, f"invalid baud rate {baudrate!r}")

        settings = self.settings
        _, rx_level = _direction_levels(settings)
        try:
            ser = self._serial_factory(
                port,
                baudrate=baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=settings.read_timeout,
                write_timeout=settings.write_timeout,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
                exclusive=True,
            )
        except _IO_ERRORS as exc:
            raise ConnectError(port, str(exc)) from exc

        try:
            # Applied on open, so the bus is never driven before the first exchange.
            ser.rts = rx_level
            ser.open()
        except _IO_ERRORS as exc:
            try:
                ser.close()
            except Exception:
                _LOGGER.debug("Failed to close %s after open error", port, exc_info=True)
            raise ConnectError(port, str(exc)) from exc

        _LOGGER.info("Opened %s at %d baud", port, baudrate)
        return Connection(ser, port=port, baudrate=baudrate, settings=settings)

    def disconnect(self, connection: Optional[Connection]) -> None:
        """Release *connection*; closing twice or passing ``None`` is a no-op."""
        if connection is None:
            return
        was_open = connection.is_open
        connection.close()
        if was_open:
            _LOGGER.info("Closed %s", connection.port)

    def transact(self, connection: Optional[Connection], command: str) -> str:
        """Send *command* as one line and return the reply line without its terminator."""
        ser = connection.serial if connection is not None else None
        if ser is None or not ser.is_open:
            raise NotConnectedError("Serial port is not open")

        settings = connection.settings
        tx_level, rx_level = _direction_levels(settings)
        terminator = settings.line_terminator.encode(settings.encoding)
        payload = f"{command}{settings.line_terminator}".encode(
            settings.encoding, errors="replace"
        )

        _LOGGER.debug("TX %s: %r", connection.port, command)
        try:
            try:
                ser.rts = tx_level
                self._sleep(settings.settle_delay)
                ser.write(payload)
                ser.flush()
                self._sleep(settings.settle_delay)
            finally:
                ser.rts = rx_level
        except _IO_ERRORS as exc:
            raise TransportFault(f"Write to {connection.port} failed: {exc}") from exc

        try:
            raw = _read_line(ser, terminator, settings.read_timeout)
        except _IO_ERRORS as exc:
            raise TransportFault(f"Read from {connection.port} failed: {exc}") from exc

        if not raw.endswith(terminator):
            if not ser.is_open:
                raise TransportFault(f"{connection.port} was closed during read")
            raise TransactTimeout(settings.read_timeout_ms, bytes(raw))

        body = bytes(raw[: -len(terminator)])
        response = body.decode(settings.encoding, errors="replace")
        _LOGGER.debug("RX %s: %r", connection.port, response)
        return response
