"""Connection session that runs blocking serial work off the caller's loop."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .transport import (
    ConnectError,
    Connection,
    SerialTransactor,
    TransactError,
    TransactErrorKind,
    TransactTimeout,
)

logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]
StateCallback = Callable[["SessionState"], None]
Scheduler = Callable[[Callable[[], None]], None]
Clock = Callable[[], datetime]


def _run_now(func: Callable[[], None]) -> None:
    func()


@dataclass(frozen=True)
class SessionState:
    """What the front end may offer the user right now."""

    connected: bool = False
    busy: bool = False
    connecting: bool = False

    @property
    def connect_label(self) -> str:
        if self.connecting:
            return "Connecting..."
        return "Disconnect" if self.connected else "Connect"

    @property
    def can_toggle_connection(self) -> bool:
        return not self.connecting

    @property
    def can_send(self) -> bool:
        return self.connected and not self.busy and not self.connecting


class TransactionSession:
    """Own one connection and run connect/send on background threads.

    Log lines and state snapshots are handed to ``schedule`` so the caller can
    move them onto its own loop; by default they are delivered on the worker
    thread that produced them.
    """

    def __init__(
        self,
        transactor: Optional[SerialTransactor] = None,
        *,
        schedule: Scheduler = _run_now,
        on_log: Optional[LogCallback] = None,
        on_state: Optional[StateCallback] = None,
        clock: Clock = datetime.now,
    ) -> None:
        self._transactor = transactor or SerialTransactor()
        self._schedule = schedule
        self._on_log = on_log
        self._on_state = on_state
        self._clock = clock
        self._lock = threading.RLock()
        self._connection: Optional[Connection] = None
        self._connecting = False
        self._busy = False
        # Bumped by disconnect() so a connect still in flight is discarded.
        self._generation = 0
        self._thread: Optional[threading.Thread] = None
        self._log("Application ready.")

    @property
    def is_connected(self) -> bool:
        connection = self._connection
        return bool(connection and connection.is_open)

    @property
    def state(self) -> SessionState:
        with self._lock:
            return SessionState(
                connected=self.is_connected,
                busy=self._busy,
                connecting=self._connecting,
            )

    def toggle_connection(self, port: str, baudrate: int) -> None:
        if self.is_connected:
            self.disconnect()
        else:
            self.connect(port, baudrate)

    def connect(self, port: str, baudrate: int) -> bool:
        """Open *port* on a worker thread; returns ``False`` if nothing was started."""
        port = (port or "").strip()
        if not port:
            self._log("ERROR: Please select a COM port.")
            return False
        with self._lock:
            if self._connecting or self.is_connected:
                return False
            self._connecting = True
            generation = self._generation
        self._publish_state()

        def worker() -> None:
            try:
                connection = self._transactor.connect(port, baudrate)
            except ConnectError as exc:
                logger.error("Connect to %s failed: %s", port, exc)
                self._log(f"ERROR: Failed to connect. Details: {exc.detail}")
                return
            except Exception as exc:
                logger.exception("Unexpected error while connecting to %s", port)
                self._log(f"ERROR: Failed to connect. Details: {exc}")
                return
            else:
                with self._lock:
                    cancelled = generation != self._generation
                    if not cancelled:
                        self._connection = connection
                if cancelled:
                    logger.info("Connect to %s finished after disconnect; closing it", port)
                    self._transactor.disconnect(connection)
                    return
                self._log(f"Successfully connected to {port} at {baudrate} baud.")
            finally:
                with self._lock:
                    self._connecting = False
                self._publish_state()

        self._start_worker(worker, name=f"Connect[{port}]")
        return True

    def disconnect(self) -> None:
        with self._lock:
            self._generation += 1
            connection = self._connection
            self._connection = None
        self._release(connection)
        self._publish_state()

    def send(self, command: str) -> bool:
        """Run one exchange on a worker thread; returns ``False`` if refused."""
        with self._lock:
            connection = self._connection
            connected = bool(connection and connection.is_open)
            busy = self._busy
            if connected and not busy:
                self._busy = True
        if not connected:
            self._log("ERROR: Not connected. Please connect to a port first.")
            return False
        if busy:
            self._log("ERROR: A command is already in progress.")
            return False

        self._log(f"Sending command: '{command}'...")
        self._publish_state()

        def worker() -> None:
            try:
                response = self._transactor.transact(connection, command)
            except TransactTimeout as exc:
                self._log(
                    "ERROR: The operation timed out. "
                    f"No response received within {exc.timeout_ms} ms."
                )
            except TransactError as exc:
                logger.error("Transaction on %s failed: %s", connection.port, exc)
                self._log(f"An error occurred while sending command: {exc}")
                if exc.kind is TransactErrorKind.IO_FAILURE:
                    self._drop(connection)
            except Exception as exc:
                logger.exception("Unexpected error during transaction")
                self._log(f"An error occurred while sending command: {exc}")
            else:
                self._log(f"Received response: '{response}'")
            finally:
                with self._lock:
                    self._busy = False
                self._publish_state()

        self._start_worker(worker, name=f"Transact[{connection.port}]")
        return True

    def wait(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread:
            thread.join(timeout)

    def close(self) -> None:
        self.disconnect()

    def _drop(self, connection: Connection) -> None:
        with self._lock:
            if self._connection is connection:
                self._connection = None
        self._release(connection)

    def _release(self, connection: Optional[Connection]) -> None:
        was_open = bool(connection and connection.is_open)
        self._transactor.disconnect(connection)
        if was_open:
            self._log("Serial port closed.")

    def _start_worker(self, target: Callable[[], None], *, name: str) -> None:
        thread = threading.Thread(target=target, name=name, daemon=True)
        self._thread = thread
        thread.start()

    def _log(self, message: str) -> None:
        logger.debug(message)
        if not self._on_log:
            return
        line = f"{self._clock():%H:%M:%S} - {message}"
        callback = self._on_log
        self._schedule(lambda: callback(line))

    def _publish_state(self) -> None:
        if not self._on_state:
            return
        state = self.state
        callback = self._on_state
        self._schedule(lambda: callback(state))
