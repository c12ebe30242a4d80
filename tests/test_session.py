import threading
import unittest
from datetime import datetime
from unittest import mock

from rs485term.session import SessionState, TransactionSession
from rs485term.transport import (
    ConnectError,
    SerialTransactor,
    TransactTimeout,
    TransportFault,
)


def fixed_clock() -> datetime:
    return datetime(2024, 5, 1, 12, 34, 56)


class TransactionSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.transactor = mock.create_autospec(SerialTransactor, instance=True)
        self.connection = mock.Mock(name="connection", is_open=True, port="COM5")
        self.transactor.connect.return_value = self.connection
        self.logs = []
        self.states = []
        self.session = TransactionSession(
            self.transactor,
            on_log=self.logs.append,
            on_state=self.states.append,
            clock=fixed_clock,
        )

    def messages(self):
        return [line.split(" - ", 1)[1] for line in self.logs]

    def connect(self) -> None:
        self.assertTrue(self.session.connect("COM5", 9600))
        self.session.wait(1.0)

    def test_first_line_is_application_ready(self) -> None:
        self.assertEqual(self.logs, ["12:34:56 - Application ready."])

    def test_connect_reports_success_and_enables_send(self) -> None:
        self.connect()

        self.transactor.connect.assert_called_once_with("COM5", 9600)
        self.assertIn("Successfully connected to COM5 at 9600 baud.", self.messages())
        self.assertEqual(self.states[0].connect_label, "Connecting...")
        self.assertFalse(self.states[0].can_toggle_connection)
        final = self.states[-1]
        self.assertTrue(final.connected)
        self.assertEqual(final.connect_label, "Disconnect")
        self.assertTrue(final.can_send)

    def test_connect_without_port_is_refused(self) -> None:
        self.assertFalse(self.session.connect("  ", 9600))
        self.transactor.connect.assert_not_called()
        self.assertEqual(self.messages()[-1], "ERROR: Please select a COM port.")

    def test_connect_failure_leaves_session_disconnected(self) -> None:
        self.transactor.connect.side_effect = ConnectError("COM5", "Access is denied.")

        self.connect()

        self.assertEqual(
            self.messages()[-1], "ERROR: Failed to connect. Details: Access is denied."
        )
        self.assertFalse(self.session.is_connected)
        self.assertEqual(self.states[-1], SessionState())

    def test_send_when_not_connected_does_no_io(self) -> None:
        self.assertFalse(self.session.send("PING"))
        self.transactor.transact.assert_not_called()
        self.assertEqual(
            self.messages()[-1], "ERROR: Not connected. Please connect to a port first."
        )

    def test_send_reports_response(self) -> None:
        self.transactor.transact.return_value = "WRITE_DATA:12345"
        self.connect()

        self.assertTrue(self.session.send("WRITE_DATA:12345"))
        self.session.wait(1.0)

        self.transactor.transact.assert_called_once_with(self.connection, "WRITE_DATA:12345")
        self.assertEqual(
            self.messages()[-2:],
            [
                "Sending command: 'WRITE_DATA:12345'...",
                "Received response: 'WRITE_DATA:12345'",
            ],
        )
        self.assertTrue(any(state.busy and not state.can_send for state in self.states))
        self.assertTrue(self.states[-1].can_send)

    def test_timeout_keeps_connection(self) -> None:
        self.transactor.transact.side_effect = TransactTimeout(2000)
        self.connect()

        self.session.send("PING")
        self.session.wait(1.0)

        self.assertEqual(
            self.messages()[-1],
            "ERROR: The operation timed out. No response received within 2000 ms.",
        )
        self.assertTrue(self.session.is_connected)
        self.transactor.disconnect.assert_not_called()

    def test_io_failure_drops_connection(self) -> None:
        self.transactor.transact.side_effect = TransportFault("Write to COM5 failed: gone")
        self.connect()

        self.session.send("PING")
        self.session.wait(1.0)

        self.assertIn(
            "An error occurred while sending command: Write to COM5 failed: gone",
            self.messages(),
        )
        self.assertEqual(self.messages()[-1], "Serial port closed.")
        self.transactor.disconnect.assert_called_once_with(self.connection)
        self.assertFalse(self.session.is_connected)
        self.assertEqual(self.states[-1].connect_label, "Connect")

    def test_second_send_is_refused_while_busy(self) -> None:
        release = threading.Event()
        started = threading.Event()

        def slow_transact(connection, command):
            started.set()
            release.wait(1.0)
            return "OK"

        self.transactor.transact.side_effect = slow_transact
        self.connect()

        self.assertTrue(self.session.send("FIRST"))
        self.assertTrue(started.wait(1.0))
        try:
            self.assertFalse(self.session.send("SECOND"))
        finally:
            release.set()
        self.session.wait(1.0)

        self.transactor.transact.assert_called_once_with(self.connection, "FIRST")
        self.assertIn("ERROR: A command is already in progress.", self.messages())

    def test_disconnect_closes_and_resets_state(self) -> None:
        self.connect()

        self.session.disconnect()

        self.transactor.disconnect.assert_called_once_with(self.connection)
        self.assertEqual(self.messages()[-1], "Serial port closed.")
        self.assertEqual(self.states[-1].connect_label, "Connect")

    def test_close_during_connect_releases_late_connection(self) -> None:
        release = threading.Event()
        started = threading.Event()

        def slow_connect(port, baudrate):
            started.set()
            release.wait(1.0)
            return self.connection

        self.transactor.connect.side_effect = slow_connect

        self.assertTrue(self.session.connect("COM5", 9600))
        self.assertTrue(started.wait(1.0))
        self.session.close()
        release.set()
        self.session.wait(1.0)

        self.assertEqual(
            self.transactor.disconnect.call_args_list[-1], mock.call(self.connection)
        )
        self.assertFalse(self.session.is_connected)
        self.assertNotIn("Successfully connected to COM5 at 9600 baud.", self.messages())
        self.assertEqual(self.states[-1], SessionState())

    def test_toggle_connection_switches_between_connect_and_disconnect(self) -> None:
        self.session.toggle_connection("COM5", 19200)
        self.session.wait(1.0)
        self.assertTrue(self.session.is_connected)

        self.session.toggle_connection("COM5", 19200)
        self.assertFalse(self.session.is_connected)
        self.transactor.connect.assert_called_once_with("COM5", 19200)


class ScheduleTests(unittest.TestCase):
    def test_callbacks_are_routed_through_schedule(self) -> None:
        pending = []
        logs = []
        TransactionSession(
            mock.create_autospec(SerialTransactor, instance=True),
            schedule=pending.append,
            on_log=logs.append,
            clock=fixed_clock,
        )
        self.assertEqual(logs, [])
        self.assertEqual(len(pending), 1)

        pending.pop()()
        self.assertEqual(logs, ["12:34:56 - Application ready."])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
