import logging
import threading
import tkinter as tk
from tkinter import messagebox

from .config import SerialSettings
from .context import AppContext
from .services import PortSelection
from .session import SessionState, TransactionSession
from .settings import (
    DEFAULT_BAUD_RATE,
    DEFAULT_COMMAND,
    STANDARD_BAUD_RATES,
    configure_logging,
)
from .transport import SerialTransactor
from .ui import CommandView, ConnectionView, LogView

NO_PORTS = "No COM ports found"


class RS485TermApp:
    """Main window: pick a port, connect, send one command at a time."""

    def __init__(
        self,
        root,
        *,
        context: AppContext | None = None,
        port: str | None = None,
        baudrate: int | None = None,
    ):
        """Initialize the RS485TermApp with the main window.

        *port* and *baudrate* preselect the pickers, as given on the command line.
        """
        self.root = root
        self.root.title("RS-485 Terminal")
        self.root.geometry("520x480")

        self.context = context or AppContext()
        self.pinned_port = port

        # --- State Variables ---
        self.selected_port = tk.StringVar(root, value=port or "")
        self.selected_baud = tk.StringVar(
            root, value=str(baudrate or DEFAULT_BAUD_RATE)
        )
        self.command_var = tk.StringVar(root, value=DEFAULT_COMMAND)

        # --- UI Construction ---
        self.connection_view = ConnectionView(
            self.root,
            selected_port=self.selected_port,
            selected_baud=self.selected_baud,
            baud_rates=STANDARD_BAUD_RATES,
            on_refresh=self.refresh_ports,
            on_toggle=self.toggle_connection,
        )
        self.command_view = CommandView(
            self.root,
            command_var=self.command_var,
            on_send=self.send_command,
        )
        self.log_view = LogView(self.root)

        # --- Session ---
        self.session = TransactionSession(
            self.context.transactor,
            schedule=lambda func: self.root.after(0, func),
            on_log=self.log_view.append,
            on_state=self.apply_state,
        )
        self.apply_state(self.session.state)

        self.root.protocol("WM_DELETE_WINDOW", self.on_close)
        self.refresh_ports()

    def apply_state(self, state: SessionState) -> None:
        """Reflect the session state in button enablement."""
        self.connection_view.apply_state(state)
        self.command_view.set_send_enabled(state.can_send)

    def toggle_connection(self) -> None:
        port = self.selected_port.get()
        if port == NO_PORTS:
            port = ""
        try:
            baudrate = int(self.selected_baud.get())
        except ValueError:
            messagebox.showerror("Error", "Invalid baud rate.")
            return
        self.session.toggle_connection(port, baudrate)

    def send_command(self) -> None:
        if not self.session.state.can_send:
            return
        self.session.send(self.command_var.get())

    def refresh_ports(self) -> None:
        """Refresh the available COM ports off the Tk thread."""

        def worker() -> None:
            try:
                selection = self.context.port_service.build_selection(
                    self.selected_port.get(), pinned=self.pinned_port
                )
            except Exception as exc:
                logging.error("Port refresh failed: %s", exc)
                return
            self.root.after(0, lambda: self._apply_port_selection(selection))

        threading.Thread(target=worker, name="PortRefresh", daemon=True).start()

    def _apply_port_selection(self, selection: PortSelection) -> None:
        ports = list(selection.ports)
        self.connection_view.set_ports(ports if ports else [NO_PORTS])
        self.selected_port.set(selection.selected or NO_PORTS)

    def on_close(self) -> None:
        self.session.close()
        self.root.destroy()


def create_application(
    *,
    root: tk.Tk | None = None,
    context: AppContext | None = None,
    settings: SerialSettings | None = None,
    port: str | None = None,
    baudrate: int | None = None,
) -> RS485TermApp:
    """Construct the GUI without entering the Tk main loop."""

    root = root or tk.Tk()
    if context is None:
        context = AppContext(transactor=SerialTransactor(settings))
    return RS485TermApp(root, context=context, port=port, baudrate=baudrate)


def main(
    settings: SerialSettings | None = None,
    *,
    port: str | None = None,
    baudrate: int | None = None,
) -> None:
    """Launch the rs485term GUI application."""

    configure_logging()
    app = create_application(settings=settings, port=port, baudrate=baudrate)
    app.root.mainloop()


if __name__ == "__main__":
    main()
