"""Reusable Tkinter view components."""
from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from tkinter.scrolledtext import ScrolledText
from typing import Callable, Sequence

from ..session import SessionState


def _set_enabled(widget: tk.Widget, enabled: bool) -> None:
    widget.configure(state=tk.NORMAL if enabled else tk.DISABLED)


class ConnectionView:
    """Port and baud rate pickers with the connect toggle."""

    def __init__(
        self,
        master: tk.Misc,
        *,
        selected_port: tk.StringVar,
        selected_baud: tk.StringVar,
        baud_rates: Sequence[int],
        on_refresh: Callable[[], None],
        on_toggle: Callable[[], None],
    ) -> None:
        self.frame = tk.LabelFrame(master, text="1. Serial Port", padx=10, pady=10)
        self.frame.pack(padx=10, pady=10, fill="x")

        self.port_combobox = ttk.Combobox(
            self.frame, textvariable=selected_port, state="readonly"
        )
        self.port_combobox.grid(row=0, column=0, sticky="ew")

        self.refresh_button = tk.Button(self.frame, text="Refresh", command=on_refresh)
        self.refresh_button.grid(row=0, column=1, padx=(10, 0))

        tk.Label(self.frame, text="Baud:").grid(row=1, column=0, sticky="w", pady=(6, 0))
        self.baud_combobox = ttk.Combobox(
            self.frame,
            textvariable=selected_baud,
            values=[str(rate) for rate in baud_rates],
            state="readonly",
            width=10,
        )
        self.baud_combobox.grid(row=1, column=0, sticky="e", pady=(6, 0))

        self.toggle_button = tk.Button(
            self.frame, text="Connect", command=on_toggle, bg="#1976D2", fg="white"
        )
        self.toggle_button.grid(row=1, column=1, padx=(10, 0), pady=(6, 0), sticky="ew")

        self.frame.grid_columnconfigure(0, weight=1)

    def set_ports(self, ports: list[str]) -> None:
        self.port_combobox["values"] = ports

    def apply_state(self, state: SessionState) -> None:
        self.toggle_button.config(
            text=state.connect_label,
            bg="red" if state.connected else "#1976D2",
        )
        _set_enabled(self.toggle_button, state.can_toggle_connection)
        # Port and rate are fixed while a port is held.
        locked = state.connected or state.connecting
        picker_state = "disabled" if locked else "readonly"
        self.port_combobox.config(state=picker_state)
        self.baud_combobox.config(state=picker_state)


class CommandView:
    """Single-line command entry and the send button."""

    def __init__(
        self,
        master: tk.Misc,
        *,
        command_var: tk.StringVar,
        on_send: Callable[[], None],
    ) -> None:
        self.frame = tk.LabelFrame(master, text="2. Command", padx=10, pady=10)
        self.frame.pack(padx=10, pady=10, fill="x")

        self.entry = tk.Entry(self.frame, textvariable=command_var)
        self.entry.pack(side=tk.LEFT, fill="x", expand=True)
        self.entry.bind("<Return>", lambda _event: on_send())

        self.send_button = tk.Button(
            self.frame,
            text="Send",
            command=on_send,
            bg="#4CAF50",
            fg="white",
            state=tk.DISABLED,
        )
        self.send_button.pack(side=tk.LEFT, padx=(10, 0))

    def set_send_enabled(self, enabled: bool) -> None:
        _set_enabled(self.send_button, enabled)


class LogView:
    """Read-only scrolling log."""

    def __init__(self, master: tk.Misc) -> None:
        self.frame = tk.LabelFrame(master, text="3. Log", padx=10, pady=10)
        self.frame.pack(padx=10, pady=10, fill="both", expand=True)

        self.text = ScrolledText(self.frame, height=12, wrap="word", state=tk.DISABLED)
        self.text.pack(fill="both", expand=True)

    def append(self, line: str) -> None:
        self.text.configure(state=tk.NORMAL)
        self.text.insert(tk.END, f"{line}\n")
        self.text.see(tk.END)
        self.text.configure(state=tk.DISABLED)
