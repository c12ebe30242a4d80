"""rs485term package exposing the GUI application and the serial transactor."""

from __future__ import annotations

__all__ = ["main"]


def main() -> None:
    """Launch the rs485term GUI application."""

    from .app import main as _app_main

    _app_main()
