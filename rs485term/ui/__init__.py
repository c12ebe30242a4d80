"""Tkinter views for rs485term."""

from .views import CommandView, ConnectionView, LogView

__all__ = ["CommandView", "ConnectionView", "LogView"]
