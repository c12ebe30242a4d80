"""Host-side services for rs485term."""

from .ports import PortSelection, PortService

__all__ = ["PortSelection", "PortService"]
