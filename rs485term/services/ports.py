"""Serial port enumeration decoupled from the GUI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import serial.tools.list_ports

logger = logging.getLogger(__name__)


@dataclass
class PortSelection:
    """Snapshot of available ports and the recommended selection."""

    ports: List[str]
    selected: Optional[str]


class PortService:
    """Provide serial port discovery helpers."""

    def list_ports(self) -> List[str]:
        return sorted(port.device for port in serial.tools.list_ports.comports())

    def build_selection(
        self, current: Optional[str], *, pinned: Optional[str] = None
    ) -> PortSelection:
        """Return the list of ports and a suggested selection.

        Args:
            current: Current selection maintained by the caller; kept when the
                port is still present.
            pinned: Port named by the user up front, e.g. a pyserial URL that
                enumeration never reports. Always listed.
        """

        ports = self.list_ports()
        pinned = (pinned or "").strip()
        if pinned and pinned not in ports:
            ports.append(pinned)
        normalized = (current or "").strip()
        if normalized and normalized in ports:
            selected: Optional[str] = normalized
        else:
            selected = ports[0] if ports else None
        logger.debug("Found %d serial port(s); selected %s", len(ports), selected)
        return PortSelection(ports=ports, selected=selected)
