"""Application context container for shared services."""
from __future__ import annotations

from dataclasses import dataclass, field

from .services import PortService
from .transport import SerialTransactor


@dataclass
class AppContext:
    port_service: PortService = field(default_factory=PortService)
    transactor: SerialTransactor = field(default_factory=SerialTransactor)
