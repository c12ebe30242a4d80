"""Shared constants and logging setup for rs485term."""

from __future__ import annotations

import logging

LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

STANDARD_BAUD_RATES = (9600, 19200, 38400, 57600, 115200)
DEFAULT_BAUD_RATE = 9600
DEFAULT_COMMAND = "WRITE_DATA:12345"


def configure_logging(
    *, level: int = LOG_LEVEL, fmt: str = LOG_FORMAT, force: bool = False
) -> None:
    """Initialize the root logger used across rs485term."""

    if force:
        logging.basicConfig(level=level, format=fmt, force=True)
        return

    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=fmt)
