"""Serial transaction settings for rs485term."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

# Timeouts must be positive; a zero settling delay disables it.
_MINIMUMS = {"read_timeout_ms": 1, "write_timeout_ms": 1, "settle_delay_ms": 0}


def _coerce_int(value: Any, default: Optional[int]) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class SerialSettings:
    read_timeout_ms: int = 2000
    write_timeout_ms: int = 500
    settle_delay_ms: int = 50
    line_terminator: str = "\n"
    encoding: str = "utf-8"
    rts_active_high: bool = True

    @property
    def read_timeout(self) -> float:
        return self.read_timeout_ms / 1000.0

    @property
    def write_timeout(self) -> float:
        return self.write_timeout_ms / 1000.0

    @property
    def settle_delay(self) -> float:
        return self.settle_delay_ms / 1000.0


def _coerce_bounded(raw: Mapping[str, Any], key: str, default: int, minimum: int) -> int:
    value = raw.get(key)
    if value is None:
        return default
    parsed = _coerce_int(value, None)
    if parsed is None:
        logger.error("Setting %s=%r is not an integer; using %d", key, value, default)
        return default
    if parsed < minimum:
        logger.error("Setting %s=%r is below %d; using %d", key, value, minimum, default)
        return default
    return parsed


def coerce_settings(raw: Mapping[str, Any] | None = None) -> SerialSettings:
    """Merge *raw* over the defaults, falling back per key on bad values.

    Keys that are missing or ``None`` keep their default.
    """

    defaults = SerialSettings()
    if not raw:
        return defaults

    data = asdict(defaults)
    for key, minimum in _MINIMUMS.items():
        data[key] = _coerce_bounded(raw, key, data[key], minimum)

    terminator = raw.get("line_terminator")
    if terminator is not None:
        terminator = str(terminator)
        if terminator:
            data["line_terminator"] = terminator
        else:
            logger.error("Empty line terminator; using %r", defaults.line_terminator)

    encoding = raw.get("encoding")
    if encoding:
        encoding = str(encoding)
        try:
            newline = "\n".encode(encoding)
        except LookupError:
            logger.error("Unknown encoding %r; using %s", encoding, defaults.encoding)
        else:
            # Replies are framed on raw bytes, so the terminator must encode as ASCII.
            if newline == b"\n":
                data["encoding"] = encoding
            else:
                logger.error(
                    "Encoding %r is not ASCII-compatible; using %s",
                    encoding,
                    defaults.encoding,
                )

    if raw.get("rts_active_high") is not None:
        data["rts_active_high"] = bool(raw["rts_active_high"])

    return SerialSettings(**data)
