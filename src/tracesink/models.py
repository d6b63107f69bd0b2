"""Buffered record model and severity mapping.

A `LogRecord` is the unit that sits in the sink's queue between the moment a
trace call is observed and the moment it is inserted into the database.
Records are immutable; each enqueue creates exactly one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Final

from .errors import UnsupportedSeverity

# Level stamped by the categorical write path (same rank as INFORMATION).
CATEGORIZED_LEVEL: Final[int] = 4


class EventKind(IntEnum):
    """Kinds of trace events a host can emit.

    Values follow the host tracing framework's event-type flags so that raw
    integers coming from the host can be converted with `EventKind(value)`.
    """

    CRITICAL = 1
    ERROR = 2
    WARNING = 4
    INFORMATION = 8
    VERBOSE = 16
    START = 256
    STOP = 512
    SUSPEND = 1024
    RESUME = 2048
    TRANSFER = 4096


_LEVELS: Final[dict[EventKind, int]] = {
    EventKind.CRITICAL: 1,
    EventKind.ERROR: 2,
    EventKind.WARNING: 3,
    EventKind.INFORMATION: 4,
    EventKind.VERBOSE: 5,
    # Flow kinds are structural, not severity-bearing.
    EventKind.START: 0,
    EventKind.STOP: 0,
    EventKind.SUSPEND: 0,
    EventKind.RESUME: 0,
    EventKind.TRANSFER: 0,
}


@dataclass(frozen=True, slots=True)
class LogRecord:
    """One buffered diagnostic event awaiting persistence."""

    # Emitter identifier; may be None/empty on some write paths (rejected at flush).
    source: str | None
    level: int
    # None is persisted as SQL NULL, never as a sentinel.
    event_id: int | None
    details: str | None


def to_log_level(kind: EventKind | int) -> int:
    """Map an event kind to the numeric level stored in the database.

    Lower numbers are more severe. Start/stop/suspend/resume/transfer all map
    to 0.

    Raises:
        UnsupportedSeverity: if `kind` is not a known `EventKind` value.
    """
    if isinstance(kind, bool):
        raise UnsupportedSeverity(kind)
    try:
        member = EventKind(kind)
    except (ValueError, TypeError) as exc:
        raise UnsupportedSeverity(kind) from exc
    return _LEVELS[member]


def level_for_logging(levelno: int) -> EventKind:
    """Translate a stdlib `logging` level number into an `EventKind`."""
    if levelno >= logging.CRITICAL:
        return EventKind.CRITICAL
    if levelno >= logging.ERROR:
        return EventKind.ERROR
    if levelno >= logging.WARNING:
        return EventKind.WARNING
    if levelno >= logging.INFO:
        return EventKind.INFORMATION
    return EventKind.VERBOSE
