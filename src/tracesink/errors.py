"""Exception taxonomy for the trace sink.

Validation failures are raised as specific, named conditions. Anything coming
from the backing store (connectivity, SQL errors) is left to propagate
unmodified to the caller of `flush()`.
"""

from __future__ import annotations

from typing import Any


class TraceSinkError(Exception):
    """Base class for errors raised by the trace sink itself."""


class UnsupportedSeverity(TraceSinkError, ValueError):
    """An event kind outside the known enumeration reached the severity mapper."""

    def __init__(self, kind: Any) -> None:
        self.kind = kind
        super().__init__(f"Unknown event kind: {kind!r}")


class InvalidRecord(TraceSinkError, ValueError):
    """A dequeued record is missing its source or its details."""

    def __init__(self, field: str, record: Any) -> None:
        """Create an error naming the offending field and carrying the record."""
        self.field = field
        self.record = record
        super().__init__(f"{field} is None or empty")


class MissingTableName(TraceSinkError, RuntimeError):
    """A flush found buffered records but no destination table is configured."""
