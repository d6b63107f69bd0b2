"""Trace-listener facade over a `BufferedSink`.

Hosts that emit trace calls (events, data, categorized writes) talk to a
`TraceListener`. Every data-bearing call is normalized here into exactly one
`enqueue` or `enqueue_categorized` on the underlying sink; the remaining hooks
(`fail`, `trace_transfer`) are accepted and deliberately do nothing.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from types import TracebackType
from typing import Any, Protocol

from config import SinkConfig

from .buffer import BufferedSink, SinkOptions
from .models import EventKind, to_log_level
from .stores import SessionFactory

TABLE_NAME_ATTRIBUTE = "tableName"

# Details used when an event is traced without a message.
NO_INFO = "no info"


class FailureHook(Protocol):
    """Receives error reports (`fail` calls) from the host."""

    def fail(self, message: str | None, detail: str | None = None) -> None:
        """Handle an error report."""


class SilentFailureHook:
    """Failure hook that ignores every report.

    Error reports are never persisted or raised: turning a logging failure
    into more log traffic would feed back into the sink.
    """

    def fail(self, message: str | None, detail: str | None = None) -> None:  # noqa: D401
        """No-op."""


def _to_text(obj: Any) -> str | None:
    return None if obj is None else str(obj)


def get_supported_attributes(base: Iterable[str] | None = None) -> list[str]:
    """Return the attributes a listener understands.

    The result is the host's `base` attributes (order kept) plus `tableName`,
    without duplicates.
    """
    attributes: list[str] = []
    for name in [*(base or ()), TABLE_NAME_ATTRIBUTE]:
        if name not in attributes:
            attributes.append(name)
    return attributes


class TraceListener:
    """Receives trace calls from a host and buffers them for the database."""

    def __init__(
        self,
        connection_string: str | None = None,
        *,
        table_name: str | None = None,
        connection_factory: SessionFactory | None = None,
        flush_lock: threading.Lock | None = None,
        failure_hook: FailureHook | None = None,
        sink: BufferedSink | None = None,
    ) -> None:
        """Create a listener.

        Either pass a ready-made `sink`, or let the listener build one from the
        connection string / factory, table name and lock.
        """
        if sink is None:
            sink = BufferedSink(
                connection_factory,
                options=SinkOptions(connection_string=connection_string, table_name=table_name),
                flush_lock=flush_lock,
            )
        self.sink = sink
        self.failure_hook: FailureHook = failure_hook or SilentFailureHook()

    @classmethod
    def from_config(cls, cfg: SinkConfig, **kwargs: Any) -> TraceListener:
        """Build a listener from a loaded `SinkConfig`."""
        if cfg.isolated_flush_lock and "flush_lock" not in kwargs:
            kwargs["flush_lock"] = threading.Lock()
        return cls(cfg.connection_string, table_name=cfg.table_name, **kwargs)

    # ------------------------------------------------------------------ #
    # Attributes
    # ------------------------------------------------------------------ #

    @property
    def table_name(self) -> str | None:
        return self.sink.options.table_name

    @table_name.setter
    def table_name(self, value: str | None) -> None:
        self.sink.options.table_name = value

    def set_attribute(self, name: str, value: str | None) -> None:
        """Set a named attribute. Only `tableName` is recognized."""
        if name != TABLE_NAME_ATTRIBUTE:
            raise KeyError(f"Unsupported attribute: {name!r}")
        self.table_name = value

    def get_attribute(self, name: str) -> str | None:
        """Return the current value of a named attribute, or None if unset."""
        if name != TABLE_NAME_ATTRIBUTE:
            return None
        return self.table_name

    def get_supported_attributes(self, base: Iterable[str] | None = None) -> list[str]:
        return get_supported_attributes(base)

    # ------------------------------------------------------------------ #
    # Data-bearing hooks
    # ------------------------------------------------------------------ #

    def trace_event(
        self,
        source: str | None,
        kind: EventKind | int,
        event_id: int | None,
        message: str | None = NO_INFO,
        *args: Any,
    ) -> None:
        """Buffer an event.

        With `args`, `message` is treated as a `str.format` template. Without
        `args` it is stored as given, so `{{` and `}}` are not unescaped. The kind
        is mapped first, so an unknown kind raises `UnsupportedSeverity` and
        nothing is buffered.
        """
        level = to_log_level(kind)
        if args and message is not None:
            message = message.format(*args)
        self.sink.enqueue(source, level, event_id, message)

    def trace_data(self, source: str | None, kind: EventKind | int, event_id: int | None, *data: Any) -> None:
        """Buffer one or more data objects as a single event.

        A single object is stored as its `str()`; several are joined with
        newlines (None items become empty lines).
        """
        if len(data) == 1:
            message = _to_text(data[0])
        else:
            message = "\n".join("" if d is None else str(d) for d in data)
        self.trace_event(source, kind, event_id, message)

    def write(self, obj: Any, category: str | None = None) -> None:
        """Buffer a categorized write (level 4, category as source)."""
        self.sink.enqueue_categorized(_to_text(obj), category)

    def write_line(self, obj: Any, category: str | None = None) -> None:
        self.write(obj, category)

    # ------------------------------------------------------------------ #
    # Non-data hooks
    # ------------------------------------------------------------------ #

    def fail(self, message: str | None, detail: str | None = None) -> None:
        """Forward an error report to the failure hook (silent by default)."""
        self.failure_hook.fail(message, detail)

    def trace_transfer(
        self,
        source: str | None,
        event_id: int | None,
        message: str | None,
        related_activity_id: Any,
    ) -> None:
        """Accepted for completeness; transfers are not persisted."""

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def flush(self) -> int:
        return self.sink.flush()

    def close(self) -> None:
        self.sink.close()

    def dispose(self) -> None:
        self.sink.dispose()

    def __enter__(self) -> TraceListener:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()
