"""`logging.Handler` that feeds stdlib log records into a `TraceListener`.

Attach it to any logger; every record becomes one buffered event whose source
is the logger name. Records are persisted when the handler (or the listener)
is flushed or closed, e.g. by `logging.shutdown()` at interpreter exit.

Typical usage::

    import logging
    from tracesink import TraceListener, TraceSinkHandler

    listener = TraceListener("app.duckdb", table_name="EventLog")
    logging.getLogger().addHandler(TraceSinkHandler(listener))

    logging.getLogger("orders").info("accepted", extra={"event_id": 42})
"""

from __future__ import annotations

import logging

from .errors import InvalidRecord, TraceSinkError
from .listener import TraceListener
from .models import level_for_logging

# The sink's own diagnostics are never fed back into it.
_INTERNAL_LOGGER_PREFIX = "tracesink"


class TraceSinkHandler(logging.Handler):
    """Buffers log records in a `TraceListener` and flushes on demand."""

    def __init__(self, listener: TraceListener, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.listener = listener

    def emit(self, record: logging.LogRecord) -> None:
        """Buffer a single record as an event (never blocks on I/O)."""
        if record.name == _INTERNAL_LOGGER_PREFIX or record.name.startswith(_INTERNAL_LOGGER_PREFIX + "."):
            return
        try:
            event_id = getattr(record, "event_id", None)
            if isinstance(event_id, bool) or not isinstance(event_id, int):
                event_id = None
            self.listener.trace_event(
                record.name,
                level_for_logging(record.levelno),
                event_id,
                self.format(record),
            )
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Persist everything buffered so far.

        Sink errors are reported through `handleError` instead of raised, so
        `logging.shutdown()` still reaches `close()`.
        """
        try:
            self.listener.flush()
        except TraceSinkError:
            self.handleError(self._failure_record("flush"))

    def close(self) -> None:
        """Flush remaining records, then detach from the logging machinery.

        An invalid record is dropped by the sink, so draining continues past it;
        any other sink error stops the drain.
        """
        try:
            while len(self.listener.sink):
                try:
                    self.listener.dispose()
                except InvalidRecord:
                    self.handleError(self._failure_record("close"))
                except TraceSinkError:
                    self.handleError(self._failure_record("close"))
                    break
        finally:
            super().close()

    def _failure_record(self, operation: str) -> logging.LogRecord:
        return logging.LogRecord(
            _INTERNAL_LOGGER_PREFIX, logging.ERROR, __file__, 0, "sink %s failed", (operation,), None
        )
