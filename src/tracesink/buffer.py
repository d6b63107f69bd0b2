"""Buffered sink: concurrent enqueue, exclusive flush into the backing store.

Records are appended to an unbounded `collections.deque`; `append` and
`popleft` are atomic, so any number of threads can enqueue (and one flusher
can dequeue) without extra locking.

Flushes are serialized by a lock. By default every sink in the process shares
one lock held in this module, which means two different sinks never flush at
the same time. Pass `flush_lock=threading.Lock()` to give a sink its own lock
when instance-level isolation is preferred.

Partial persistence: a flush is best-effort. Records inserted before an
`InvalidRecord` (or a database error) stay persisted and are gone from the
queue; records not yet dequeued remain queued for the next flush. There is no
surrounding transaction.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass
from types import TracebackType

from .errors import InvalidRecord, MissingTableName
from .models import CATEGORIZED_LEVEL, LogRecord
from .stores import RecordSession, SessionFactory, duckdb_session_factory

logger = logging.getLogger(__name__)

_SHARED_FLUSH_LOCK = threading.Lock()


def shared_flush_lock() -> threading.Lock:
    """Return the process-wide lock that serializes flushes across all sinks."""
    return _SHARED_FLUSH_LOCK


@dataclass
class SinkOptions:
    """Recognized sink options.

    `table_name` is read on every flush, so assigning to it retargets the next
    flush without recreating the sink. `connection_string` is only used when
    no explicit session factory is supplied.
    """

    connection_string: str | None = None
    table_name: str | None = None


def validate_record(record: LogRecord) -> None:
    """Reject records that cannot be persisted.

    Raises:
        InvalidRecord: if `source` or `details` is None or empty.
    """
    if not record.source:
        raise InvalidRecord("source", record)
    if not record.details:
        raise InvalidRecord("details", record)


class BufferedSink:
    """Buffers log records in memory and drains them into a database table."""

    def __init__(
        self,
        connection_factory: SessionFactory | None = None,
        *,
        options: SinkOptions | None = None,
        flush_lock: threading.Lock | None = None,
    ) -> None:
        """Create a sink.

        Args:
            connection_factory: Zero-argument callable returning a new
                `RecordSession`. Called once per non-empty flush. Defaults to a
                DuckDB factory built from `options.connection_string`.
            options: Live options; `table_name` is re-read on every flush.
            flush_lock: Lock guarding flushes. Defaults to the shared,
                process-wide lock.
        """
        self.options = options or SinkOptions()
        self._connection_factory = connection_factory
        self._flush_lock = flush_lock if flush_lock is not None else shared_flush_lock()
        self._queue: deque[LogRecord] = deque()

    def __len__(self) -> int:
        """Return the number of records waiting for the next flush."""
        return len(self._queue)

    @property
    def flush_lock(self) -> threading.Lock:
        return self._flush_lock

    def enqueue(self, source: str | None, level: int, event_id: int | None, details: str | None) -> None:
        """Buffer one record. Never blocks on I/O and never validates."""
        self._queue.append(LogRecord(source=source, level=level, event_id=event_id, details=details))

    def enqueue_categorized(self, details: str | None, category: str | None) -> None:
        """Buffer a categorized write: the category becomes the source, level is 4."""
        self._queue.append(LogRecord(source=category, level=CATEGORIZED_LEVEL, event_id=None, details=details))

    def flush(self) -> int:
        """Drain every buffered record into the configured table.

        Records enqueued concurrently while the drain is running are picked up
        in the same pass if they arrive before the queue empties. Nothing is
        logged while the flush lock is held, so a logging handler that feeds
        this sink can flush it from another thread.

        Returns:
            The number of rows inserted.

        Raises:
            MissingTableName: if records are buffered but no table is configured.
            InvalidRecord: if a dequeued record has no source or no details.
                The rest of the queue is left for a future flush.
        """
        with self._flush_lock:
            if not self._queue:
                return 0

            table_name = self.options.table_name
            if not table_name:
                raise MissingTableName("table_name is not configured; cannot flush buffered records")

            inserted = 0
            failure: InvalidRecord | None = None
            session = self._open_session()
            try:
                while True:
                    try:
                        record = self._queue.popleft()
                    except IndexError:
                        break
                    validate_record(record)
                    session.insert(table_name, record)
                    inserted += 1
            except InvalidRecord as exc:
                failure = exc
            finally:
                session.close()
            remaining = len(self._queue)

        if failure is not None:
            logger.warning(
                "Flush to %s aborted after %d row(s): %s (%d record(s) still queued)",
                table_name,
                inserted,
                failure,
                remaining,
            )
            raise failure
        logger.debug("Flushed %d record(s) to %s", inserted, table_name)
        return inserted

    def close(self) -> None:
        """Flush buffered records; a no-op when the queue is empty."""
        self.flush()

    def dispose(self) -> None:
        """Release the sink, attempting one final flush if records are queued."""
        if self._queue:
            self.flush()

    async def aflush(self) -> int:
        """Run `flush()` in a worker thread so the event loop is not blocked."""
        return await asyncio.to_thread(self.flush)

    async def aclose(self) -> None:
        """Async counterpart of `dispose()`."""
        if self._queue:
            await asyncio.to_thread(self.flush)

    def __enter__(self) -> BufferedSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    def _open_session(self) -> RecordSession:
        """Open one session for the duration of a drain."""
        if self._connection_factory is None:
            if not self.options.connection_string:
                raise ValueError("connection_string is required when no connection_factory is given")
            self._connection_factory = duckdb_session_factory(self.options.connection_string)
        return self._connection_factory()
