"""Backing-store sessions (storage backends).

A sink talks to its database through a *session*: one is opened per flush,
receives one `insert()` per record, and is closed on every exit path. Sessions
are synchronous; the sink serializes flushes with its own lock.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

import duckdb

from .models import LogRecord

COLUMNS = ("Source", "Level", "Timestamp", "EventID", "EventDetails")


class RecordSession(Protocol):
    """A unit of work against the backing store, scoped to a single flush."""

    def insert(self, table_name: str, record: LogRecord) -> None:
        """Persist a single record into `table_name`."""

    def close(self) -> None:
        """Release the underlying connection."""


SessionFactory = Callable[[], RecordSession]


def quote_identifier(name: str) -> str:
    """Quote a table name for use in SQL (embedded quotes are doubled)."""
    return '"' + name.replace('"', '""') + '"'


def insert_statement(table_name: str) -> str:
    """Build the parameterized INSERT used for every record.

    The timestamp is filled in by the database at insert time.
    """
    columns = ", ".join(quote_identifier(c) for c in COLUMNS)
    return f"insert into {quote_identifier(table_name)} ({columns}) values (?, ?, current_timestamp, ?, ?)"


def create_table_statement(table_name: str) -> str:
    """DDL for a table matching the columns the sink writes.

    Schema management is left to the deployment; this is a convenience for
    local setups and tests.
    """
    return f"""
    create table if not exists {quote_identifier(table_name)} (
      "Source" varchar(255) not null,
      "Level" integer not null,
      "Timestamp" timestamp not null,
      "EventID" integer,
      "EventDetails" varchar not null
    )
    """


class DuckDBSession:
    """Session backed by a DuckDB connection."""

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def insert(self, table_name: str, record: LogRecord) -> None:
        """Insert a single record with one parameterized statement."""
        self._conn.execute(
            insert_statement(table_name),
            [record.source, record.level, record.event_id, record.details],
        )

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()


def duckdb_session_factory(connection_string: str) -> SessionFactory:
    """Return a factory opening a fresh DuckDB connection per call.

    `connection_string` is a DuckDB database path (or ``":memory:"``).
    """

    def _connect() -> DuckDBSession:
        return DuckDBSession(duckdb.connect(connection_string))

    return _connect


@dataclass(frozen=True)
class StoredRow:
    table_name: str
    source: str
    level: int
    timestamp: datetime
    event_id: int | None
    details: str


class InMemoryStore:
    """In-memory store for tests and local debugging.

    Tracks how many sessions were opened and closed so callers can check the
    one-open/one-close-per-flush contract.
    """

    def __init__(self) -> None:
        """Create an empty in-memory store."""
        self._lock = threading.Lock()
        self._rows: list[StoredRow] = []
        self.sessions_opened = 0
        self.sessions_closed = 0

    def connect(self) -> InMemorySession:
        """Open a new session (usable as a sink's connection factory)."""
        with self._lock:
            self.sessions_opened += 1
        return InMemorySession(self)

    def _append(self, row: StoredRow) -> None:
        with self._lock:
            self._rows.append(row)

    def _session_closed(self) -> None:
        with self._lock:
            self.sessions_closed += 1

    def snapshot(self, table_name: str | None = None) -> Sequence[StoredRow]:
        """Return a point-in-time copy of stored rows, optionally for one table."""
        with self._lock:
            if table_name is None:
                return list(self._rows)
            return [r for r in self._rows if r.table_name == table_name]


class InMemorySession:
    """Session writing into an `InMemoryStore`."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._closed = False

    def insert(self, table_name: str, record: LogRecord) -> None:
        """Append a row stamped with the store's current time."""
        if self._closed:
            raise RuntimeError("session is closed")
        self._store._append(
            StoredRow(
                table_name=table_name,
                source=record.source or "",
                level=record.level,
                timestamp=datetime.now(tz=timezone.utc),
                event_id=record.event_id,
                details=record.details or "",
            )
        )

    def close(self) -> None:
        """Mark the session closed (idempotent)."""
        if self._closed:
            return
        self._closed = True
        self._store._session_closed()
