"""Buffered trace sink.

This package buffers diagnostic events in memory and persists them as rows in
a relational table:
- `TraceListener` / `TraceSinkHandler` receive events from the host.
- `BufferedSink` queues them and drains the queue into the database on flush.
- Sessions (DuckDB by default) perform one parameterized insert per record.
"""

from .buffer import BufferedSink, SinkOptions, shared_flush_lock, validate_record
from .errors import InvalidRecord, MissingTableName, TraceSinkError, UnsupportedSeverity
from .handler import TraceSinkHandler
from .listener import FailureHook, SilentFailureHook, TraceListener, get_supported_attributes
from .models import EventKind, LogRecord, level_for_logging, to_log_level
from .stores import DuckDBSession, InMemoryStore, RecordSession, duckdb_session_factory

__all__ = [
    "BufferedSink",
    "DuckDBSession",
    "EventKind",
    "FailureHook",
    "InMemoryStore",
    "InvalidRecord",
    "LogRecord",
    "MissingTableName",
    "RecordSession",
    "SilentFailureHook",
    "SinkOptions",
    "TraceListener",
    "TraceSinkError",
    "TraceSinkHandler",
    "UnsupportedSeverity",
    "duckdb_session_factory",
    "get_supported_attributes",
    "level_for_logging",
    "shared_flush_lock",
    "to_log_level",
    "validate_record",
]
