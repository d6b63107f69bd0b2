"""Demo entrypoint wiring together the sink components.

This module contains a small, end-to-end "smoke test" that:

- Loads configuration from environment.
- Creates the destination table in the configured DuckDB database.
- Attaches a `TraceSinkHandler` to a demo logger and emits a few records.
- Flushes and prints how many rows the table now holds.

It is **not** intended to be production wiring; it is a convenient manual
integration harness.
"""

from __future__ import annotations

import logging
import os

import duckdb

from config import load_config
from tracesink import EventKind, TraceListener, TraceSinkHandler
from tracesink.stores import create_table_statement, quote_identifier

DEFAULT_TABLE = "EventLog"


def run_demo() -> int:
    """Buffer a handful of events, flush them and return the table's row count."""
    cfg = load_config()
    table_name = cfg.table_name or DEFAULT_TABLE

    with duckdb.connect(cfg.connection_string) as conn:
        conn.execute(create_table_statement(table_name))

    listener = TraceListener.from_config(cfg)
    listener.table_name = table_name

    logger = logging.getLogger(os.getenv("DEMO_LOGGER", "demo"))
    logger.setLevel(logging.DEBUG)
    handler = TraceSinkHandler(listener)
    logger.addHandler(handler)
    try:
        logger.info("demo started")
        logger.warning("disk usage at %d%%", 91, extra={"event_id": 7})
        listener.trace_event("demo", EventKind.START, 1, "worker {0} starting", "w1")
        listener.trace_data("demo", EventKind.VERBOSE, 2, {"batch": 1}, [1, 2, 3])
        listener.write("plain categorized write", "demo.category")
        listener.fail("ignored by design")
        handler.flush()
    finally:
        logger.removeHandler(handler)
        handler.close()

    with duckdb.connect(cfg.connection_string) as conn:
        (count,) = conn.execute(f"select count(*) from {quote_identifier(table_name)}").fetchone()
    return int(count)


def main() -> None:
    """CLI entrypoint for running the demo with `python src/main.py`."""
    print(f"rows persisted: {run_demo()}")


if __name__ == "__main__":
    main()
