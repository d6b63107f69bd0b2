from __future__ import annotations

import threading
import uuid

import pytest

from config import SinkConfig
from tracesink import (
    EventKind,
    InMemoryStore,
    InvalidRecord,
    LogRecord,
    SilentFailureHook,
    TraceListener,
    UnsupportedSeverity,
    get_supported_attributes,
    shared_flush_lock,
)


def _make_listener(store: InMemoryStore, table_name: str | None = "EventLog") -> TraceListener:
    return TraceListener(connection_factory=store.connect, table_name=table_name)


def _queued(listener: TraceListener) -> list[LogRecord]:
    return list(listener.sink._queue)


def test_trace_event_maps_severity_and_enqueues_one_record():
    listener = _make_listener(InMemoryStore())

    listener.trace_event("app", EventKind.CRITICAL, 500, "boom")
    listener.trace_event("app", EventKind.STOP, 2)

    assert _queued(listener) == [
        LogRecord(source="app", level=1, event_id=500, details="boom"),
        LogRecord(source="app", level=0, event_id=2, details="no info"),
    ]


def test_trace_event_formats_message_with_args():
    listener = _make_listener(InMemoryStore())

    listener.trace_event("app", EventKind.WARNING, 3, "{0} of {1} retries used", 2, 5)

    assert _queued(listener)[0].details == "2 of 5 retries used"
    assert _queued(listener)[0].level == 3


def test_trace_event_with_unknown_kind_raises_and_enqueues_nothing():
    listener = _make_listener(InMemoryStore())

    with pytest.raises(UnsupportedSeverity):
        listener.trace_event("app", 64, 1, "never stored")

    assert len(listener.sink) == 0


def test_trace_data_single_object_uses_str():
    listener = _make_listener(InMemoryStore())

    listener.trace_data("app", EventKind.VERBOSE, 9, {"k": 1})
    listener.trace_data("app", EventKind.VERBOSE, 10, None)

    first, second = _queued(listener)
    assert first.details == "{'k': 1}"
    assert first.level == 5
    assert second.details is None


def test_trace_data_many_objects_are_joined_with_newlines():
    listener = _make_listener(InMemoryStore())

    listener.trace_data("app", EventKind.INFORMATION, 1, "a", 2, None, "d")

    assert _queued(listener) == [LogRecord(source="app", level=4, event_id=1, details="a\n2\n\nd")]


def test_write_uses_category_as_source_with_information_level():
    listener = _make_listener(InMemoryStore())

    listener.write("hello", "catA")
    listener.write_line(42, "catB")
    listener.write(None, "catC")

    assert _queued(listener) == [
        LogRecord(source="catA", level=4, event_id=None, details="hello"),
        LogRecord(source="catB", level=4, event_id=None, details="42"),
        LogRecord(source="catC", level=4, event_id=None, details=None),
    ]


def test_uncategorized_write_is_buffered_but_rejected_at_flush():
    store = InMemoryStore()
    listener = _make_listener(store)

    listener.write_line("no category")
    assert _queued(listener) == [LogRecord(source=None, level=4, event_id=None, details="no category")]

    with pytest.raises(InvalidRecord):
        listener.flush()
    assert store.snapshot() == []


def test_fail_and_trace_transfer_are_silent_noops():
    listener = _make_listener(InMemoryStore())

    listener.fail("something broke")
    listener.fail("something broke", "with details")
    listener.trace_transfer("app", 1, "moving on", uuid.uuid4())

    assert isinstance(listener.failure_hook, SilentFailureHook)
    assert len(listener.sink) == 0


def test_fail_is_delegated_to_a_custom_hook():
    seen: list[tuple[str | None, str | None]] = []

    class _RecordingHook:
        def fail(self, message: str | None, detail: str | None = None) -> None:
            seen.append((message, detail))

    listener = TraceListener(connection_factory=InMemoryStore().connect, failure_hook=_RecordingHook())
    listener.fail("m", "d")

    assert seen == [("m", "d")]
    assert len(listener.sink) == 0


def test_table_name_attribute_retargets_the_next_flush():
    store = InMemoryStore()
    listener = _make_listener(store, table_name=None)
    assert listener.get_attribute("tableName") is None

    listener.set_attribute("tableName", "Audit")
    listener.write("one", "cat")
    listener.flush()

    listener.set_attribute("tableName", "Audit2")
    listener.write("two", "cat")
    listener.close()

    assert listener.get_attribute("tableName") == "Audit2"
    assert [r.details for r in store.snapshot("Audit")] == ["one"]
    assert [r.details for r in store.snapshot("Audit2")] == ["two"]


def test_set_attribute_rejects_unknown_names():
    listener = _make_listener(InMemoryStore())
    with pytest.raises(KeyError):
        listener.set_attribute("retries", "3")
    assert listener.get_attribute("retries") is None


@pytest.mark.parametrize(
    ("base", "expected"),
    [
        (None, ["tableName"]),
        ([], ["tableName"]),
        (["indentSize", "format"], ["indentSize", "format", "tableName"]),
        (["tableName", "format", "format"], ["tableName", "format"]),
    ],
)
def test_supported_attributes_are_an_additive_union(base, expected):
    assert get_supported_attributes(base) == expected
    assert _make_listener(InMemoryStore()).get_supported_attributes(base) == expected


def test_dispose_via_context_manager_flushes_three_records():
    store = InMemoryStore()
    with _make_listener(store) as listener:
        listener.trace_event("app", EventKind.INFORMATION, 1, "a")
        listener.trace_event("app", EventKind.ERROR, 2, "b")
        listener.write("c", "cat")

    assert [(r.level, r.details) for r in store.snapshot()] == [(4, "a"), (2, "b"), (4, "c")]


def test_from_config_honours_isolated_flush_lock():
    shared = TraceListener.from_config(SinkConfig(connection_string="db.duckdb", table_name="T"))
    isolated = TraceListener.from_config(
        SinkConfig(connection_string="db.duckdb", table_name="T", isolated_flush_lock=True)
    )

    assert shared.sink.flush_lock is shared_flush_lock()
    assert isolated.sink.flush_lock is not shared_flush_lock()
    assert isinstance(isolated.sink.flush_lock, type(threading.Lock()))
    assert isolated.table_name == "T"
    assert isolated.sink.options.connection_string == "db.duckdb"


def test_trace_event_without_args_keeps_braces_literal():
    listener = _make_listener(InMemoryStore())

    listener.trace_event("app", EventKind.INFORMATION, 1, "{{literal}} {0}")
    listener.trace_event("app", EventKind.INFORMATION, 2, "{{escaped}} {0}", "x")

    first, second = _queued(listener)
    assert first.details == "{{literal}} {0}"
    assert second.details == "{escaped} x"
