from __future__ import annotations

import asyncio
import logging

import fakeredis
import pytest

from command_history import CommandHistory, HistoryEvent, LoggingSink, RecordingSink, RedisStreamSink
from command_history.sinks import publish_event
from history_support import Backspace, Document, Publish, SetValue, TypeText


@pytest.mark.asyncio
async def test_every_lifecycle_event_is_emitted_in_order(doc: Document, sink: RecordingSink) -> None:
    history = CommandHistory(coalescence_window_ms=60_000, sinks=[sink])
    try:
        await history.execute(TypeText, doc, "a")  # ADDED
        await history.execute(TypeText, doc, "b")  # COALESCED
        await history.execute(SetValue, doc, "k", None)  # NOOP
        await history.undo()  # UNDID
        await history.redo()  # REDID
        await history.execute(Publish, doc)  # CLEARED
        await history.execute(TypeText, doc, "c")  # ADDED
        await history.execute(Backspace, doc)  # DROPPED
    finally:
        history.close()

    assert sink.types() == ["ADDED", "COALESCED", "NOOP", "UNDID", "REDID", "CLEARED", "ADDED", "DROPPED"]
    assert [e.description for e in sink.events[:2]] == ["type 'a'", "type 'b'"]
    assert all(e.ts.tzinfo is not None for e in sink.events)


@pytest.mark.asyncio
async def test_verbose_off_suppresses_events(doc: Document, sink: RecordingSink) -> None:
    history = CommandHistory(coalescence_window_ms=0, verbose=False, sinks=[sink])

    await history.execute(TypeText, doc, "a")
    await history.undo()

    assert sink.events == []
    assert history.redo_count == 1


@pytest.mark.asyncio
async def test_default_sink_logs_lifecycle_messages(doc: Document, caplog: pytest.LogCaptureFixture) -> None:
    history = CommandHistory(coalescence_window_ms=0)

    with caplog.at_level(logging.INFO, logger="command_history.sinks"):
        await history.execute(TypeText, doc, "a")
        await history.undo()
        await history.redo()
        await history.execute(Backspace, doc, 0)
        await history.execute(Publish, doc)

    messages = [rec.getMessage() for rec in caplog.records if rec.name == "command_history.sinks"]
    assert messages == [
        "Added type 'a' to undo stack.",
        "Undid type 'a'.",
        "Redid type 'a'.",
        "erase 0 was a no-op.",
        "Executed publish and cleared stack.",
    ]


def test_event_messages() -> None:
    assert HistoryEvent.now(type="COALESCED", description="x").message == "Coalesced x."
    assert HistoryEvent.now(type="DROPPED", description="x").message == "Dropped x due to manual undo."


def test_logging_sink_honours_level(caplog: pytest.LogCaptureFixture) -> None:
    log = logging.getLogger("tests.history")
    sink = LoggingSink(log=log, level=logging.DEBUG)

    with caplog.at_level(logging.DEBUG, logger="tests.history"):
        sink.emit(HistoryEvent.now(type="UNDID", description="move"))

    assert [(r.levelno, r.getMessage()) for r in caplog.records] == [(logging.DEBUG, "Undid move.")]


@pytest.mark.asyncio
async def test_redis_stream_sink_appends_string_fields(doc: Document) -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    history = CommandHistory(coalescence_window_ms=0, sinks=[RedisStreamSink(r=r, stream_key="history:events")])

    await history.execute(TypeText, doc, "hello")
    await history.undo()

    entries = r.xrange("history:events")
    assert [fields["type"] for _, fields in entries] == ["ADDED", "UNDID"]
    _, first = entries[0]
    assert first["description"] == "type 'hello'"
    assert first["ts"].endswith("+00:00")


def test_publish_event_returns_stream_id() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    event = HistoryEvent.now(type="ADDED", description="note")

    stream_id = publish_event(r=r, stream_key="s", event=event)

    assert r.xlen("s") == 1
    assert r.xrange("s")[0][0] == stream_id


@pytest.mark.asyncio
async def test_multiple_sinks_all_receive_events(doc: Document) -> None:
    first, second = RecordingSink(), RecordingSink()
    history = CommandHistory(coalescence_window_ms=0, sinks=[first, second])

    await history.execute(TypeText, doc, "a")

    assert first.types() == second.types() == ["ADDED"]


class BrokenSink:
    """Raises like a stream sink whose Redis went away, once `down` is set."""

    def __init__(self) -> None:
        self.down = False

    def emit(self, event: HistoryEvent) -> None:
        if self.down:
            raise ConnectionError("redis unavailable")


@pytest.mark.asyncio
async def test_failing_sink_does_not_lose_the_undone_command(doc: Document, caplog: pytest.LogCaptureFixture) -> None:
    broken, recorder = BrokenSink(), RecordingSink()
    history = CommandHistory(coalescence_window_ms=0, sinks=[broken, recorder])
    await history.execute(TypeText, doc, "a")

    broken.down = True
    with caplog.at_level(logging.ERROR, logger="command_history.engine"):
        await history.undo()

    assert doc.text == ""
    assert history.undo_count == 0
    assert history.redo_count == 1
    assert history.redo_description == "type 'a'"
    assert history.busy is False
    # Sinks after the broken one still see the event.
    assert recorder.types() == ["ADDED", "UNDID"]
    assert "Event sink" in caplog.text
    assert "ConnectionError" in caplog.text

    await history.redo()

    assert doc.text == "a"
    assert history.undo_count == 1
    assert history.redo_count == 0
    assert recorder.types() == ["ADDED", "UNDID", "REDID"]


@pytest.mark.asyncio
async def test_failing_sink_still_arms_the_coalescence_window(doc: Document) -> None:
    broken = BrokenSink()
    broken.down = True
    history = CommandHistory(coalescence_window_ms=50, sinks=[broken])
    try:
        await history.execute(TypeText, doc, "a")

        assert history.undo_count == 1
        assert history.coalescing is True
        assert history._timer is not None

        await asyncio.sleep(0.15)
        assert history.coalescing is False
    finally:
        history.close()


@pytest.mark.asyncio
async def test_failing_sink_does_not_fail_a_clearing_command(doc: Document) -> None:
    broken = BrokenSink()
    history = CommandHistory(coalescence_window_ms=60_000, sinks=[broken])
    try:
        await history.execute(TypeText, doc, "a")
        broken.down = True

        await history.execute(Publish, doc)

        assert doc.published == ["a"]
        assert history.undo_count == 0
        assert history.coalescing is False
        assert history.busy is False
    finally:
        history.close()
