from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, cast

import redis

from command_history.core.events import EventType, HistoryEvent

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Receives lifecycle events from a `CommandHistory`.

    `emit` is called synchronously from inside history operations; it must not block.
    """

    def emit(self, event: HistoryEvent) -> None:  # pragma: no cover
        ...


@dataclass(slots=True)
class LoggingSink:
    """Default sink: one INFO line per lifecycle event."""

    log: logging.Logger = field(default_factory=lambda: logger)
    level: int = logging.INFO

    def emit(self, event: HistoryEvent) -> None:
        self.log.log(self.level, event.message)


@dataclass(slots=True)
class RecordingSink:
    """Keeps every event in memory, in order."""

    events: list[HistoryEvent] = field(default_factory=list)

    def emit(self, event: HistoryEvent) -> None:
        self.events.append(event)

    def types(self) -> list[EventType]:
        return [e.type for e in self.events]

    def clear(self) -> None:
        self.events.clear()


@dataclass(frozen=True, slots=True)
class RedisStreamSink:
    """Append each event to a Redis stream so other processes can follow the history."""

    r: redis.Redis
    stream_key: str
    # Approximate cap on stream length; None keeps everything.
    maxlen: int | None = 10_000

    def emit(self, event: HistoryEvent) -> None:
        publish_event(r=self.r, stream_key=self.stream_key, event=event, maxlen=self.maxlen)


def publish_event(*, r: redis.Redis, stream_key: str, event: HistoryEvent, maxlen: int | None = None) -> str:
    """Append one event to `stream_key` and return the stream entry id."""

    # redis-py stubs expect field/value unions; events only carry string fields/values.
    stream_id = r.xadd(stream_key, dict(event.as_fields()), maxlen=maxlen, approximate=True)
    return cast(str, stream_id)
