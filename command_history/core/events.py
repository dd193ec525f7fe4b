from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

EventType = Literal[
    "ADDED",
    "COALESCED",
    "DROPPED",
    "CLEARED",
    "NOOP",
    "UNDID",
    "REDID",
]


_MESSAGES: dict[str, str] = {
    "ADDED": "Added {} to undo stack.",
    "COALESCED": "Coalesced {}.",
    "DROPPED": "Dropped {} due to manual undo.",
    "CLEARED": "Executed {} and cleared stack.",
    "NOOP": "{} was a no-op.",
    "UNDID": "Undid {}.",
    "REDID": "Redid {}.",
}


@dataclass(frozen=True, slots=True)
class HistoryEvent:
    """Informational lifecycle notification emitted by `CommandHistory`."""

    type: EventType
    description: str
    ts: datetime

    @staticmethod
    def now(*, type: EventType, description: str) -> "HistoryEvent":
        return HistoryEvent(type=type, description=description, ts=datetime.now(timezone.utc))

    @property
    def message(self) -> str:
        return _MESSAGES[self.type].format(self.description)

    def as_fields(self) -> dict[str, str]:
        # Redis stream entries only carry string fields/values.
        return {"type": self.type, "description": self.description, "ts": self.ts.isoformat()}

    def as_payload(self) -> dict[str, object]:
        return {"type": "history_event", "event": self.type, "description": self.description, "message": self.message, "ts": self.ts.isoformat()}
