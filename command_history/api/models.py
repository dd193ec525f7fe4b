from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from command_history.engine import CommandHistory


class ExecuteRequest(BaseModel):
    command: str = Field(min_length=1)
    # Keyword arguments for the registered factory.
    args: dict[str, Any] = Field(default_factory=dict)


class TraverseRequest(BaseModel):
    # Non-positive levels are accepted and simply move nothing.
    levels: int = 1


class HistorySnapshot(BaseModel):
    undo_count: int
    redo_count: int
    undo_description: str
    redo_description: str
    busy: bool

    # Whether the top undo entry may still absorb the next command.
    coalescing: bool
    coalescence_window_ms: int

    @classmethod
    def from_history(cls, history: CommandHistory) -> "HistorySnapshot":
        return cls(
            undo_count=history.undo_count,
            redo_count=history.redo_count,
            undo_description=history.undo_description,
            redo_description=history.redo_description,
            busy=history.busy,
            coalescing=history.coalescing,
            coalescence_window_ms=history.coalescence_window_ms,
        )


class StreamedEvent(BaseModel):
    id: str
    type: str
    description: str
    ts: datetime


class EventListResponse(BaseModel):
    stream_key: str
    events: list[StreamedEvent] = Field(default_factory=list)


class CommandListResponse(BaseModel):
    commands: list[str] = Field(default_factory=list)
