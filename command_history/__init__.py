"""Linear undo/redo history for async commands, with time-windowed coalescence.

Typical use::

    history = CommandHistory(cleanup=refresh_view)
    await history.execute(SetTitle, doc, "Draft 2")
    await history.undo()
"""

from command_history.config import HistoryConfig
from command_history.core.commands import (
    Coalescable,
    CoalescenceResult,
    Command,
    CommandFactory,
    CommandResult,
)
from command_history.core.errors import HistoryBusyError
from command_history.core.events import EventType, HistoryEvent
from command_history.engine import CommandHistory
from command_history.sinks import EventSink, LoggingSink, RecordingSink, RedisStreamSink

__all__ = [
    "Coalescable",
    "CoalescenceResult",
    "Command",
    "CommandFactory",
    "CommandHistory",
    "CommandResult",
    "EventSink",
    "EventType",
    "HistoryBusyError",
    "HistoryConfig",
    "HistoryEvent",
    "LoggingSink",
    "RecordingSink",
    "RedisStreamSink",
]
