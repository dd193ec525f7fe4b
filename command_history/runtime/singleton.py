from __future__ import annotations

from collections.abc import Callable, Sequence

from command_history.config import HistoryConfig
from command_history.engine import CommandHistory
from command_history.sinks import EventSink


_HISTORY: CommandHistory | None = None


def init_history(
    *,
    config: HistoryConfig,
    sinks: Sequence[EventSink] | None = None,
    cleanup: Callable[[], None] | None = None,
) -> CommandHistory:
    """Create the process-wide history once and cache it.

    Safe to call multiple times; subsequent calls return the already created instance.
    """

    global _HISTORY
    if _HISTORY is None:
        _HISTORY = CommandHistory.from_config(config, cleanup=cleanup, sinks=sinks)
    return _HISTORY


def reset_history_for_tests() -> None:
    """Drop the cached history (cancelling its coalescence timer).

    This is intended for tests so each one can start from an empty history.
    """

    global _HISTORY
    if _HISTORY is not None:
        _HISTORY.close()
    _HISTORY = None


def get_history() -> CommandHistory:
    if _HISTORY is None:
        raise RuntimeError("History not initialized. Call init_history() at startup.")
    return _HISTORY
