from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from command_history.config import DEFAULT_COALESCENCE_WINDOW_MS, HistoryConfig
from command_history.core.commands import (
    Coalescable,
    CoalescenceResult,
    Command,
    CommandFactory,
    CommandResult,
    build_command,
)
from command_history.core.errors import HistoryBusyError
from command_history.core.events import EventType, HistoryEvent
from command_history.core.fsm import CoalescenceFSM
from command_history.sinks import EventSink, LoggingSink

logger = logging.getLogger(__name__)

NONE_DESCRIPTION = "None"


def _no_cleanup() -> None:
    return None


class CommandHistory:
    """Linear undo/redo history of `Command` objects.

    Contract:
      - `execute(factory, *args)` constructs the command itself and never hands it back, so
        commands are only ever driven from here.
      - at most one of `execute`/`undo`/`redo` is in flight; a second call fails fast with
        `HistoryBusyError` instead of queueing.
      - commands added less than `coalescence_window_ms` apart may be merged into one undo step
        by the previous command's `Coalescable.coalesce`.

    All coroutine methods must run on the event loop that owns the coalescence timer.
    """

    def __init__(
        self,
        *,
        cleanup: Callable[[], None] | None = None,
        coalescence_window_ms: int = DEFAULT_COALESCENCE_WINDOW_MS,
        verbose: bool = True,
        sinks: Sequence[EventSink] | None = None,
    ) -> None:
        self._undo_commands: list[Command] = []
        self._redo_commands: list[Command] = []
        self._coalescence = CoalescenceFSM()
        self._timer: asyncio.TimerHandle | None = None
        self._cleanup = cleanup or _no_cleanup
        self._coalescence_window_ms = coalescence_window_ms
        self._verbose = verbose
        self._sinks: tuple[EventSink, ...] = tuple(sinks) if sinks is not None else (LoggingSink(),)
        self._busy = False

    @classmethod
    def from_config(
        cls,
        config: HistoryConfig,
        *,
        cleanup: Callable[[], None] | None = None,
        sinks: Sequence[EventSink] | None = None,
    ) -> "CommandHistory":
        return cls(
            cleanup=cleanup,
            coalescence_window_ms=config.coalescence_window_ms,
            verbose=config.verbose,
            sinks=sinks,
        )

    # ---- read-only queries ----

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def undo_count(self) -> int:
        return sum(1 for c in self._undo_commands if not c.is_noop())

    @property
    def redo_count(self) -> int:
        return len(self._redo_commands)

    @property
    def undo_description(self) -> str:
        for cmd in reversed(self._undo_commands):
            if not cmd.is_noop():
                return cmd.description
        return NONE_DESCRIPTION

    @property
    def redo_description(self) -> str:
        return self._redo_commands[-1].description if self._redo_commands else NONE_DESCRIPTION

    @property
    def coalescing(self) -> bool:
        return self._coalescence.is_eligible

    @property
    def coalescence_window_ms(self) -> int:
        return self._coalescence_window_ms

    # ---- mutating operations ----

    def coalescence_barrier(self) -> None:
        """Never merge the next command into the current top of the undo stack."""

        self._coalescence.barrier()

    async def execute(self, factory: CommandFactory, /, *args: Any, **kwargs: Any) -> None:
        self._acquire("Cannot execute command during another operation.")
        try:
            cmd = build_command(factory, *args, **kwargs)
            outcome: CommandResult | CoalescenceResult | None = self._coalesce_into_top(cmd)
            if outcome is None:
                outcome = await self._run_first_time(cmd)
        finally:
            self._busy = False

        if outcome in (CommandResult.ADD, CoalescenceResult.COALESCED):
            self._rearm_coalescence_timer()
        elif outcome is CommandResult.CLEAR:
            self._cancel_coalescence_timer()

    async def undo(self, levels: int = 1) -> None:
        self._acquire("Cannot undo during another operation.")
        try:
            while levels > 0 and self._undo_commands:
                cmd = self._undo_commands[-1]
                if cmd.is_noop():
                    # Reduced to nothing by coalescence after it was queued.
                    self._undo_commands.pop()
                    continue
                await cmd.undo()
                self._undo_commands.pop()
                self._redo_commands.append(cmd)
                levels -= 1
                self._emit("UNDID", cmd.description)
        except BaseException:
            self._finish_traversal(failed=True)
            raise
        self._finish_traversal(failed=False)

    async def redo(self, levels: int = 1) -> None:
        self._acquire("Cannot redo during another operation.")
        try:
            while levels > 0 and self._redo_commands:
                cmd = self._redo_commands[-1]
                await cmd.redo()
                self._redo_commands.pop()
                self._undo_commands.append(cmd)
                levels -= 1
                self._emit("REDID", cmd.description)
        except BaseException:
            self._finish_traversal(failed=True)
            raise
        self._finish_traversal(failed=False)

    def pop(self) -> None:
        """Forget the top undo entry without reversing it.

        For commands whose effects can no longer be reversed while earlier history is still valid.
        If this is needed often, the command should return `CommandResult.CLEAR` instead.
        """

        self._ensure_idle()
        if self._undo_commands:
            self._undo_commands.pop()

    def clear(self) -> None:
        """Drop all history. No command is undone or redone."""

        self._ensure_idle()
        self._undo_commands.clear()
        self._redo_commands.clear()

    def close(self) -> None:
        self._cancel_coalescence_timer()
        self._coalescence.barrier()

    # ---- internals ----

    def _acquire(self, message: str) -> None:
        # No await between the check and the set.
        if self._busy:
            raise HistoryBusyError(message)
        self._busy = True

    def _ensure_idle(self) -> None:
        if self._busy:
            raise HistoryBusyError("Cannot alter command history state during an operation.")

    def _coalesce_into_top(self, cmd: Command) -> CoalescenceResult | None:
        """Offer `cmd` to the top undo entry. Returns None when `cmd` must run on its own."""

        if not self._coalescence.is_eligible or not self._undo_commands:
            return None

        incumbent = self._undo_commands[-1]
        if not isinstance(incumbent, Coalescable):
            return None

        result = incumbent.coalesce(cmd)
        if result is CoalescenceResult.COALESCED:
            self._emit("COALESCED", cmd.description)
            return result
        if result is CoalescenceResult.UNDONE:
            self._undo_commands.pop()
            self._emit("DROPPED", cmd.description)
            return result
        return None

    async def _run_first_time(self, cmd: Command) -> CommandResult:
        result = await cmd.execute()

        if result is CommandResult.ADD:
            self._undo_commands.append(cmd)
            self._redo_commands.clear()
            self._coalescence.arm()
            self._emit("ADDED", cmd.description)
        elif result is CommandResult.CLEAR:
            self._undo_commands.clear()
            self._redo_commands.clear()
            self._coalescence.barrier()
            self._emit("CLEARED", cmd.description)
        elif result is CommandResult.NOOP:
            self._emit("NOOP", cmd.description)
        else:
            raise TypeError(f"{cmd.description}.execute() returned {result!r}, expected a CommandResult")

        return result

    def _finish_traversal(self, *, failed: bool) -> None:
        self._cancel_coalescence_timer()
        self._coalescence.barrier()
        try:
            self._cleanup()
        except Exception:
            if not failed:
                raise
            # The command failure is what the caller must see.
            logger.exception("Cleanup hook failed after an interrupted undo/redo")
        finally:
            self._busy = False

    def _rearm_coalescence_timer(self) -> None:
        # Actions closer together than the window form one logical undo step.
        self._cancel_coalescence_timer()
        if self._coalescence_window_ms <= 0:
            self._coalescence.barrier()
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._coalescence_window_ms / 1000.0, self._on_coalescence_window_elapsed)

    def _cancel_coalescence_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_coalescence_window_elapsed(self) -> None:
        self._timer = None
        self._coalescence.barrier()
        logger.debug("Coalescence window elapsed after %d ms", self._coalescence_window_ms)

    def _emit(self, type: EventType, description: str) -> None:
        if not self._verbose:
            return
        event = HistoryEvent.now(type=type, description=description)
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception:
                # Sink failures never reach the stacks or the caller.
                logger.exception("Event sink %r failed on %s event", sink, type)
