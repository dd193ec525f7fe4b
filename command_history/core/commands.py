from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum, auto
from typing import Any, TypeAlias


class CommandResult(Enum):
    """Outcome of a command's first-time execution."""

    ADD = auto()
    NOOP = auto()
    CLEAR = auto()


class CoalescenceResult(Enum):
    """Outcome of asking the top undo entry to absorb a new command."""

    IMMISCIBLE = auto()
    COALESCED = auto()
    UNDONE = auto()


class Command(ABC):
    """A unit of undoable work driven by `CommandHistory`.

    Commands are only ever constructed by the history itself (see `CommandFactory`),
    so nothing outside the engine holds a live reference that could call
    `undo`/`redo` out of turn.

    - `execute`: first-time apply. Decides whether the command enters history.
    - `undo`: restore the exact pre-apply state.
    - `redo`: restore the exact post-apply state (may reuse cached work from `execute`).
    """

    @abstractmethod
    async def execute(self) -> CommandResult:
        raise NotImplementedError

    @abstractmethod
    async def undo(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def redo(self) -> None:
        raise NotImplementedError

    def is_noop(self) -> bool:
        """Whether the command currently has no effect.

        Re-read on every query: coalescence can turn a command into a no-op after it was queued.
        """

        return False

    @property
    def description(self) -> str:
        return self.__class__.__name__


class Coalescable(Command):
    """Command that can absorb the command executed right after it."""

    @abstractmethod
    def coalesce(self, candidate: Command) -> CoalescenceResult:
        """Try to merge `candidate` into this command.

        Called synchronously with a freshly constructed `candidate` whose `execute` has not run.
        On `COALESCED` this command must already account for the candidate's effect; on `UNDONE`
        the two cancelled out and this command is dropped from history.
        """

        raise NotImplementedError


CommandFactory: TypeAlias = Callable[..., Command]


def build_command(factory: CommandFactory, *args: Any, **kwargs: Any) -> Command:
    cmd = factory(*args, **kwargs)
    if not isinstance(cmd, Command):
        raise TypeError(f"Command factory returned {type(cmd).__name__}, expected a Command")
    return cmd
