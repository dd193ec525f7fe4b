from __future__ import annotations

from collections.abc import Mapping

from command_history.core.commands import CommandFactory


_COMMANDS: dict[str, CommandFactory] = {}


def register_command(name: str, factory: CommandFactory) -> None:
    """Expose `factory` to `POST /history/execute` under `name`.

    Factories usually close over the application's model (a `functools.partial` of a command
    class) so the request only has to carry JSON arguments.
    """

    if not name:
        raise ValueError("Command name must not be empty")
    _COMMANDS[name] = factory


def register_commands(commands: Mapping[str, CommandFactory]) -> None:
    for name, factory in commands.items():
        register_command(name, factory)


def command_factory(name: str) -> CommandFactory:
    factory = _COMMANDS.get(name)
    if factory is None:
        raise ValueError(f"Unknown command: {name}")
    return factory


def registered_commands() -> list[str]:
    return sorted(_COMMANDS)


def reset_commands_for_tests() -> None:
    _COMMANDS.clear()
