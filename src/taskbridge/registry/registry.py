"""taskbridge.registry.registry

Registre de commandes consommé par le bridge MCP et par la CLI.

Contrat:
- `list_commands()` respecte l'ordre d'enregistrement.
- `find_command(name)` accepte le nom ou un alias; en cas de doublon, la
  première commande enregistrée gagne.
- `invoke(...)` normalise la charge utile (défauts, tableaux, flags), exécute
  le handler de façon synchrone et capture stdout dans un seul buffer.
- La capture couvre aussi le descripteur 1 (sous-processus, extensions C):
  cette sortie est ajoutée après celle écrite via `sys.stdout`.
"""

from __future__ import annotations

import io
import logging
import os
import sys
import tempfile
from contextlib import contextmanager, redirect_stdout
from typing import Any, Iterable

from ..core.exceptions import CommandNotFoundError, InvalidInvocationError
from .models import Command

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Ensemble ordonné de commandes invocables."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self._commands: list[Command] = []
        for command in commands:
            self.add(command)

    def add(self, command: Command) -> Command:
        if any(existing.name == command.name for existing in self._commands):
            logger.warning("Commande en double dans le registre: %s", command.name)
        self._commands.append(command)
        return command

    def list_commands(self) -> list[Command]:
        return list(self._commands)

    def find_command(self, name: str) -> Command:
        for command in self._commands:
            if command.name == name:
                return command
        for command in self._commands:
            if name in command.aliases:
                return command
        raise CommandNotFoundError(name)

    def invoke(
        self,
        command: Command,
        arguments: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
        *,
        capture: bool = True,
    ) -> tuple[str, int]:
        """Exécute `command` et retourne `(sortie capturée, code de sortie)`.

        Dans `options`, une valeur `None` représente un flag sans valeur
        (`--verbose`). Les exceptions du handler ne sont pas interceptées.
        Avec `capture=False` (CLI), la sortie n'est pas capturée et le texte
        retourné est vide.
        """

        resolved_args = _resolve_arguments(command, arguments or {})
        resolved_opts = _resolve_options(command, options or {})

        if not capture:
            return "", _run_handler(command, resolved_args, resolved_opts)

        buffer = io.StringIO()
        with tempfile.TemporaryFile() as raw:
            with _redirect_fd(1, raw.fileno()), redirect_stdout(buffer):
                status = _run_handler(command, resolved_args, resolved_opts)
            raw.seek(0)
            fd_output = raw.read().decode("utf-8", errors="replace")
        return buffer.getvalue() + fd_output, status


def _flush_stdout() -> None:
    for stream in (sys.stdout, sys.__stdout__):
        if stream is None:
            continue
        try:
            stream.flush()
        except (OSError, ValueError):
            pass


@contextmanager
def _redirect_fd(fd: int, target_fd: int):
    """Redirige le descripteur `fd` vers `target_fd` le temps du bloc."""

    try:
        saved = os.dup(fd)
    except OSError:
        # Descripteur absent (processus sans stdout): capture Python seule.
        yield
        return

    _flush_stdout()
    os.dup2(target_fd, fd)
    try:
        yield
    finally:
        _flush_stdout()
        os.dup2(saved, fd)
        os.close(saved)


def _run_handler(command: Command, arguments: dict[str, Any], options: dict[str, Any]) -> int:
    try:
        status = command.handler(arguments, options)
    except SystemExit as e:
        status = _exit_code_from_system_exit(e)
    return _normalize_status(status)


def _normalize_status(status: object) -> int:
    if status is None or isinstance(status, bool):
        return 0
    if isinstance(status, int):
        return status
    return 0


def _exit_code_from_system_exit(exc: SystemExit) -> int:
    code = exc.code
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    # sys.exit("message") -> message sur stdout capturé, statut 1
    print(code)
    return 1


def _resolve_arguments(command: Command, given: dict[str, Any]) -> dict[str, Any]:
    for key in given:
        if command.get_argument(key) is None:
            raise InvalidInvocationError(
                f'The "{key}" argument does not exist.', command=command.name
            )

    resolved: dict[str, Any] = {}
    missing: list[str] = []
    for argument in command.arguments:
        if argument.name in given:
            value = given[argument.name]
            if argument.is_array and not isinstance(value, list):
                value = [value]
            resolved[argument.name] = value
            continue

        if argument.required:
            missing.append(argument.name)
            continue

        default = argument.default
        if argument.is_array and default is None:
            default = []
        resolved[argument.name] = default

    if missing:
        names = '", "'.join(missing)
        raise InvalidInvocationError(
            f'Not enough arguments (missing: "{names}").', command=command.name
        )
    return resolved


def _resolve_options(command: Command, given: dict[str, Any]) -> dict[str, Any]:
    provided: dict[str, Any] = {}
    for key, value in given.items():
        option = command.get_option(key)
        if option is None:
            raise InvalidInvocationError(
                f'The "--{key}" option does not exist.', command=command.name
            )

        if not option.accepts_value:
            if value is None or value is True:
                provided[option.name] = True
            elif value is False:
                provided[option.name] = False
            else:
                raise InvalidInvocationError(
                    f'The "--{option.name}" option does not accept a value.',
                    command=command.name,
                )
            continue

        if value is None:
            if option.required:
                raise InvalidInvocationError(
                    f'The "--{option.name}" option requires a value.',
                    command=command.name,
                )
            value = option.default

        if option.is_array and value is not None and not isinstance(value, list):
            value = [value]
        provided[option.name] = value

    resolved: dict[str, Any] = {}
    for option in command.options:
        if option.name in provided:
            resolved[option.name] = provided[option.name]
        elif not option.accepts_value:
            resolved[option.name] = bool(option.default)
        elif option.is_array and option.default is None:
            resolved[option.name] = []
        else:
            resolved[option.name] = option.default
    return resolved
