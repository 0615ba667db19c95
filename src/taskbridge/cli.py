"""taskbridge.cli

Conversion des tokens de la ligne de commande d'une tâche en payload
`(arguments, options)` pour `CommandRegistry.invoke`.

Syntaxe acceptée:
- `--name=value`, `--name value` (option à valeur), `--name` (flag)
- `-x`, `-xvalue`, `-x value` (raccourci)
- `--` termine les options; la suite est positionnelle
- un argument tableau consomme tous les positionnels restants
"""

from __future__ import annotations

from typing import Any, Sequence

from .core.exceptions import InvalidInvocationError
from .registry.models import Command, Option


def _looks_like_option(token: str) -> bool:
    # "-1" reste une valeur positionnelle.
    return token.startswith("-") and len(token) > 1 and not token[1].isdigit()


def _store_option(options: dict[str, Any], option: Option, value: Any) -> None:
    if option.is_array and value is not None:
        current = options.get(option.name)
        options[option.name] = (current if isinstance(current, list) else []) + [value]
        return
    options[option.name] = value


def parse_command_tokens(command: Command, tokens: Sequence[str]) -> tuple[dict[str, Any], dict[str, Any]]:
    positionals: list[str] = []
    options: dict[str, Any] = {}
    only_positionals = False

    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1

        if only_positionals or not _looks_like_option(token):
            positionals.append(token)
            continue
        if token == "--":
            only_positionals = True
            continue

        if token.startswith("--"):
            name, has_value, value = token[2:].partition("=")
            display = f"--{name}"
        else:
            name, value = token[1], token[2:]
            has_value = bool(value)
            value = value[1:] if value.startswith("=") else value
            display = f"-{name}"

        option = command.get_option(name)
        if option is None:
            raise InvalidInvocationError(
                f'The "{display}" option does not exist.', command=command.name
            )

        if has_value:
            _store_option(options, option, value)
        elif option.accepts_value and i < len(tokens) and not _looks_like_option(tokens[i]):
            _store_option(options, option, tokens[i])
            i += 1
        else:
            _store_option(options, option, None)

    return _bind_positionals(command, positionals), options


def _bind_positionals(command: Command, values: list[str]) -> dict[str, Any]:
    arguments: dict[str, Any] = {}
    remaining = list(values)
    for argument in command.arguments:
        if not remaining:
            break
        if argument.is_array:
            arguments[argument.name] = remaining
            remaining = []
            break
        arguments[argument.name] = remaining.pop(0)

    if remaining:
        if not command.arguments:
            raise InvalidInvocationError(
                f'No arguments expected for "{command.name}" command, got "{remaining[0]}".',
                command=command.name,
            )
        raise InvalidInvocationError(
            f'Too many arguments to "{command.name}" command, got "{remaining[0]}".',
            command=command.name,
        )
    return arguments
