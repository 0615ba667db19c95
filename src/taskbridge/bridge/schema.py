"""taskbridge.bridge.schema

Construction des descripteurs d'outils MCP (`tools/list`).

Fonction pure du registre: mêmes commandes -> mêmes descripteurs, dans le même
ordre. Les commandes cachées et la commande du bridge lui-même sont exclues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from ..core.constants import JSON_SCHEMA_DRAFT_07, MCP_SERVER_COMMAND, NO_DESCRIPTION
from ..registry.models import Argument, Command, Option

JsonDict = dict[str, Any]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: JsonDict = field(compare=True)

    def to_dict(self) -> JsonDict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def argument_schema(argument: Argument) -> JsonDict:
    schema: JsonDict = {
        "type": "array" if argument.is_array else "string",
        "description": argument.description or NO_DESCRIPTION,
        "required": argument.required,
    }
    if argument.default is not None:
        schema["default"] = argument.default
    return schema


def option_schema(option: Option) -> JsonDict:
    if option.accepts_value:
        kind = "array" if option.is_array else "string"
    else:
        kind = "boolean"

    schema: JsonDict = {
        "type": kind,
        "description": option.description or NO_DESCRIPTION,
    }
    if option.accepts_value and option.required:
        schema["required"] = True
    if option.default is not None:
        schema["default"] = option.default
    if option.shortcut:
        schema["shortcut"] = option.shortcut
    return schema


def build_input_schema(command: Command) -> JsonDict:
    arguments = {argument.name: argument_schema(argument) for argument in command.arguments}
    options = {option.name: option_schema(option) for option in command.options}

    arguments_object: JsonDict = {
        "type": "object",
        "properties": arguments,
        "description": "Command arguments",
    }
    required = [argument.name for argument in command.arguments if argument.required]
    if required:
        arguments_object["required"] = required

    return {
        "type": "object",
        "properties": {
            "arguments": arguments_object,
            "options": {
                "type": "object",
                "properties": options,
                "description": "Command options",
            },
        },
        "required": ["arguments"],
        "$schema": JSON_SCHEMA_DRAFT_07,
    }


def build_tool_descriptor(command: Command) -> ToolDescriptor:
    return ToolDescriptor(
        name=command.name,
        description=command.description or NO_DESCRIPTION,
        input_schema=build_input_schema(command),
    )


def is_exposed(command: Command, *, self_command: str = MCP_SERVER_COMMAND) -> bool:
    return not command.hidden and command.name != self_command


def build_tool_descriptors(
    commands: Iterable[Command],
    *,
    self_command: str = MCP_SERVER_COMMAND,
) -> list[ToolDescriptor]:
    return [
        build_tool_descriptor(command)
        for command in commands
        if is_exposed(command, self_command=self_command)
    ]
