"""taskbridge.bridge.invoker

Exécution d'un `tools/call` contre le registre de commandes.

Contrat:
- nom absent -> JsonRpcError(-32602, "Tool name is required")
- nom inconnu (ou commande du bridge) -> JsonRpcError(-32602, "Unknown tool: <nom>")
- toute autre erreur (payload, handler) -> résultat d'outil `isError: true`
- statut de sortie non nul -> `isError: true`, texte = sortie capturée
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..core.constants import JSONRPC_INVALID_PARAMS, MCP_SERVER_COMMAND, TOOL_ERROR_PREFIX
from ..core.exceptions import (
    CommandNotFoundError,
    InvalidInvocationError,
    JsonRpcError,
    TaskbridgeError,
)
from ..registry.models import Command
from ..registry.registry import CommandRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCallResult:
    text: str
    is_error: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


def build_invocation_payload(raw: object) -> tuple[dict[str, Any], dict[str, Any]]:
    """`{"arguments": {...}, "options": {...}}` -> (arguments, options).

    Une option à `true` devient un flag sans valeur (`None`).
    """

    if raw is None:
        return {}, {}
    if not isinstance(raw, dict):
        raise InvalidInvocationError("Tool arguments must be an object.")

    arguments = raw.get("arguments") or {}
    options = raw.get("options") or {}
    if not isinstance(arguments, dict):
        raise InvalidInvocationError('The "arguments" field must be an object.')
    if not isinstance(options, dict):
        raise InvalidInvocationError('The "options" field must be an object.')

    flags = {key: (None if value is True else value) for key, value in options.items()}
    return dict(arguments), flags


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, TaskbridgeError):
        return exc.message
    return str(exc)


class ToolInvoker:
    def __init__(self, registry: CommandRegistry, *, self_command: str = MCP_SERVER_COMMAND) -> None:
        self._registry = registry
        self._self_command = self_command

    def resolve(self, name: object) -> Command:
        if not isinstance(name, str) or not name:
            raise JsonRpcError(JSONRPC_INVALID_PARAMS, "Tool name is required")

        try:
            command = self._registry.find_command(name)
        except CommandNotFoundError:
            raise JsonRpcError(JSONRPC_INVALID_PARAMS, f"Unknown tool: {name}") from None

        # La commande du bridge n'est pas invocable comme outil.
        if command.name == self._self_command:
            raise JsonRpcError(JSONRPC_INVALID_PARAMS, f"Unknown tool: {name}")
        return command

    def call(self, params: object) -> ToolCallResult:
        if not isinstance(params, dict):
            params = {}
        command = self.resolve(params.get("name"))

        try:
            arguments, options = build_invocation_payload(params.get("arguments"))
            output, status = self._registry.invoke(command, arguments, options)
        except Exception as e:
            logger.debug("Échec de l'outil %s: %s", command.name, e, exc_info=True)
            return ToolCallResult(text=TOOL_ERROR_PREFIX + _error_message(e), is_error=True)

        return ToolCallResult(text=output, is_error=status != 0)
