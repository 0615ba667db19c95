"""taskbridge.bridge.dispatcher

Routage d'une ligne JSON-RPC vers `initialize`, `tools/list`, `tools/call`.

Chaque ligne produit au plus une réponse; seule la notification
`notifications/initialized` n'en produit aucune. Une erreur sur une ligne
n'affecte jamais les lignes suivantes.
"""

from __future__ import annotations

import json
import traceback
from typing import Any, Optional

from .. import __version__
from ..core.constants import (
    DEFAULT_SERVER_NAME,
    JSONRPC_APPLICATION_ERROR,
    JSONRPC_METHOD_NOT_FOUND,
    JSONRPC_VERSION,
    MCP_PROTOCOL_VERSION,
    MCP_SERVER_COMMAND,
    METHOD_INITIALIZE,
    METHOD_INITIALIZED,
    METHOD_TOOLS_CALL,
    METHOD_TOOLS_LIST,
)
from ..core.exceptions import JsonRpcError
from ..registry.registry import CommandRegistry
from .diagnostics import DiagnosticsSink
from .invoker import ToolInvoker
from .schema import build_tool_descriptors

JsonDict = dict[str, Any]


def _extract_jsonrpc_id(payload: object) -> object:
    if isinstance(payload, dict):
        return payload.get("id")
    return None


def encode_message(message: JsonDict) -> str:
    """Sérialise une enveloppe sur une seule ligne (sans `\\n` final)."""

    # Valeurs non JSON (défauts de tâches) sérialisées via str().
    encoded = json.dumps(message, ensure_ascii=False, separators=(",", ":"), default=str)
    try:
        encoded.encode("utf-8")
    except UnicodeEncodeError:
        # Surrogates isolés (ex: "\ud800" reçu en entrée): échappement ASCII.
        encoded = json.dumps(message, ensure_ascii=True, separators=(",", ":"), default=str)
    return encoded


class MessageDispatcher:
    def __init__(
        self,
        registry: CommandRegistry,
        *,
        diagnostics: Optional[DiagnosticsSink] = None,
        server_name: str = DEFAULT_SERVER_NAME,
        server_version: str = __version__,
        self_command: str = MCP_SERVER_COMMAND,
    ) -> None:
        self._registry = registry
        self._diagnostics = diagnostics or DiagnosticsSink(None)
        self._server_name = server_name
        self._server_version = server_version
        self._self_command = self_command
        self._invoker = ToolInvoker(registry, self_command=self_command)

    def handle_line(self, line: str) -> Optional[JsonDict]:
        """Traite une ligne et retourne l'enveloppe de réponse (ou None)."""

        self._diagnostics.log(f"Received: {line}")

        request_id: object = None
        try:
            payload = json.loads(line)
            if not isinstance(payload, dict):
                raise ValueError("Invalid JSON-RPC message: expected an object")
            request_id = _extract_jsonrpc_id(payload)
            body = self._route(payload.get("method"), payload.get("params"))
        except JsonRpcError as e:
            self._diagnostics.log(f"Protocol Error: {e.code} - {e.message}")
            body = {"error": e.to_error()}
        except Exception as e:
            trace = traceback.format_exc()
            self._diagnostics.log(f"Error: {e}\n{trace}")
            body = {
                "error": {
                    "code": JSONRPC_APPLICATION_ERROR,
                    "message": str(e),
                    "data": {"trace": trace},
                }
            }

        if body is None:
            return None

        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id if request_id is not None else 0,
            **body,
        }

    def process_line(self, line: str) -> Optional[str]:
        """Comme `handle_line`, mais retourne la réponse sérialisée et la journalise."""

        response = self.handle_line(line)
        if response is None:
            return None
        encoded = encode_message(response)
        self._diagnostics.log(f"Sending: {encoded}")
        return encoded

    def _route(self, method: object, params: object) -> Optional[JsonDict]:
        if method == METHOD_INITIALIZE:
            return {"result": self.initialize_result()}
        if method == METHOD_INITIALIZED:
            return None
        if method == METHOD_TOOLS_LIST:
            return {"result": self.tools_list_result()}
        if method == METHOD_TOOLS_CALL:
            return {"result": self._invoker.call(params).to_dict()}

        name = "" if method is None else method
        raise JsonRpcError(JSONRPC_METHOD_NOT_FOUND, f'Method "{name}" not found')

    def initialize_result(self) -> JsonDict:
        return {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "capabilities": {"tools": {"listChanged": True}},
            "serverInfo": {"name": self._server_name, "version": self._server_version},
        }

    def tools_list_result(self) -> JsonDict:
        descriptors = build_tool_descriptors(
            self._registry.list_commands(), self_command=self._self_command
        )
        return {"tools": [descriptor.to_dict() for descriptor in descriptors]}
