"""taskbridge.registry.builtins

Commandes intégrées et assemblage du registre.

Ordre du registre: commandes intégrées (`list`, `run-mcp-server`,
`http:download`) puis tâches découvertes, dans l'ordre de définition.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from ..config.loader import BridgeConfig, HttpConfig
from ..core.constants import (
    DEFAULT_LOG_FILE,
    HTTP_DOWNLOAD_COMMAND,
    LIST_COMMAND,
    MCP_SERVER_COMMAND,
)
from ..http.download import format_size, http_download
from .discovery import load_tasks_file
from .models import Argument, Command, Option
from .registry import CommandRegistry


def _make_list_command(registry: CommandRegistry) -> Command:
    def handler(arguments: dict[str, Any], options: dict[str, Any]) -> int:
        visible = [c for c in registry.list_commands() if not c.hidden]
        width = max((len(c.name) for c in visible), default=0)
        print("Available tasks:")
        for command in visible:
            print(f"  {command.name.ljust(width)}  {command.description}".rstrip())
        return 0

    return Command(
        name=LIST_COMMAND,
        handler=handler,
        description="List available tasks",
    )


def _make_mcp_server_command(registry: CommandRegistry, bridge_config: BridgeConfig) -> Command:
    def handler(arguments: dict[str, Any], options: dict[str, Any]) -> int:
        from ..bridge.server import serve_stdio

        log_file = options.get("log-file") or bridge_config.log_file
        return asyncio.run(serve_stdio(registry, bridge_config, log_file=log_file))

    return Command(
        name=MCP_SERVER_COMMAND,
        handler=handler,
        description="Run an MCP server that exposes tasks as tools",
        options=(
            Option(
                name="log-file",
                kind="string",
                description="Log file path",
                required=True,
                default=None,
                shortcut="l",
            ),
        ),
    )


def _make_http_download_command(http_config: HttpConfig) -> Command:
    def handler(arguments: dict[str, Any], options: dict[str, Any]) -> int:
        result = http_download(
            arguments["url"],
            options.get("output"),
            stream=not options.get("no-stream", False),
            timeout_s=http_config.timeout_s,
            progress_interval_s=http_config.progress_interval_s,
        )
        print(f"Downloaded {format_size(result.size)} to {result.path}")
        return 0

    return Command(
        name=HTTP_DOWNLOAD_COMMAND,
        handler=handler,
        description="Download a file through HTTP",
        arguments=(
            Argument(name="url", kind="string", description="URL to download", required=True),
        ),
        options=(
            Option(
                name="output",
                kind="string",
                description="Destination file (defaults to the name given by the server)",
                required=True,
                shortcut="o",
            ),
            Option(
                name="no-stream",
                kind="boolean",
                description="Download in one go instead of streaming chunks",
            ),
        ),
    )


def build_registry(
    tasks_file: str | Path | None = None,
    *,
    bridge_config: BridgeConfig | None = None,
    http_config: HttpConfig | None = None,
) -> CommandRegistry:
    """Registre complet: commandes intégrées + tâches de `tasks_file`.

    Un `tasks_file` absent (None) donne un registre réduit aux commandes
    intégrées; un chemin explicite inexistant lève `ConfigurationError`.
    """

    registry = CommandRegistry()
    registry.add(_make_list_command(registry))
    registry.add(_make_mcp_server_command(registry, bridge_config or BridgeConfig(log_file=DEFAULT_LOG_FILE)))
    registry.add(_make_http_download_command(http_config or HttpConfig()))

    if tasks_file is not None:
        for command in load_tasks_file(tasks_file):
            registry.add(command)
    return registry
