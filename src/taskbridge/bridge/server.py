"""taskbridge.bridge.server

Boucle stdio du serveur MCP.

Important:
- stdout est réservé aux réponses JSON-RPC (une ligne par réponse, flush
  immédiat). Les réponses passent par une copie dédiée du descripteur 1;
  pendant le service, le descripteur 1 pointe vers stderr, de sorte que les
  écritures parasites (sous-processus, extensions C) ne touchent jamais le
  canal protocole.
- Les diagnostics vont dans le fichier journal et le logger, jamais sur stdout.
- Les outils s'exécutent hors de la boucle asyncio (thread dédié), un seul à
  la fois.
- La boucle se termine proprement à la fin de stdin (code 0).
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from contextlib import contextmanager
from typing import AsyncIterable, Iterator, Optional, TextIO

from ..config.loader import BridgeConfig
from ..registry.registry import CommandRegistry
from .diagnostics import DiagnosticsSink
from .dispatcher import MessageDispatcher
from .line_reader import LineReader, connect_stdin_source

logger = logging.getLogger(__name__)


def _write_line(out: TextIO, text: str) -> None:
    out.write(text + "\n")
    out.flush()


@contextmanager
def protocol_stdout() -> Iterator[TextIO]:
    """Flux protocole sur une copie de stdout; fd 1 redirigé vers stderr."""

    sys.stdout.flush()
    try:
        protocol_fd = os.dup(1)
    except OSError as e:
        logger.warning("Impossible de dupliquer stdout (%s), écriture directe", e)
        yield sys.stdout
        return

    stream = os.fdopen(protocol_fd, "w", encoding="utf-8", newline="\n")
    os.dup2(2, 1)
    try:
        yield stream
    finally:
        try:
            sys.stdout.flush()
        except (OSError, ValueError):
            pass
        os.dup2(stream.fileno(), 1)
        try:
            stream.close()
        except OSError:
            pass


async def run_bridge(
    lines: AsyncIterable[str],
    dispatcher: MessageDispatcher,
    *,
    out: Optional[TextIO] = None,
) -> int:
    """Traite chaque ligne dans l'ordre d'arrivée; une réponse par requête."""

    # Référence figée: la capture des outils remplace temporairement sys.stdout.
    target = out if out is not None else sys.stdout

    async for line in lines:
        # Hors boucle: une tâche peut elle-même appeler asyncio.run().
        encoded = await asyncio.to_thread(dispatcher.process_line, line)
        if encoded is None:
            continue
        try:
            _write_line(target, encoded)
        except (BrokenPipeError, ConnectionResetError):
            logger.info("Client MCP déconnecté (stdout fermé)")
            return 0
    return 0


async def serve_stdio(
    registry: CommandRegistry,
    config: Optional[BridgeConfig] = None,
    *,
    log_file: Optional[str] = None,
) -> int:
    """Sert le registre en MCP sur stdin/stdout jusqu'à la fin de stdin."""

    config = config or BridgeConfig()
    diagnostics = DiagnosticsSink(log_file or config.log_file)
    diagnostics.open()

    try:
        diagnostics.log("Starting MCP server")
        dispatcher = MessageDispatcher(
            registry,
            diagnostics=diagnostics,
            server_name=config.server_name,
        )
        source = await connect_stdin_source(limit=config.stream_limit)
        reader = LineReader(source, idle_sleep_s=config.poll_interval_s)
        with protocol_stdout() as out:
            status = await run_bridge(reader, dispatcher, out=out)
        diagnostics.log("MCP server stopped")
        return status
    finally:
        summary = diagnostics.get_summary()
        if summary["log_write_disabled"]:
            logger.warning(
                "Journal MCP désactivé après erreur d'écriture: %s",
                summary["log_last_error"],
            )
        diagnostics.close()
