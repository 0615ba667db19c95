"""taskbridge.bridge.line_reader

Découpage d'un flux d'octets en lignes JSON-RPC complètes.

Contrat:
- Un buffer d'accumulation conserve le dernier segment incomplet.
- Chaque segment terminé par `\\n` est décodé (UTF-8, remplacement) et produit
  une ligne; les lignes vides ou blanches sont ignorées.
- Le découpage ne dépend pas de la taille des chunks reçus.
- Une lecture vide n'est une fin de flux que si la source le confirme
  (`at_eof()`); sinon on attend brièvement puis on relit.
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import AsyncIterator, Protocol

DEFAULT_CHUNK_SIZE = 64 * 1024


class ByteSource(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class LineFramer:
    """Découpeur incrémental (pur, sans I/O)."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        # Octets de `_buffer` déjà parcourus sans trouver de `\n`.
        self._scanned = 0

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)

    def feed(self, data: bytes) -> list[str]:
        self._buffer.extend(data)
        newline = self._buffer.find(b"\n", self._scanned)
        if newline < 0:
            self._scanned = len(self._buffer)
            return []

        lines: list[str] = []
        start = 0
        while newline >= 0:
            line = self._buffer[start:newline].decode("utf-8", errors="replace").strip()
            if line:
                lines.append(line)
            start = newline + 1
            newline = self._buffer.find(b"\n", start)

        del self._buffer[:start]
        self._scanned = len(self._buffer)
        return lines


def _source_at_eof(source: object) -> bool:
    at_eof = getattr(source, "at_eof", None)
    if callable(at_eof):
        return bool(at_eof())
    # Sans at_eof(), une lecture vide signifie fin de flux.
    return True


class LineReader:
    """Itérateur asynchrone de lignes complètes lues depuis `source`.

    Usage:
        async for line in LineReader(source):
            ...
    """

    def __init__(
        self,
        source: ByteSource,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        idle_sleep_s: float = 0.001,
    ) -> None:
        self._source = source
        self._chunk_size = max(1, int(chunk_size))
        self._idle_sleep_s = max(0.0, float(idle_sleep_s))
        self._framer = LineFramer()

    def __aiter__(self) -> AsyncIterator[str]:
        return self._lines()

    async def _lines(self) -> AsyncIterator[str]:
        while True:
            data = await self._source.read(self._chunk_size)
            if not data:
                if _source_at_eof(self._source):
                    return
                await asyncio.sleep(self._idle_sleep_s)
                continue

            for line in self._framer.feed(data):
                yield line


class BlockingFileSource:
    """Source pour un stdin non connectable à la boucle (fichier régulier).

    Les lectures bloquantes passent par `asyncio.to_thread`.
    """

    def __init__(self, fd: int) -> None:
        self._fd = fd
        self._eof = False

    async def read(self, n: int = -1) -> bytes:
        if self._eof:
            return b""
        data = await asyncio.to_thread(os.read, self._fd, n if n > 0 else DEFAULT_CHUNK_SIZE)
        if not data:
            self._eof = True
        return data

    def at_eof(self) -> bool:
        return self._eof


async def connect_stdin_source(*, limit: int) -> ByteSource:
    """Retourne une source non-bloquante connectée à stdin (binaire)."""

    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, sys.stdin.buffer)
    except (ValueError, OSError, NotImplementedError):
        # Fichier régulier ou plateforme sans support des pipes dans la boucle.
        return BlockingFileSource(sys.stdin.buffer.fileno())
    return reader
