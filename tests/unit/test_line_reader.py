"""Tests unitaires: taskbridge.bridge.line_reader.

Objectifs:
    - Découpage en lignes indépendant de la taille des chunks
    - Caractères UTF-8 multi-octets coupés entre deux chunks
    - Lecture vide sans fin de flux: attente puis nouvelle lecture
    - Segment final sans `\\n` ignoré à la fin du flux
"""

from __future__ import annotations

import pytest

from taskbridge.bridge.line_reader import LineFramer, LineReader

PAYLOAD = (
    b'{"id":1}\n'
    b"\n"
    b"   \n"
    b'{"id":2,"text":"caf\xc3\xa9"}\r\n'
    b'{"id":3}\n'
    b"partial"
)
EXPECTED = ['{"id":1}', '{"id":2,"text":"café"}', '{"id":3}']


class _ChunkSource:
    """Source factice: une lecture = un chunk; `b""` simule "pas encore de données"."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.reads = 0

    async def read(self, n: int = -1) -> bytes:
        self.reads += 1
        if self._chunks:
            return self._chunks.pop(0)
        return b""

    def at_eof(self) -> bool:
        return not self._chunks


class _NoEofSource:
    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)

    async def read(self, n: int = -1) -> bytes:
        return self._chunks.pop(0) if self._chunks else b""


def _chunks(data: bytes, size: int) -> list[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


async def _collect(reader: LineReader) -> list[str]:
    return [line async for line in reader]


@pytest.mark.unit
@pytest.mark.parametrize("size", [1, 2, 3, 5, 8, 13, len(PAYLOAD)])
def test_framer_output_does_not_depend_on_chunk_size(size):
    framer = LineFramer()
    lines: list[str] = []
    for chunk in _chunks(PAYLOAD, size):
        lines.extend(framer.feed(chunk))

    assert lines == EXPECTED
    assert framer.pending == b"partial"


@pytest.mark.unit
def test_framer_decodes_multibyte_character_split_across_chunks():
    framer = LineFramer()
    assert framer.feed(b'{"t":"caf\xc3') == []
    assert framer.feed(b'\xa9"}\n') == ['{"t":"café"}']


@pytest.mark.unit
def test_framer_replaces_invalid_utf8():
    framer = LineFramer()
    assert framer.feed(b"bad \xff byte\n") == ["bad � byte"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reader_yields_complete_lines_and_drops_trailing_segment():
    source = _ChunkSource(_chunks(PAYLOAD, 4))
    assert await _collect(LineReader(source, idle_sleep_s=0)) == EXPECTED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reader_retries_after_empty_read_until_eof():
    source = _ChunkSource([b'{"a":', b"", b"", b"1}\n"])
    lines = await _collect(LineReader(source, idle_sleep_s=0))

    assert lines == ['{"a":1}']
    # 4 chunks + la lecture vide finale qui constate la fin du flux
    assert source.reads == 5


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reader_without_at_eof_stops_on_first_empty_read():
    source = _NoEofSource([b"one\n", b"", b"two\n"])
    assert await _collect(LineReader(source, idle_sleep_s=0)) == ["one"]


@pytest.mark.unit
def test_framer_handles_long_line_fed_in_small_chunks():
    framer = LineFramer()
    body = b"x" * (256 * 1024)

    for chunk in _chunks(body, 1024):
        assert framer.feed(chunk) == []
    assert len(framer.pending) == len(body)

    assert framer.feed(b"\nnext") == [body.decode("ascii")]
    assert framer.pending == b"next"


@pytest.mark.unit
def test_framer_finds_newline_in_previously_buffered_bytes():
    framer = LineFramer()
    assert framer.feed(b"a") == []
    assert framer.feed(b"b\nc\nd") == ["ab", "c"]
    assert framer.feed(b"\n") == ["d"]
    assert framer.pending == b""
