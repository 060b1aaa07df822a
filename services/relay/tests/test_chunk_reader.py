import asyncio

import pytest

from services.relay.application.chunking import ChunkReader


async def _stream(pieces):
    for piece in pieces:
        yield piece


async def _read_all(reader: ChunkReader, size: int) -> list[bytes]:
    chunks = []
    while True:
        chunk = await reader.read_chunk(size)
        if not chunk:
            return chunks
        chunks.append(chunk)


def test_small_pieces_are_joined_into_full_chunks():
    reader = ChunkReader(_stream([b"ab", b"c", b"defg", b"h"]))

    chunks = asyncio.run(_read_all(reader, 3))

    assert chunks == [b"abc", b"def", b"gh"]
    assert reader.exhausted


def test_large_piece_is_split_across_chunks():
    reader = ChunkReader(_stream([b"x" * 10]))

    chunks = asyncio.run(_read_all(reader, 4))

    assert [len(chunk) for chunk in chunks] == [4, 4, 2]


def test_exact_multiple_has_no_trailing_partial_chunk():
    reader = ChunkReader(_stream([b"abcd", b"efgh"]))

    chunks = asyncio.run(_read_all(reader, 4))

    assert chunks == [b"abcd", b"efgh"]


def test_empty_pieces_are_skipped():
    reader = ChunkReader(_stream([b"", b"ab", b"", b"c"]))

    chunks = asyncio.run(_read_all(reader, 2))

    assert chunks == [b"ab", b"c"]


def test_empty_stream_yields_nothing():
    reader = ChunkReader(_stream([]))

    assert asyncio.run(reader.read_chunk(5)) == b""
    assert reader.exhausted


def test_non_positive_size_is_rejected():
    reader = ChunkReader(_stream([b"a"]))

    with pytest.raises(ValueError):
        asyncio.run(reader.read_chunk(0))
