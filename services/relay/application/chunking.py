from __future__ import annotations

from typing import AsyncIterator


class ChunkReader:
    """Re-slices an async byte stream into fixed-size chunks.

    ``read_chunk`` only returns fewer than ``size`` bytes once the stream is
    exhausted, and returns ``b""`` after that. At most one chunk plus one
    upstream piece is buffered at a time.
    """

    def __init__(self, stream: AsyncIterator[bytes]) -> None:
        self._stream = stream
        self._buffer = bytearray()
        self._exhausted = False

    @property
    def exhausted(self) -> bool:
        return self._exhausted and not self._buffer

    async def read_chunk(self, size: int) -> bytes:
        if size <= 0:
            raise ValueError("Chunk size must be positive")
        while len(self._buffer) < size and not self._exhausted:
            try:
                piece = await self._stream.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                break
            if piece:
                self._buffer.extend(piece)

        chunk = bytes(self._buffer[:size])
        del self._buffer[:size]
        return chunk
