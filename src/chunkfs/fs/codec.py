"""Chunk codec — frame a byte stream into stored chunks and back.

Compression is raw DEFLATE (no zlib header or checksum) applied to the
whole stream; chunk boundaries are cut from the compressed output.  Chunk
payloads are therefore meaningless on their own and must be decoded in
``chunk_no`` order.
"""

from __future__ import annotations

import io
import logging
import zlib
from typing import TYPE_CHECKING

from .config import DEFAULT_TRANSFER_SIZE
from .exceptions import CorruptChunkError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from typing import BinaryIO

logger = logging.getLogger(__name__)

COMPRESSION_WBITS = -zlib.MAX_WBITS
"""Negative window bits select raw DEFLATE framing."""

EMPTY_DEFLATE = b"\x03\x00"
"""What a raw DEFLATE stream looks like for empty input."""

DEFAULT_PIECE_SIZE = 65536
"""Upper bound on each decoded piece yielded by :func:`decode_chunks`."""


def encode_chunks(
    stream: BinaryIO,
    chunk_size: int,
    compress: bool,
    *,
    read_size: int = DEFAULT_TRANSFER_SIZE,
) -> Iterator[bytes]:
    """Yield storage-ready chunks of at most *chunk_size* bytes from *stream*.

    The stream is read in *read_size* pieces, so at most about one chunk
    of output is held at a time.  Empty input yields nothing, compressed
    or not: no chunk is stored for an empty file, including the
    :data:`EMPTY_DEFLATE` marker.
    """
    compressor = zlib.compressobj(wbits=COMPRESSION_WBITS) if compress else None
    pending = bytearray()
    total_in = 0

    while True:
        data = stream.read(read_size)
        if not data:
            break
        total_in += len(data)
        if compressor is not None:
            data = compressor.compress(data)
        pending += data
        while len(pending) >= chunk_size:
            yield bytes(pending[:chunk_size])
            del pending[:chunk_size]

    if total_in == 0:
        return

    if compressor is not None:
        pending += compressor.flush()
    while pending:
        yield bytes(pending[:chunk_size])
        del pending[:chunk_size]


def decode_chunks(
    chunks: Iterable[bytes],
    compressed: bool,
    *,
    piece_size: int = DEFAULT_PIECE_SIZE,
) -> Iterator[bytes]:
    """Yield the original bytes from *chunks* given in ``chunk_no`` order.

    Inflated output comes back in pieces of at most *piece_size* bytes,
    so a small, highly compressible chunk never expands in memory all at
    once.  Raises :class:`CorruptChunkError` on truncated or invalid data.
    """
    if not compressed:
        for chunk in chunks:
            if chunk:
                yield bytes(chunk)
        return

    inflater = zlib.decompressobj(wbits=COMPRESSION_WBITS)
    seen_input = False
    try:
        for chunk in chunks:
            if not chunk:
                continue
            seen_input = True
            data = bytes(chunk)
            while True:
                out = inflater.decompress(data, piece_size)
                if out:
                    yield out
                data = inflater.unconsumed_tail
                if not data and len(out) < piece_size:
                    break

        if not seen_input:
            return

        tail = inflater.flush()
        if tail:
            yield tail
    except zlib.error as e:
        raise CorruptChunkError(f"Invalid compressed chunk data: {e}") from e

    if not inflater.eof:
        raise CorruptChunkError("Compressed chunk data is truncated")
    if inflater.unused_data:
        logger.warning("Ignoring %d bytes after end of compressed data", len(inflater.unused_data))


class ChunkStream(io.RawIOBase):
    """Read-only binary stream over decoded chunk pieces.

    ``on_close`` runs exactly once when the stream is closed, which is how
    the database session behind a streaming read gets released.
    """

    def __init__(
        self,
        pieces: Iterator[bytes],
        on_close: Callable[[], None] | None = None,
    ) -> None:
        super().__init__()
        self._pieces = pieces
        self._on_close = on_close
        self._current = b""
        self._offset = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        while self._offset >= len(self._current):
            piece = next(self._pieces, None)
            if piece is None:
                return 0
            self._current = piece
            self._offset = 0

        size = min(len(buffer), len(self._current) - self._offset)
        buffer[:size] = self._current[self._offset : self._offset + size]
        self._offset += size
        return size

    def close(self) -> None:
        if self.closed:
            return
        try:
            close_pieces = getattr(self._pieces, "close", None)
            if close_pieces is not None:
                close_pieces()
            if self._on_close is not None:
                self._on_close()
        finally:
            self._current = b""
            super().close()
