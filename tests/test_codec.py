"""Tests for fs/codec.py — chunk framing, compression, ChunkStream."""

from __future__ import annotations

import io
import os
import zlib

import pytest

from chunkfs.fs.codec import (
    COMPRESSION_WBITS,
    EMPTY_DEFLATE,
    ChunkStream,
    decode_chunks,
    encode_chunks,
)
from chunkfs.fs.exceptions import CorruptChunkError

CHUNK = 1024

PAYLOADS = [
    pytest.param(b"", id="empty"),
    pytest.param(b"hello world", id="small"),
    pytest.param(os.urandom(CHUNK), id="exactly-one-chunk"),
    pytest.param(os.urandom(CHUNK + 1), id="straddles-boundary"),
    pytest.param(os.urandom(CHUNK * 5 + 17), id="multi-chunk"),
    pytest.param(b"a" * (CHUNK * 50), id="highly-compressible"),
]


def _encode(payload: bytes, compress: bool, chunk_size: int = CHUNK) -> list[bytes]:
    return list(encode_chunks(io.BytesIO(payload), chunk_size, compress, read_size=100))


class TestRoundTrip:
    @pytest.mark.parametrize("payload", PAYLOADS)
    @pytest.mark.parametrize("compress", [True, False], ids=["compressed", "raw"])
    def test_decode_restores_payload(self, payload: bytes, compress: bool):
        chunks = _encode(payload, compress)
        assert b"".join(decode_chunks(chunks, compress)) == payload

    @pytest.mark.parametrize("payload", PAYLOADS)
    @pytest.mark.parametrize("compress", [True, False], ids=["compressed", "raw"])
    def test_chunks_within_size(self, payload: bytes, compress: bool):
        for chunk in _encode(payload, compress):
            assert 0 < len(chunk) <= CHUNK


class TestEncode:
    @pytest.mark.parametrize("compress", [True, False], ids=["compressed", "raw"])
    def test_empty_stream_yields_no_chunks(self, compress: bool):
        assert _encode(b"", compress) == []

    def test_uncompressed_chunk_count(self):
        chunks = _encode(b"x" * (CHUNK * 3 + 1), compress=False)
        assert [len(c) for c in chunks] == [CHUNK, CHUNK, CHUNK, 1]

    def test_compressed_output_is_raw_deflate(self):
        payload = b"some text " * 100
        stored = b"".join(_encode(payload, compress=True))
        assert zlib.decompress(stored, COMPRESSION_WBITS) == payload

    def test_compression_shrinks_repetitive_data(self):
        chunks = _encode(b"a" * (CHUNK * 50), compress=True)
        assert len(chunks) == 1

    def test_lazy(self):
        """Nothing is read from the stream until the first chunk is requested."""
        stream = io.BytesIO(b"abc")
        chunks = encode_chunks(stream, CHUNK, compress=False)
        assert stream.tell() == 0
        assert next(chunks) == b"abc"

    def test_empty_deflate_marker(self):
        compressor = zlib.compressobj(wbits=COMPRESSION_WBITS)
        assert compressor.compress(b"") + compressor.flush() == EMPTY_DEFLATE


class TestDecode:
    @pytest.mark.parametrize("compress", [True, False], ids=["compressed", "raw"])
    def test_zero_chunks_is_empty(self, compress: bool):
        assert b"".join(decode_chunks([], compress)) == b""

    def test_pieces_bounded(self):
        chunks = _encode(b"a" * 1_000_000, compress=True)
        pieces = list(decode_chunks(chunks, True, piece_size=4096))
        assert all(len(p) <= 4096 for p in pieces)
        assert b"".join(pieces) == b"a" * 1_000_000

    def test_truncated_data_raises(self):
        chunks = _encode(os.urandom(CHUNK * 3), compress=True)
        with pytest.raises(CorruptChunkError, match="truncated"):
            b"".join(decode_chunks(chunks[:-1], True))

    def test_garbage_raises(self):
        with pytest.raises(CorruptChunkError):
            b"".join(decode_chunks([b"\xff\xff\xff\xff not deflate"], True))

    def test_skips_empty_chunks(self):
        assert b"".join(decode_chunks([b"ab", b"", b"cd"], False)) == b"abcd"


class TestChunkStream:
    def test_read_all(self):
        stream = ChunkStream(iter([b"abc", b"", b"def"]))
        assert stream.read() == b"abcdef"

    def test_read_in_small_pieces(self):
        stream = ChunkStream(iter([b"abcdef", b"gh"]))
        assert stream.read(4) == b"abcd"
        assert stream.read(4) == b"ef"
        assert stream.read(4) == b"gh"
        assert stream.read(4) == b""

    def test_close_runs_callback_once(self):
        calls = []
        stream = ChunkStream(iter([b"abc"]), on_close=lambda: calls.append(1))
        stream.close()
        stream.close()
        assert calls == [1]
        assert stream.closed

    def test_context_manager_closes(self):
        calls = []
        with ChunkStream(iter([b"abc"]), on_close=lambda: calls.append(1)) as stream:
            assert stream.read() == b"abc"
        assert calls == [1]

    def test_close_closes_generator(self):
        finished = []

        def pieces():
            try:
                yield b"a"
                yield b"b"
            finally:
                finished.append(True)

        stream = ChunkStream(pieces())
        assert stream.read(1) == b"a"
        stream.close()
        assert finished == [True]

    def test_read_after_close_raises(self):
        stream = ChunkStream(iter([b"abc"]))
        stream.close()
        with pytest.raises(ValueError):
            stream.read()
