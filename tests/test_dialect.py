"""Tests for fs/dialect.py — streaming execution options."""

from __future__ import annotations

from chunkfs.fs.dialect import STREAM_YIELD_PER, streaming_options


class TestStreamingOptions:
    def test_enabled(self):
        assert streaming_options(True) == {
            "stream_results": True,
            "yield_per": STREAM_YIELD_PER,
        }

    def test_disabled(self):
        assert streaming_options(False) == {}
