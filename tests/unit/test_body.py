"""
Unit tests for message bodies.
"""

import io

import pytest

from minihttp.http.body import BytesSource, ReplayableSource, StreamSource, as_source, empty_body


class TestBytesSource:
    """Tests for in-memory bodies."""

    def test_second_read_is_empty(self):
        """Test the bytes are delivered exactly once."""
        body = BytesSource(b"hello world")

        assert body.length == 11
        assert body.read() == b"hello world"
        assert body.read() == b""
        assert body.exhausted

    def test_partial_reads(self):
        """Test sized reads walk through the data."""
        body = BytesSource(b"abcdef")

        assert body.read(2) == b"ab"
        assert body.read(10) == b"cdef"
        assert body.read(1) == b""

    def test_str_is_utf8_encoded(self):
        """Test str bodies are stored as UTF-8."""
        body = BytesSource("héllo")

        assert body.length == len("héllo".encode("utf-8"))
        assert body.read_all() == "héllo".encode("utf-8")

    def test_iteration_drains(self):
        """Test iterating yields the data, then nothing."""
        body = BytesSource(b"x" * 10)

        assert b"".join(body) == b"x" * 10
        assert list(body) == []

    def test_close_exhausts(self):
        """Test a closed source reads empty."""
        body = BytesSource(b"data")
        body.close()

        assert body.read() == b""


class TestStreamSource:
    """Tests for file-backed bodies."""

    def test_never_reads_past_length(self):
        """Test a declared length stops the read early."""
        stream = io.BytesIO(b"bodyNEXT REQUEST")
        body = StreamSource(stream, length=4)

        assert body.read_all() == b"body"
        assert stream.read() == b"NEXT REQUEST"

    def test_unknown_length(self):
        """Test length None reads to EOF."""
        body = StreamSource(io.BytesIO(b"streamed"))

        assert body.length is None
        assert body.read_all() == b"streamed"
        assert body.read() == b""

    def test_close_closes_stream(self):
        """Test close() releases the underlying stream."""
        stream = io.BytesIO(b"x")
        StreamSource(stream).close()

        assert stream.closed


class TestReplayableSource:
    """Tests for explicit buffering."""

    def test_rewind_replays(self):
        """Test the same bytes come back after rewind()."""
        replayable = BytesSource(b"again").buffered()

        assert replayable.read_all() == b"again"
        assert replayable.read() == b""
        replayable.rewind()
        assert replayable.read_all() == b"again"

    def test_learns_length_of_stream(self):
        """Test an unknown length is filled in once buffered."""
        replayable = ReplayableSource(StreamSource(io.BytesIO(b"12345")))

        assert replayable.length is None
        assert replayable.data == b"12345"
        assert replayable.length == 5

    def test_buffered_is_idempotent(self):
        """Test buffering a replayable source returns itself."""
        replayable = BytesSource(b"x").buffered()

        assert replayable.buffered() is replayable


class TestCoercion:
    """Tests for as_source() and empty_body()."""

    def test_passes_sources_through(self):
        """Test an existing source is not wrapped again."""
        body = BytesSource(b"x")

        assert as_source(body) is body

    def test_wraps_bytes_and_str(self):
        """Test bytes, bytearray and str become BytesSources."""
        for value in (b"ab", bytearray(b"ab"), "ab"):
            assert as_source(value).read_all() == b"ab"

    def test_rejects_other_types(self):
        """Test unsupported body types raise TypeError."""
        with pytest.raises(TypeError):
            as_source(42)

    def test_empty_bodies_are_independent(self):
        """Test each empty_body() call is a fresh object."""
        first, second = empty_body(), empty_body()
        first.read()

        assert first is not second
        assert not second.exhausted
        assert second.length == 0
