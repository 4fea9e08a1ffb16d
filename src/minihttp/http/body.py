"""
=============================================================================
MESSAGE BODIES
=============================================================================

A message body is a BYTE SOURCE that can be read exactly once.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    SINGLE-CONSUMPTION CONTRACT                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   body.read()   →  b"hello world"      first read delivers data     │
    │   body.read()   →  b""                 every later read is empty    │
    │                                                                     │
    │   The bytes are NEVER delivered twice, whether the source is an     │
    │   in-memory buffer or a socket.                                     │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Request bodies usually come straight off a socket: once the bytes are
read, they are gone. Modelling every body the same way (even in-memory
ones) means handler code that works in tests also works on the wire.

Need the bytes more than once? Opt in explicitly:

    replayable = request.body.buffered()
    first = replayable.read_all()
    replayable.rewind()
    second = replayable.read_all()     # same bytes again

Copies of a message share the same body object, and therefore the same
consumption state.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, Iterator, Optional, Union
import io
import threading


# Default chunk size when iterating a body
CHUNK_SIZE = 64 * 1024


class ByteSource(ABC):
    """
    Abstract single-consumption byte source.

    Subclasses implement _read(); this base class owns the exhaustion
    bookkeeping so every source honours the same contract:
    once end-of-data has been observed, read() returns b"" forever.
    """

    def __init__(self, length: Optional[int] = None):
        self._length = length
        self._exhausted = False
        self._lock = threading.Lock()

    @property
    def length(self) -> Optional[int]:
        """Declared size in bytes, or None when unknown (streamed)."""
        return self._length

    @property
    def exhausted(self) -> bool:
        """True once the source has reported end-of-data."""
        return self._exhausted

    @abstractmethod
    def _read(self, size: int) -> bytes:
        """Read up to `size` bytes (-1 = everything). b"" means EOF."""

    def read(self, size: int = -1) -> bytes:
        """
        Read up to `size` bytes, or everything that is left when size < 0.

        Returns b"" once the source is exhausted.
        """
        with self._lock:
            if self._exhausted:
                return b""
            data = self._read(size)
            if size < 0 or not data:
                self._exhausted = True
            return data

    def read_all(self) -> bytes:
        """Drain the source and return every remaining byte."""
        return self.read(-1)

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(CHUNK_SIZE)
            if not chunk:
                return
            yield chunk

    def buffered(self) -> "ReplayableSource":
        """Wrap this source so its bytes can be read again after rewind()."""
        return ReplayableSource(self)

    def close(self) -> None:
        """Release the underlying resource. Further reads return b""."""
        self._exhausted = True


class BytesSource(ByteSource):
    """
    An in-memory body.

    Still single-consumption: the second read() returns b"".
    """

    def __init__(self, data: Union[bytes, bytearray, str] = b""):
        if isinstance(data, str):
            data = data.encode("utf-8")
        data = bytes(data)
        super().__init__(length=len(data))
        self._buffer = io.BytesIO(data)

    def _read(self, size: int) -> bytes:
        return self._buffer.read(size)

    def __repr__(self) -> str:
        return f"BytesSource(length={self._length}, exhausted={self._exhausted})"


class StreamSource(ByteSource):
    """
    A body backed by a binary file-like object (socket file, BytesIO ...).

    When a length is declared the source never reads past it, which
    matters on keep-alive connections where the next request follows
    directly after this body.
    """

    def __init__(self, stream: BinaryIO, length: Optional[int] = None):
        super().__init__(length=length)
        self._stream = stream
        self._remaining = length

    def _read(self, size: int) -> bytes:
        if self._remaining is None:
            return self._stream.read(size)

        if self._remaining <= 0:
            return b""
        if size < 0 or size > self._remaining:
            size = self._remaining

        # Socket files may return short reads; loop until satisfied or EOF
        parts = []
        wanted = size
        while wanted > 0:
            chunk = self._stream.read(wanted)
            if not chunk:
                break
            parts.append(chunk)
            wanted -= len(chunk)
        data = b"".join(parts)
        self._remaining -= len(data)
        return data

    def close(self) -> None:
        super().close()
        self._stream.close()

    def __repr__(self) -> str:
        return f"StreamSource(length={self._length}, exhausted={self._exhausted})"


class ReplayableSource(ByteSource):
    """
    Explicit buffering wrapper around another source.

    The wrapped source is drained once, on first use. After that the
    buffered bytes can be re-read any number of times via rewind().
    """

    def __init__(self, source: ByteSource):
        super().__init__(length=source.length)
        self._source = source
        self._data: Optional[bytes] = None
        self._position = 0

    @property
    def data(self) -> bytes:
        """The complete buffered body (drains the wrapped source if needed)."""
        if self._data is None:
            self._data = self._source.read_all()
            if self._length is None:
                self._length = len(self._data)
        return self._data

    def _read(self, size: int) -> bytes:
        data = self.data
        end = len(data) if size < 0 else min(len(data), self._position + size)
        chunk = data[self._position:end]
        self._position = end
        return chunk

    def rewind(self) -> "ReplayableSource":
        """Return to the start of the buffered bytes."""
        with self._lock:
            self._position = 0
            self._exhausted = False
        return self

    def buffered(self) -> "ReplayableSource":
        return self

    def __repr__(self) -> str:
        return f"ReplayableSource(length={self._length}, position={self._position})"


BodyLike = Union[ByteSource, bytes, bytearray, str]


def empty_body() -> BytesSource:
    """
    A fresh empty body.

    Never share one empty source between messages: consumption state
    would leak from one message to the next.
    """
    return BytesSource(b"")


def as_source(body: BodyLike) -> ByteSource:
    """Coerce bytes/str into a BytesSource; pass sources through unchanged."""
    if isinstance(body, ByteSource):
        return body
    if isinstance(body, (bytes, bytearray, str)):
        return BytesSource(body)
    raise TypeError(f"Unsupported body type: {type(body).__name__}")
