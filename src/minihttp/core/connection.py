"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket: buffered reads of whole requests,
writes of response chunks, and an orderly close.

=============================================================================
READING ONE REQUEST
=============================================================================

    socket bytes ──► _buffer
                        │
                        ├─ 1. recv until "\\r\\n\\r\\n" is buffered
                        ├─ 2. read Content-Length from the head
                        ├─ 3. recv until head + body are buffered
                        └─ 4. cut one request off the front; bytes of a
                              pipelined next request stay in _buffer

Only Content-Length framing is read here. A chunked request comes back
as its head alone, and the parser refuses it with 411.

=============================================================================
KEEP-ALIVE
=============================================================================

The first request waits up to `timeout`. Later requests on the same
connection wait only `keep_alive_timeout`; running out of it is the
normal end of an idle keep-alive connection, not an error.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple
import logging
import socket
import time
import uuid

from ..http.request import HTTPParseError


logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: the accepted client socket.
        address: the peer's (host, port).
        id: short random id used in log lines.
        requests_handled: complete requests read so far.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def age(self) -> float:
        return time.monotonic() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read the bytes of exactly one request (head + Content-Length body).

        Returns:
            The request bytes, or None when the client closed the
            connection (or went idle on keep-alive) between requests.

        Raises:
            HTTPParseError: 413 when the request exceeds max_request_size,
                400 when the client hangs up halfway through a request.
            TimeoutError: when the FIRST request does not arrive in time.
        """
        self.state = ConnectionState.READING
        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while HEADER_TERMINATOR not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    if self._buffer.strip():
                        raise HTTPParseError("Connection closed before the request head was complete")
                    return None
                self._buffer += chunk
                self._check_size(len(self._buffer))

            header_end = self._buffer.find(HEADER_TERMINATOR)
            body_start = header_end + len(HEADER_TERMINATOR)
            content_length = self._content_length(self._buffer[:header_end])
            self._check_size(body_start + content_length)

            while len(self._buffer) < body_start + content_length:
                chunk = self._recv()
                if not chunk:
                    raise HTTPParseError("Connection closed before the request body was complete")
                self._buffer += chunk

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout") from None

        request_end = body_start + content_length
        data, self._buffer = self._buffer[:request_end], self._buffer[request_end:]
        self.requests_handled += 1
        return data

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _check_size(self, size: int) -> None:
        if size > self.max_request_size:
            raise HTTPParseError(f"Request too large: {size} bytes", status_code=413)

    @staticmethod
    def _content_length(head: bytes) -> int:
        """Content-Length from the raw head; 0 when absent or unreadable."""
        for line in head.split(b"\r\n")[1:]:
            name, sep, value = line.partition(b":")
            if sep and name.strip().lower() == b"content-length":
                value = value.strip()
                return int(value) if value.isdigit() else 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, chunks: Iterable[bytes]) -> bool:
        """
        Write response chunks in order.

        Returns:
            False if the client went away mid-write.
        """
        self.state = ConnectionState.WRITING
        try:
            for chunk in chunks:
                if chunk:
                    self.socket.sendall(chunk)
            return True
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Orderly close: send FIN, drain what the client still sends, close.
        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.2)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests ({self.age:.2f}s)")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
