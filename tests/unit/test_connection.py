"""
Unit tests for request framing on a client connection.
"""

import socket

import pytest

from minihttp.core.connection import Connection


@pytest.fixture
def socket_pair():
    """A connected (server side, client side) socket pair."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


class TestContentLength:
    """Tests for locating Content-Length in a raw head."""

    @pytest.mark.parametrize("head, expected", [
        (b"POST / HTTP/1.1\r\nContent-Length: 15\r\nConnection: close", 15),
        (b"POST / HTTP/1.1\r\nConnection: close\r\nContent-Length: 15", 15),
        (b"POST / HTTP/1.1\r\ncontent-length:7\r\nHost: x", 7),
        (b"POST / HTTP/1.1\r\nContent-Length :  3  \r\nHost: x", 3),
        (b"GET / HTTP/1.1\r\nHost: x", 0),
        (b"POST / HTTP/1.1\r\nContent-Length: -4\r\nHost: x", 0),
        (b"POST / HTTP/1.1\r\nContent-Length: abc", 0),
    ])
    def test_content_length(self, head, expected):
        """Test the length is found in any header position."""
        assert Connection._content_length(head) == expected

    def test_request_line_is_not_a_header(self):
        """Test a request target resembling a header is ignored."""
        assert Connection._content_length(b"content-length: 9 HTTP/1.1\r\nHost: x") == 0


class TestReadRequest:
    """Tests for Connection.read_request over a socket pair."""

    def test_body_read_when_length_is_not_last(self, socket_pair):
        """Test a body announced before other headers is read in full."""
        server_side, client_side = socket_pair
        request = (
            b"POST /upload HTTP/1.1\r\n"
            b"Content-Length: 5\r\n"
            b"Connection: close\r\n"
            b"\r\n"
            b"hello"
        )
        client_side.sendall(request)

        conn = Connection(server_side, ("127.0.0.1", 0), timeout=5.0)

        assert conn.read_request() == request

    def test_pipelined_leftovers_kept(self, socket_pair):
        """Test bytes past one request stay buffered for the next."""
        server_side, client_side = socket_pair
        first = b"POST /a HTTP/1.1\r\nContent-Length: 2\r\nHost: x\r\n\r\nhi"
        second = b"GET /b HTTP/1.1\r\nHost: x\r\n\r\n"
        client_side.sendall(first + second)

        conn = Connection(server_side, ("127.0.0.1", 0), timeout=5.0)

        assert conn.read_request() == first
        assert conn.read_request() == second

    def test_clean_close_returns_none(self, socket_pair):
        """Test a client hanging up before sending anything."""
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)

        conn = Connection(server_side, ("127.0.0.1", 0), timeout=5.0)

        assert conn.read_request() is None
