"""
Integration tests: the socket transport on a real, OS-assigned port.
"""

import gzip as gzip_module
import http.client
import logging
import socket

import pytest

from minihttp import ServerConfig, SocketServerCreator, UrllibClient
from minihttp.handlers import pong
from minihttp.http import HTTPRequest, ResponseBuilder, Router
from minihttp.middleware import ACCESS_LOGGER_NAME


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Helper: write raw bytes, read until the server closes."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def status_of(response: bytes) -> int:
    return int(response.split(b" ", 2)[1])


class TestRequests:
    """Requests through UrllibClient against the example router."""

    def test_port_is_assigned(self, running_server):
        """Test port 0 reports the port actually bound."""
        assert running_server.port > 0
        assert running_server.url == f"http://127.0.0.1:{running_server.port}"

    def test_ping(self, running_server):
        """Test GET /ping answers pong."""
        response = UrllibClient()(HTTPRequest.get(f"{running_server.url}/ping"))

        assert response.status == 200
        assert response.text() == "pong"
        assert response.header("server") == "minihttp/1.0"
        assert response.header("content-length") == "4"

    def test_echo(self, running_server):
        """Test path variables are decoded and echoed."""
        response = UrllibClient()(HTTPRequest.get(f"{running_server.url}/echo/hello%20world"))

        assert response.status == 200
        assert response.text() == "hello world"

    def test_not_found(self, running_server):
        """Test unknown paths are 404 with an empty body."""
        response = UrllibClient()(HTTPRequest.get(f"{running_server.url}/nowhere"))

        assert response.status == 404
        assert response.read_body() == b""

    def test_wrong_method(self, running_server):
        """Test POST /ping is 405."""
        response = UrllibClient()(HTTPRequest.create("POST", f"{running_server.url}/ping"))

        assert response.status == 405

    def test_post_body(self, running_server):
        """Test a request body reaches the handler."""
        request = (HTTPRequest.create("POST", f"{running_server.url}/upload").copy()
            .header("Content-Type", "application/json")
            .body(b'{"name": "ada"}')
            .build())
        response = UrllibClient()(request)

        assert response.status == 200
        assert response.json() == {"received": {"name": "ada"}}

    def test_handler_error_is_500(self, running_server, caplog):
        """Test a raising handler yields an empty 500 and a logged traceback."""
        with caplog.at_level(logging.ERROR, logger="minihttp.server"):
            response = UrllibClient()(HTTPRequest.get(f"{running_server.url}/boom"))

        assert response.status == 500
        assert response.read_body() == b""
        errors = [r for r in caplog.records if r.name == "minihttp.server"]
        assert errors and errors[0].exc_info is not None

    def test_access_log(self, running_server, caplog):
        """Test each request produces one access log line."""
        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            UrllibClient()(HTTPRequest.get(f"{running_server.url}/ping"))

        lines = [r.getMessage() for r in caplog.records if r.name == ACCESS_LOGGER_NAME]
        assert len(lines) == 1
        assert lines[0].startswith("127.0.0.1 - - [")
        assert lines[0].endswith('"GET /ping HTTP/1.1" 200 4')


class TestRawProtocol:
    """Protocol edge cases sent over a raw socket."""

    def test_chunked_request_is_411(self, running_server):
        """Test chunked request bodies are refused before the handler runs."""
        response = send_raw(
            running_server.port,
            b"POST /upload HTTP/1.1\r\n"
            b"Host: localhost\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"3\r\nabc\r\n0\r\n\r\n",
        )

        assert status_of(response) == 411
        assert b"Connection: close" in response

    def test_content_length_before_other_headers(self, running_server):
        """Test the body is read wherever Content-Length sits in the head."""
        body = b'{"name": "ada"}'
        response = send_raw(
            running_server.port,
            b"POST /upload HTTP/1.1\r\n"
            b"Content-Length: 15\r\n"
            b"Content-Type: application/json\r\n"
            b"Connection: close\r\n"
            b"\r\n" + body,
        )

        assert status_of(response) == 200
        assert response.endswith(b'{"received": {"name": "ada"}}')

    def test_unparsable_target_is_400(self, running_server):
        """Test a request target that cannot be split still gets an answer."""
        response = send_raw(running_server.port, b"GET http://[::1/x HTTP/1.1\r\nHost: a\r\n\r\n")

        assert status_of(response) == 400
        assert b"Invalid request target" in response

    def test_unknown_method_is_405(self, running_server):
        """Test methods outside the enum never reach the router."""
        response = send_raw(running_server.port, b"PATCH /ping HTTP/1.1\r\nHost: x\r\n\r\n")

        assert status_of(response) == 405

    def test_malformed_request_line_is_400(self, running_server):
        """Test garbage is answered with 400."""
        response = send_raw(running_server.port, b"HELLO\r\n\r\n")

        assert status_of(response) == 400

    def test_unsupported_version_is_505(self, running_server):
        """Test HTTP/2.0 on the request line is refused."""
        response = send_raw(running_server.port, b"GET /ping HTTP/2.0\r\n\r\n")

        assert status_of(response) == 505

    def test_http_10_closes(self, running_server):
        """Test an HTTP/1.0 request is answered and the connection closed."""
        response = send_raw(running_server.port, b"GET /ping HTTP/1.0\r\n\r\n")

        assert status_of(response) == 200
        assert b"Connection: close" in response
        assert response.endswith(b"\r\n\r\npong")

    def test_pipelined_requests(self, running_server):
        """Test two requests sent back to back get two responses."""
        response = send_raw(
            running_server.port,
            b"GET /ping HTTP/1.1\r\nHost: x\r\n\r\n"
            b"GET /echo/two HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
        )

        assert response.count(b"HTTP/1.1 200 OK") == 2
        assert response.endswith(b"\r\n\r\ntwo")


class TestConnectionHandling:
    """Keep-alive, HEAD and server options."""

    def test_keep_alive(self, running_server):
        """Test several requests share one connection."""
        conn = http.client.HTTPConnection("127.0.0.1", running_server.port, timeout=5)
        try:
            for message in ("one", "two", "three"):
                conn.request("GET", f"/echo/{message}")
                response = conn.getresponse()
                assert response.status == 200
                assert response.getheader("Connection") == "keep-alive"
                assert response.read() == message.encode()
        finally:
            conn.close()

    def test_error_closes_connection(self, running_server):
        """Test the connection is closed after a 500."""
        conn = http.client.HTTPConnection("127.0.0.1", running_server.port, timeout=5)
        try:
            conn.request("GET", "/boom")
            response = conn.getresponse()
            response.read()
            assert response.status == 500
            assert response.getheader("Connection") == "close"
        finally:
            conn.close()

    def test_unencodable_header_is_500(self, config, caplog):
        """Test a response that cannot be written out becomes a 500."""
        def euro(request):
            return ResponseBuilder().text("price").header("X-Name", "€").build()

        router = Router.builder().get("/price", euro).build()

        with caplog.at_level(logging.ERROR, logger="minihttp.server"):
            with SocketServerCreator(config).create(router).start() as server:
                response = send_raw(server.port, b"GET /price HTTP/1.1\r\nHost: x\r\n\r\n")

        assert status_of(response) == 500
        assert b"Connection: close" in response
        assert b"X-Name" not in response
        errors = [r for r in caplog.records if r.name == "minihttp.server"]
        assert errors and errors[0].exc_info is not None

    def test_head_has_no_body(self, config):
        """Test HEAD responses keep Content-Length but send no body."""
        router = Router.builder().route(["GET", "HEAD"], "/ping", pong()).build()

        with SocketServerCreator(config).create(router).start() as server:
            response = send_raw(server.port, b"HEAD /ping HTTP/1.1\r\nConnection: close\r\n\r\n")

        assert status_of(response) == 200
        assert b"Content-Length: 4" in response
        assert response.endswith(b"\r\n\r\n")

    def test_gzip_option(self, config):
        """Test ServerConfig(gzip=True) compresses eligible responses."""
        text = "compress me " * 200

        def big(request):
            return ResponseBuilder().text(text).build()

        router = Router.builder().get("/big", big).build()
        config = config.with_overrides(gzip=True)

        with SocketServerCreator(config).create(router).start() as server:
            conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
            try:
                conn.request("GET", "/big", headers={"Accept-Encoding": "gzip"})
                response = conn.getresponse()
                body = response.read()
            finally:
                conn.close()

        assert response.getheader("Content-Encoding") == "gzip"
        assert gzip_module.decompress(body).decode() == text

    def test_close_stops_listening(self, router, config):
        """Test a closed server refuses new connections."""
        server = SocketServerCreator(config).create(router).start()
        port = server.port
        server.close()

        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1).close()

    def test_invalid_config_rejected(self):
        """Test the creator validates its configuration."""
        with pytest.raises(ValueError):
            SocketServerCreator(ServerConfig(port=-5))
