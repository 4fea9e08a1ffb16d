"""
pytest configuration and fixtures.
"""

import socket
from typing import Generator

import pytest

from minihttp import ServerConfig, SocketServerCreator
from minihttp.handlers import echo, pong
from minihttp.http import HTTPRequest, HTTPResponse, ResponseBuilder, Router


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/hello?lang=en&page=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


def boom(request: HTTPRequest) -> HTTPResponse:
    raise RuntimeError("boom")


def upload(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder().json({"received": request.json()}).build()


@pytest.fixture
def router() -> Router:
    """The example application plus a failing and a JSON route."""
    return (Router.builder()
        .get("/ping", pong())
        .get("/echo/{message}", echo("message"))
        .get("/boom", boom)
        .post("/upload", upload)
        .build())


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=0.5,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def running_server(router: Router, config: ServerConfig) -> Generator:
    """The example router served over a real socket."""
    server = SocketServerCreator(config).create(router).start()
    yield server
    server.close()
