"""
=============================================================================
MINIHTTP - A Small, Transport-Independent HTTP Toolkit
=============================================================================

Requests and responses are immutable values, handlers are plain
callables, and a router is just another handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   HTTPRequest ──► handler ──► HTTPResponse                          │
    │                      ▲                                              │
    │                      │  Router, middleware, clients: all handlers   │
    │                      │                                              │
    │   ServerCreator.create(handler) ──► HTTPServer (socket / memory)    │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── __init__.py          # package exports
    ├── __main__.py          # python -m minihttp
    ├── config.py            # ServerConfig
    ├── server.py            # HTTPServer / ServerCreator, socket transport
    ├── memory.py            # in-memory transport
    ├── client.py            # UrllibClient
    ├── core/                # listener, connection, worker pool
    ├── http/                # message model, UriTemplate, Router
    ├── middleware/          # access log, gzip
    └── handlers/            # pong, echo, not_found, ...

=============================================================================
QUICK START
=============================================================================

    from minihttp import Router, ServerConfig, SocketServerCreator
    from minihttp.handlers import echo, pong

    router = (Router.builder()
        .get("/ping", pong())
        .get("/echo/{message}", echo("message"))
        .build())

    with SocketServerCreator(ServerConfig(port=8080)).create(router).start():
        ...

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .http import (
    HTTPMethod,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestBuilder,
    ResponseBuilder,
    Router,
    RouterBuilder,
    UriTemplate,
)
from .server import HTTPServer, ServerCreator, SocketHTTPServer, SocketServerCreator
from .memory import InMemoryClient, InMemoryServer, InMemoryServerCreator
from .client import UrllibClient

__all__ = [
    "__version__",
    "ServerConfig",

    # Message model
    "HTTPMethod",
    "HTTPStatus",
    "HTTPRequest",
    "HTTPResponse",
    "RequestBuilder",
    "ResponseBuilder",

    # Routing
    "UriTemplate",
    "Router",
    "RouterBuilder",

    # Transports
    "HTTPServer",
    "ServerCreator",
    "SocketHTTPServer",
    "SocketServerCreator",
    "InMemoryServer",
    "InMemoryServerCreator",
    "InMemoryClient",
    "UrllibClient",
]
