"""
=============================================================================
IN-MEMORY TRANSPORT
=============================================================================

A server that never opens a socket. Requests go straight from the client
to the handler, which makes it the transport of choice for unit tests:

    router = Router.builder().get("/ping", pong()).build()
    with InMemoryServerCreator().create(router).start() as server:
        response = server.client()(HTTPRequest.get("http://localhost/ping"))
        assert response.status == 200

There is no wire form: no serialization, no Date/Server headers, and the
handler sees exactly the HTTPRequest the client was given.

=============================================================================
"""

from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .http.router import Handler
from .server import HTTPServer, ServerCreator


class InMemoryClient:
    """A handler that forwards every request to a server-side handler."""

    def __init__(self, handler: Handler):
        if handler is None:
            raise TypeError("handler must not be None")
        self._handler = handler

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        return self._handler(request)

    __call__ = handle


class InMemoryServer(HTTPServer):
    """Holds a handler; start() and close() do nothing."""

    def __init__(self, handler: Handler):
        if handler is None:
            raise TypeError("handler must not be None")
        self.handler = handler

    @property
    def port(self) -> int:
        raise NotImplementedError("InMemoryServer does not listen on a port")

    def start(self) -> "InMemoryServer":
        return self

    def close(self) -> None:
        pass

    def client(self) -> InMemoryClient:
        return InMemoryClient(self.handler)


class InMemoryServerCreator(ServerCreator):

    def create(self, handler: Handler) -> InMemoryServer:
        return InMemoryServer(handler)
