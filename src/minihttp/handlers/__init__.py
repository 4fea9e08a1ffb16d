"""
=============================================================================
COMMON HANDLERS
=============================================================================

Small handler factories used by the router defaults and the example app.

A handler is any callable taking an HTTPRequest and returning an
HTTPResponse. Each factory here returns a fresh one:

    ┌────────────────────┬──────────────────────────────────────────────┐
    │ pong()             │ 200, body "pong" (liveness probe)            │
    │ response_code(c)   │ status c, empty body                         │
    │ not_found()        │ 404, empty body   (router fallback default)  │
    │ invalid_method()   │ 405, empty body   (router invalid-method     │
    │                    │                    default)                  │
    │ echo(param)        │ 200, body = request.param(param)             │
    └────────────────────┴──────────────────────────────────────────────┘

Usage:

    router = (Router.builder()
        .get("/ping", pong())
        .get("/echo/{message}", echo("message"))
        .build())

=============================================================================
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


def pong():
    """Handler answering 200 with the body "pong"."""
    def handle(request: HTTPRequest) -> HTTPResponse:
        return ResponseBuilder().status(HTTPStatus.OK).text("pong").build()
    return handle


def response_code(code: int):
    """Handler answering `code` with an empty body."""
    def handle(request: HTTPRequest) -> HTTPResponse:
        return HTTPResponse.of(code)
    return handle


def not_found():
    return response_code(HTTPStatus.NOT_FOUND)


def invalid_method():
    return response_code(HTTPStatus.METHOD_NOT_ALLOWED)


def echo(param: str = "message"):
    """
    Handler answering 200 with the value of a request parameter as text.

    Missing parameters produce an empty body.
    """
    def handle(request: HTTPRequest) -> HTTPResponse:
        return ResponseBuilder().text(request.param(param, "")).build()
    return handle


__all__ = [
    "pong",
    "response_code",
    "not_found",
    "invalid_method",
    "echo",
]
