"""
=============================================================================
HTTP MODULE
=============================================================================

The transport-independent core: message model, URI templates, router.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ containers.py   case-insensitive dict / multidict (params, headers) │
    │ body.py         single-consumption byte sources                     │
    │ methods.py      HTTPMethod (GET DELETE POST PUT UPDATE HEAD)        │
    │ status_codes.py HTTPStatus + reason phrases                         │
    │ request.py      HTTPRequest, RequestBuilder, RequestParser          │
    │ response.py     HTTPResponse, ResponseBuilder, ok()/not_found()...  │
    │ uri_template.py UriTemplate: "/echo/{message}"                      │
    │ router.py       Router, RouterBuilder                               │
    └─────────────────────────────────────────────────────────────────────┘

Control flow:

    Router.handle(request)
        → UriTemplate.matches / match
        → handler(request + path variables)
        → HTTPResponse

Nothing in here touches a socket; transports live in minihttp.server
and minihttp.memory.

=============================================================================
"""

from .body import ByteSource, BytesSource, ReplayableSource, StreamSource, empty_body
from .containers import CaseInsensitiveDict, CaseInsensitiveMultiDict
from .methods import HTTPMethod, UnknownMethodError
from .status_codes import HTTPStatus
from .request import HTTPParseError, HTTPRequest, RequestBuilder, RequestParser
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200
    created,             # 201
    no_content,          # 204
    redirect,            # 301 / 302
    bad_request,         # 400
    not_found,           # 404
    method_not_allowed,  # 405
    internal_error,      # 500
)
from .uri_template import UriTemplate, UriTemplateError
from .router import Handler, Route, RouteMatch, Router, RouterBuilder

__all__ = [
    # Containers and bodies
    "CaseInsensitiveDict",
    "CaseInsensitiveMultiDict",
    "ByteSource",
    "BytesSource",
    "StreamSource",
    "ReplayableSource",
    "empty_body",

    # Methods and statuses
    "HTTPMethod",
    "UnknownMethodError",
    "HTTPStatus",

    # Requests
    "HTTPRequest",
    "RequestBuilder",
    "RequestParser",
    "HTTPParseError",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "no_content",
    "redirect",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "UriTemplate",
    "UriTemplateError",
    "Handler",
    "Route",
    "RouteMatch",
    "Router",
    "RouterBuilder",
]
