"""
=============================================================================
HTTP RESPONSE
=============================================================================

The immutable response model, its builder, and its wire form.

=============================================================================
BUILDING A RESPONSE
=============================================================================

    HTTPResponse.of(404)                           status only, empty body

    ResponseBuilder().status(201)                  fluent builder
                     .json({"id": 7})
                     .header("Location", "/items/7")
                     .build()

    response.with_header("X-Trace", "abc")         copy-on-write shortcut

Like requests, responses are frozen. copy() returns a ResponseBuilder
seeded with the response's fields; only modified containers are copied.

=============================================================================
LENGTH AND FRAMING
=============================================================================

`length` says how the body is framed on the wire:

    ┌──────────────────┬──────────────────────────────────────────────────┐
    │  length = 12     │  Content-Length: 12                              │
    │                  │  <12 body bytes>                                 │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │  length = None   │  Transfer-Encoding: chunked                      │
    │  (unknown)       │  c\\r\\n<12 bytes>\\r\\n ... 0\\r\\n\\r\\n             │
    └──────────────────┴──────────────────────────────────────────────────┘

1xx, 204 and 304 responses never carry a body or framing headers.

Serializing reads the body, so a response can only be written once.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
import json

from .body import BodyLike, ByteSource, StreamSource, as_source, empty_body
from .containers import CaseInsensitiveMultiDict
from .message import DEFAULT_PROTOCOL, UNSET, HTTPMessage, freeze_headers
from .status_codes import HTTPStatus, reason_phrase


DEFAULT_SERVER_NAME = "minihttp/1.0"


def format_http_date(dt: Optional[datetime] = None) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date (always GMT).

        Wed, 01 Jan 2026 12:00:00 GMT
    """
    if dt is None:
        dt = datetime.now(timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def canonical_header_name(name: str) -> str:
    """'content-type' → 'Content-Type' for the wire form."""
    return "-".join(part.capitalize() for part in name.split("-"))


def body_allowed(status: int) -> bool:
    """1xx, 204 No Content and 304 Not Modified never have a body."""
    return not (100 <= status < 200 or status in (204, 304))


@dataclass(frozen=True)
class HTTPResponse(HTTPMessage):
    """
    An immutable HTTP response.

    Attributes:
        status:   integer status code (HTTPStatus members are accepted)
        body:     single-consumption ByteSource
        length:   body length; None means unknown (sent chunked). Defaults
                  to the body source's own length.
        headers:  frozen case-insensitive multidict
        protocol: "HTTP/1.1" by default
    """

    status: int = HTTPStatus.OK
    body: ByteSource = field(default_factory=empty_body, compare=False)
    length: Optional[int] = UNSET
    headers: CaseInsensitiveMultiDict = field(default_factory=CaseInsensitiveMultiDict, hash=False)
    protocol: str = DEFAULT_PROTOCOL

    def __post_init__(self):
        object.__setattr__(self, "status", int(self.status))
        object.__setattr__(self, "body", as_source(self.body))
        if self.length is UNSET:
            object.__setattr__(self, "length", self.body.length)
        object.__setattr__(self, "headers", freeze_headers(self.headers))

    @classmethod
    def of(cls, status: int) -> "HTTPResponse":
        """A response with the given status, an empty body and length 0."""
        return cls(status=status, body=empty_body(), length=0)

    @property
    def reason(self) -> str:
        return reason_phrase(self.status)

    @property
    def status_line(self) -> str:
        """e.g. 'HTTP/1.1 404 Not Found'"""
        return f"{self.protocol} {self.status} {self.reason}"

    # =========================================================================
    # COPY-ON-WRITE
    # =========================================================================

    def copy(self) -> "ResponseBuilder":
        return ResponseBuilder(self)

    def with_status(self, status: int) -> "HTTPResponse":
        return self.copy().status(status).build()

    def with_header(self, name: str, value: str) -> "HTTPResponse":
        return self.copy().header(name, value).build()

    def with_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """New response with an in-memory body and its exact length."""
        return self.copy().body(body).build()

    def with_stream(self, source: ByteSource, length: Optional[int] = None) -> "HTTPResponse":
        """New response streaming `source`; length None means chunked."""
        return self.copy().stream(source, length).build()

    # =========================================================================
    # WIRE FORM
    # =========================================================================

    def iter_bytes(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        include_body: bool = True,
        connection: Optional[str] = None,
    ) -> Iterator[bytes]:
        """
        Yield the response as wire bytes: the head first, then the body.

        Args:
            server_name: value for the Server header when none is set.
            include_body: False for responses to HEAD requests. Framing
                headers are still sent so the client sees the real length.
            connection: value for the Connection header when none is set.
        """
        headers = self.headers.copy()
        if "date" not in headers:
            headers["Date"] = format_http_date()
        if "server" not in headers:
            headers["Server"] = server_name
        if connection and "connection" not in headers:
            headers["Connection"] = connection

        has_body = body_allowed(self.status)
        chunked = has_body and self.length is None
        if has_body:
            if chunked:
                headers.removeall("content-length")
                headers["Transfer-Encoding"] = "chunked"
            else:
                headers["Content-Length"] = str(self.length)
        else:
            headers.removeall("content-length")
            headers.removeall("transfer-encoding")

        lines = [self.status_line]
        for name, value in headers.entries():
            lines.append(f"{canonical_header_name(name)}: {value}")
        yield ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

        if not (has_body and include_body):
            return

        if chunked:
            for chunk in self.body:
                if chunk:
                    yield f"{len(chunk):X}\r\n".encode("ascii") + chunk + b"\r\n"
            yield b"0\r\n\r\n"
        else:
            for chunk in self.body:
                yield chunk

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME, include_body: bool = True) -> bytes:
        """The whole wire form in one bytes object. Consumes the body."""
        return b"".join(self.iter_bytes(server_name, include_body))


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Use it standalone:

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .json({"id": 7})
            .build())

    or from an existing response via response.copy(). A builder seeded
    from a response keeps that response's frozen headers until the first
    header change.
    """

    def __init__(self, response: Optional[HTTPResponse] = None):
        if response is None:
            response = HTTPResponse.of(HTTPStatus.OK)
        self._status = response.status
        self._body = response.body
        self._length = response.length
        self._headers = response.headers
        self._protocol = response.protocol
        self._headers_owned = False

    def _own_headers(self) -> CaseInsensitiveMultiDict:
        if not self._headers_owned:
            self._headers = self._headers.copy()
            self._headers_owned = True
        return self._headers

    # -------------------------------------------------------------------------
    # Status and headers
    # -------------------------------------------------------------------------

    def status(self, status: int) -> "ResponseBuilder":
        self._status = int(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Append a header value (repeats allowed, e.g. Set-Cookie)."""
        self._own_headers().add(name, value)
        return self

    def set_header(self, name: str, value: str) -> "ResponseBuilder":
        """Replace every value under `name`."""
        self._own_headers()[name] = value
        return self

    def remove_header(self, name: str) -> "ResponseBuilder":
        self._own_headers().removeall(name)
        return self

    def headers(
        self, headers: Union[CaseInsensitiveMultiDict, Mapping[str, Any], Iterable[Tuple[str, str]]]
    ) -> "ResponseBuilder":
        """Replace all headers."""
        self._headers = CaseInsensitiveMultiDict(headers)
        self._headers_owned = True
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.set_header("Content-Type", content_type)

    def protocol(self, protocol: str) -> "ResponseBuilder":
        self._protocol = protocol
        return self

    # -------------------------------------------------------------------------
    # Body
    # -------------------------------------------------------------------------

    def body(self, body: BodyLike, length: Optional[int] = UNSET) -> "ResponseBuilder":
        """
        Set the body. bytes/str get their exact length; a ByteSource keeps
        its declared length unless one is given.
        """
        source = as_source(body)
        self._body = source
        self._length = source.length if length is UNSET else length
        return self

    def stream(self, source: Any, length: Optional[int] = None) -> "ResponseBuilder":
        """
        Stream a ByteSource or binary file object.

        Without a length the response goes out chunked.
        """
        if not isinstance(source, ByteSource):
            source = StreamSource(source, length)
        self._body = source
        self._length = length
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self.body(text.encode("utf-8"))
        return self.content_type(content_type)

    def html(self, html: str) -> "ResponseBuilder":
        return self.text(html, "text/html; charset=utf-8")

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        payload = json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)
        self.body(payload.encode("utf-8"))
        return self.content_type("application/json; charset=utf-8")

    # -------------------------------------------------------------------------
    # Shortcuts
    # -------------------------------------------------------------------------

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """301 (permanent) or 302 (temporary) to `location`."""
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        return self.set_header("Location", location)

    def close_connection(self) -> "ResponseBuilder":
        return self.set_header("Connection", "close")

    def build(self) -> HTTPResponse:
        self._headers.freeze()
        self._headers_owned = False
        return HTTPResponse(
            status=self._status,
            body=self._body,
            length=self._length,
            headers=self._headers,
            protocol=self._protocol,
        )


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================
#
#     return ok("pong")
#     return ok({"id": 7})              dict/list → JSON
#     return not_found("no such user")
#
# =============================================================================

JsonOrText = Union[str, bytes, dict, list]


def _with_content(builder: ResponseBuilder, body: JsonOrText, content_type: Optional[str] = None) -> ResponseBuilder:
    if isinstance(body, (dict, list)):
        return builder.json(body)
    if isinstance(body, str):
        return builder.text(body, content_type or "text/plain; charset=utf-8")
    builder.body(body)
    if content_type:
        builder.content_type(content_type)
    return builder


def ok(body: JsonOrText = "", content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK. dict/list bodies are sent as JSON, str as text/plain."""
    return _with_content(ResponseBuilder().status(HTTPStatus.OK), body, content_type).build()


def created(body: JsonOrText = b"", location: Optional[str] = None) -> HTTPResponse:
    """201 Created, with a Location header when given."""
    builder = _with_content(ResponseBuilder().status(HTTPStatus.CREATED), body)
    if location:
        builder.set_header("Location", location)
    return builder.build()


def no_content() -> HTTPResponse:
    return HTTPResponse.of(HTTPStatus.NO_CONTENT)


def redirect(location: str, permanent: bool = False) -> HTTPResponse:
    return ResponseBuilder().redirect(location, permanent).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.BAD_REQUEST).json({"error": message}).build()


def not_found(message: str = "Not Found") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": message}).build()


def method_not_allowed(allowed_methods: List[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 asks for."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .set_header("Allow", ", ".join(str(m) for m in allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": [str(m) for m in allowed_methods]})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).json({"error": message}).build()
