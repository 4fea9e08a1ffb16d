"""
=============================================================================
HTTP REQUEST
=============================================================================

The request model and the parser that produces it from raw bytes.

=============================================================================
AN IMMUTABLE REQUEST
=============================================================================

An HTTPRequest is a frozen value. It is never modified in place; a
"modified" request is a NEW request built from the old one:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        COPY-ON-WRITE                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   original = HTTPRequest.get("/echo/hello")                         │
    │                                                                     │
    │   enriched = original.with_param("message", "hello")                │
    │                                                                     │
    │       original ──► headers ◄── enriched      (shared, untouched)    │
    │       original ──► params {}                                        │
    │       enriched ──► params {message: hello}   (new container)        │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Sub-objects that were not modified are shared by reference. That is safe
because the header and parameter containers are frozen: nobody can
mutate them through either request.

The body is shared too - but a body is a single-consumption byte source
(see body.py), so whichever request reads it first gets the bytes.

=============================================================================
WHERE THINGS LIVE ON THE REQUEST
=============================================================================

    GET /echo/hello%20world?lang=en HTTP/1.1
    ─┬─ ──────────────┬───────────── ───┬────
     │                │                 │
   method            uri             protocol
                      │
          ┌───────────┴─────────────┐
          │                         │
     path (decoded)              query
     /echo/hello world           lang=en
                                    │
                                    ▼
                               params {"lang": "en"}
                               (+ route variables, added by the router)

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, unquote, urlsplit
import re

from .body import BodyLike, ByteSource, BytesSource, as_source, empty_body
from .containers import CaseInsensitiveDict, CaseInsensitiveMultiDict
from .message import DEFAULT_PROTOCOL, UNSET, HTTPMessage, freeze_headers
from .methods import HTTPMethod, UnknownMethodError


Address = Tuple[str, int]


class HTTPParseError(Exception):
    """
    Raised when raw request bytes cannot be turned into an HTTPRequest.

    Carries the status code the transport should answer with:

        400 Bad Request                 malformed request line / headers
        405 Method Not Allowed          method name is not an HTTPMethod
        411 Length Required             chunked transfer encoding
        413 Payload Too Large           request exceeds the size limit
        505 HTTP Version Not Supported  anything but HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def freeze_params(params: Any) -> CaseInsensitiveDict:
    if isinstance(params, CaseInsensitiveDict) and params.frozen:
        return params
    return CaseInsensitiveDict(params or {}).freeze()


def parse_query(query: str) -> CaseInsensitiveDict:
    """
    Parse a query string into a (mutable) parameter dict.

    Blank values are kept ("?flag=" → {"flag": ""}); when a key repeats,
    the last value wins.
    """
    params: CaseInsensitiveDict = CaseInsensitiveDict()
    for key, value in parse_qsl(query, keep_blank_values=True):
        params[key] = value
    return params


@dataclass(frozen=True)
class HTTPRequest(HTTPMessage):
    """
    An immutable HTTP request.

    Attributes:
        method:   HTTPMethod (a name string is parsed on construction)
        uri:      request target as sent, e.g. "/echo/hi?lang=en"
        body:     single-consumption ByteSource
        length:   declared body length, None when unknown (defaults to the
                  body source's own length)
        headers:  frozen case-insensitive multidict
        remote:   (host, port) of the peer, None for in-process transports
        params:   frozen case-insensitive dict: query + route variables
        protocol: "HTTP/1.1" or "HTTP/1.0"

    Build variations with copy() or the with_* shortcuts.
    """

    method: HTTPMethod
    uri: str
    body: ByteSource = field(default_factory=empty_body, compare=False)
    length: Optional[int] = UNSET
    headers: CaseInsensitiveMultiDict = field(default_factory=CaseInsensitiveMultiDict, hash=False)
    remote: Optional[Address] = None
    params: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict, hash=False)
    protocol: str = DEFAULT_PROTOCOL

    def __post_init__(self):
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "method", HTTPMethod.parse(self.method))
        object.__setattr__(self, "body", as_source(self.body))
        if self.length is UNSET:
            object.__setattr__(self, "length", self.body.length)
        object.__setattr__(self, "headers", freeze_headers(self.headers))
        object.__setattr__(self, "params", freeze_params(self.params))

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @classmethod
    def create(cls, method: Union[HTTPMethod, str], url: str) -> "HTTPRequest":
        """A request with an empty body (length 0), no headers, no params."""
        return cls(method=method, uri=url, body=empty_body(), length=0)

    @classmethod
    def get(cls, url: str) -> "HTTPRequest":
        return cls.create(HTTPMethod.GET, url)

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    @property
    def path(self) -> str:
        """Percent-decoded path of the URI (what the router matches on)."""
        return unquote(urlsplit(self.uri).path) or "/"

    @property
    def raw_path(self) -> str:
        """Path exactly as it appears in the URI."""
        return urlsplit(self.uri).path or "/"

    @property
    def query(self) -> str:
        """Raw query string, without the '?'."""
        return urlsplit(self.uri).query

    @property
    def remote_host(self) -> Optional[str]:
        return self.remote[0] if self.remote else None

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection may be reused after this request.

            HTTP/1.1: yes, unless "Connection: close"
            HTTP/1.0: no, unless "Connection: keep-alive"
        """
        connection = (self.headers.get("connection") or "").lower()
        if self.protocol == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Parameter value (case-insensitive), or `default`."""
        return self.params.get(name, default)

    # =========================================================================
    # COPY-ON-WRITE
    # =========================================================================

    def copy(self) -> "RequestBuilder":
        """A builder seeded with every field of this request."""
        return RequestBuilder(self)

    def with_param(self, key: str, value: str) -> "HTTPRequest":
        return self.copy().param(key, value).build()

    def with_params(self, params: Mapping[str, str]) -> "HTTPRequest":
        """New request with `params` merged over the existing ones."""
        if not params:
            return self
        return self.copy().params(params).build()

    def with_header(self, name: str, value: str) -> "HTTPRequest":
        return self.copy().header(name, value).build()

    def with_body(self, body: BodyLike, length: Optional[int] = UNSET) -> "HTTPRequest":
        return self.copy().body(body, length).build()


class RequestBuilder:
    """
    Fluent builder for HTTPRequest.

    Seeded from an existing request, the builder keeps that request's
    frozen containers and only copies one the first time it is modified:

        request.copy().param("id", "7").build()
            → new params container, SAME headers container
    """

    def __init__(self, request: Optional[HTTPRequest] = None):
        if request is None:
            request = HTTPRequest.create(HTTPMethod.GET, "/")
        self._method = request.method
        self._uri = request.uri
        self._body = request.body
        self._length = request.length
        self._headers = request.headers
        self._remote = request.remote
        self._params = request.params
        self._protocol = request.protocol
        self._headers_owned = False
        self._params_owned = False

    def _own_headers(self) -> CaseInsensitiveMultiDict:
        if not self._headers_owned:
            self._headers = self._headers.copy()
            self._headers_owned = True
        return self._headers

    def _own_params(self) -> CaseInsensitiveDict:
        if not self._params_owned:
            self._params = self._params.copy()
            self._params_owned = True
        return self._params

    def method(self, method: Union[HTTPMethod, str]) -> "RequestBuilder":
        self._method = HTTPMethod.parse(method)
        return self

    def uri(self, uri: str) -> "RequestBuilder":
        self._uri = uri
        return self

    def body(self, body: BodyLike, length: Optional[int] = UNSET) -> "RequestBuilder":
        """
        Replace the body. Without an explicit length, the source's own
        declared length is used (len(data) for bytes and str).
        """
        source = as_source(body)
        self._body = source
        self._length = source.length if length is UNSET else length
        return self

    def header(self, name: str, value: str) -> "RequestBuilder":
        """Append a header value (existing values under `name` are kept)."""
        self._own_headers().add(name, value)
        return self

    def set_header(self, name: str, value: str) -> "RequestBuilder":
        """Replace every value under `name` with `value`."""
        self._own_headers()[name] = value
        return self

    def remove_header(self, name: str) -> "RequestBuilder":
        self._own_headers().removeall(name)
        return self

    def headers(
        self, headers: Union[CaseInsensitiveMultiDict, Mapping[str, Any], Iterable[Tuple[str, str]]]
    ) -> "RequestBuilder":
        """Replace all headers."""
        self._headers = CaseInsensitiveMultiDict(headers)
        self._headers_owned = True
        return self

    def param(self, key: str, value: str) -> "RequestBuilder":
        self._own_params()[key] = value
        return self

    def params(self, params: Mapping[str, str]) -> "RequestBuilder":
        """Merge `params` over the current ones (incoming values win)."""
        current = self._own_params()
        for key, value in params.items():
            current[key] = value
        return self

    def remote(self, remote: Optional[Address]) -> "RequestBuilder":
        self._remote = remote
        return self

    def protocol(self, protocol: str) -> "RequestBuilder":
        self._protocol = protocol
        return self

    def build(self) -> HTTPRequest:
        # Containers handed to a request are frozen; the next builder call
        # that modifies one starts from a fresh copy.
        self._headers.freeze()
        self._params.freeze()
        self._headers_owned = False
        self._params_owned = False
        return HTTPRequest(
            method=self._method,
            uri=self._uri,
            body=self._body,
            length=self._length,
            headers=self._headers,
            remote=self._remote,
            params=self._params,
            protocol=self._protocol,
        )


class RequestParser:
    """
    Parses raw HTTP/1.x request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER PIPELINE
    ==========================================================================

        raw bytes
            │
            ├─ 1. size check ............... > max_request_size → 413
            ├─ 2. split at \\r\\n\\r\\n ........ no terminator → 400
            ├─ 3. request line ............. malformed → 400
            │                                unknown method → 405
            │                                bad version → 505
            ├─ 4. headers .................. multidict, repeats kept
            ├─ 5. body framing ............. chunked → 411
            │                                bad Content-Length → 400
            │                                short body → 400
            └─ 6. HTTPRequest(..., params=parsed query)

    The parser only understands Content-Length framing. Chunked request
    bodies are refused outright (411 Length Required) instead of being
    misread as an empty body.
    ==========================================================================
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Za-z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s][^:]*):\s*(.*)$")

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Optional[Address] = None) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: the request bytes (headers + Content-Length body).
            client_address: (host, port) of the peer, stored as `remote`.

        Raises:
            HTTPParseError: carrying the status code to answer with.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        lines = header_section.split("\r\n")

        method, uri, version = self._parse_request_line(lines[0])
        try:
            params = parse_query(urlsplit(uri).query)
        except ValueError as e:
            raise HTTPParseError(f"Invalid request target: {uri!r}") from e
        headers = self._parse_headers(lines[1:])
        length = self._body_length(headers)

        body = data[header_end + 4:header_end + 4 + length]
        if len(body) < length:
            raise HTTPParseError(f"Incomplete body: expected {length} bytes, got {len(body)}")

        return HTTPRequest(
            method=method,
            uri=uri,
            body=BytesSource(body),
            length=length,
            headers=headers,
            remote=client_address,
            params=params,
            protocol=version,
        )

    def _parse_request_line(self, line: str) -> Tuple[HTTPMethod, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        name, uri, version = match.groups()
        try:
            method = HTTPMethod.parse(name)
        except UnknownMethodError as e:
            raise HTTPParseError(str(e), status_code=405) from e

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        return method, uri, version

    def _parse_headers(self, lines: Iterable[str]) -> CaseInsensitiveMultiDict:
        """
        Parse header lines into a multidict.

        Repeated headers stay separate entries. Obsolete line folding
        (continuation lines starting with whitespace) is joined onto the
        previous value.
        """
        headers: CaseInsensitiveMultiDict = CaseInsensitiveMultiDict()
        last: Optional[Tuple[str, str]] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if last is None:
                    raise HTTPParseError("Continuation line before first header")
                name, value = last
                folded = f"{value} {line.strip()}"
                headers.remove(name, value)
                headers.add(name, folded)
                last = (name, folded)
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.group(1).strip(), match.group(2).strip()
            headers.add(name, value)
            last = (name, value)

        return headers

    def _body_length(self, headers: CaseInsensitiveMultiDict) -> int:
        transfer_encoding = ",".join(headers.getall("transfer-encoding")).lower()
        if "chunked" in transfer_encoding:
            raise HTTPParseError("Chunked request bodies are not supported", status_code=411)

        values = set(headers.getall("content-length"))
        if not values:
            return 0
        if len(values) > 1:
            raise HTTPParseError("Conflicting Content-Length headers")
        try:
            length = int(values.pop())
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header") from None
        if length < 0:
            raise HTTPParseError("Negative Content-Length header")
        if length > self.max_request_size:
            raise HTTPParseError(f"Request body too large: {length} bytes", status_code=413)
        return length


def parse_request(
    data: bytes,
    client_address: Optional[Address] = None,
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
