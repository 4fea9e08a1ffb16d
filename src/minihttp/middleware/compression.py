"""
=============================================================================
GZIP MIDDLEWARE
=============================================================================

Compresses response bodies with gzip.

    Client                                   Server
      │  GET /report                            │
      │  Accept-Encoding: gzip, deflate ───────►│
      │                                         │  handler → 40 KB JSON
      │                                         │  gzip    →  6 KB
      │◄─────── 200 OK                          │
      │         Content-Encoding: gzip          │
      │         Content-Length: 6144            │
      │         Vary: Accept-Encoding           │

=============================================================================
WHEN A RESPONSE IS COMPRESSED
=============================================================================

    1. the client sent "Accept-Encoding: gzip"     (skipped when always=True)
    2. the status allows a body                    (not 1xx / 204 / 304)
    3. no Content-Encoding is set yet
    4. the content type is text-like               (skipped when always=True)
    5. the body is at least min_size bytes
    6. the gzipped bytes are actually smaller      (skipped when always=True)

Bodies are single-consumption: once this middleware has read a body it
ALWAYS returns a response carrying those bytes again (compressed or not),
never the drained original.

always=True compresses unconditionally, whatever the client announced.

=============================================================================
"""

from gzip import compress as gzip_compress
from typing import Optional, Set

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, body_allowed
from ..http.router import Handler


def _quality(params: str) -> float:
    """The q value of one Accept-Encoding entry; 1.0 when absent, 0 when unreadable."""
    for param in params.split(";"):
        key, _, value = param.strip().partition("=")
        if key.strip() == "q":
            try:
                return float(value.strip())
            except ValueError:
                return 0.0
    return 1.0


class GzipMiddleware(Middleware):
    """
    Args:
        min_size: smallest body (bytes) worth compressing.
        level: gzip level, 1 (fast) to 9 (small).
        always: compress every response with a body, ignoring
            Accept-Encoding, content type and size.
        compressible_types: media types considered text-like.
    """

    COMPRESSIBLE_TYPES: Set[str] = {
        "text/html",
        "text/css",
        "text/plain",
        "text/xml",
        "text/javascript",
        "application/json",
        "application/javascript",
        "application/xml",
        "application/xhtml+xml",
        "image/svg+xml",
    }

    def __init__(
        self,
        min_size: int = 1024,
        level: int = 6,
        always: bool = False,
        compressible_types: Optional[Set[str]] = None,
    ):
        if not 1 <= level <= 9:
            raise ValueError(f"gzip level must be between 1 and 9, got {level}")
        self.min_size = min_size
        self.level = level
        self.always = always
        self.compressible_types = compressible_types or self.COMPRESSIBLE_TYPES

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)

        if not self.always and not self._accepts_gzip(request):
            return response
        if not self._eligible(response):
            return response

        data = response.body.read_all()
        compressed = gzip_compress(data, compresslevel=self.level)

        if not self.always and (len(data) < self.min_size or len(compressed) >= len(data)):
            # The body was drained: hand the original bytes back
            return response.copy().body(data).build()

        builder = response.copy().set_header("Content-Encoding", "gzip").body(compressed)
        vary = ",".join(response.headers.getall("vary")).lower()
        if "accept-encoding" not in vary and "*" not in vary:
            builder.header("Vary", "Accept-Encoding")
        return builder.build()

    @staticmethod
    def _accepts_gzip(request: HTTPRequest) -> bool:
        accept = ",".join(request.headers.getall("accept-encoding")).lower()
        for coding in accept.split(","):
            name, _, params = coding.strip().partition(";")
            if name.strip() in ("gzip", "*") and _quality(params) > 0:
                return True
        return False

    def _eligible(self, response: HTTPResponse) -> bool:
        """Checks that do not need to read the body."""
        if not body_allowed(response.status):
            return False
        if "content-encoding" in response.headers:
            return False
        if self.always:
            return True
        if response.length is not None and response.length < self.min_size:
            return False
        return (response.content_type or "") in self.compressible_types


def gzip(handler: Handler, **options) -> Handler:
    """`handler` wrapped in a GzipMiddleware."""
    return GzipMiddleware(**options).wrap(handler)
