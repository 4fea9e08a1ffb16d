"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per request on the "minihttp.access" logger.

=============================================================================
COMMON LOG FORMAT
=============================================================================

    127.0.0.1 - - [19/Oct/2026:14:03:27 +0000] "GET /echo/hi HTTP/1.1" 200 2
    ────┬──── ─ ─ ──────────────┬────────────── ────────┬───────────── ─┬─ ┬
        │     │ │               │                       │               │  │
     remote   │ user        request start           request line    status │
              ident                                                  length

Fields that are unknown print as "-": the remote address on in-memory
transports, the length of a streamed (chunked) response.

With log_format="json" the same fields are emitted as one JSON object,
plus the handler duration.

=============================================================================
CONFIGURING THE OUTPUT
=============================================================================

The library never attaches logging handlers. Route access lines wherever
you like:

    access = logging.getLogger("minihttp.access")
    access.addHandler(logging.FileHandler("access.log"))
    access.propagate = False

=============================================================================
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable, Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.router import Handler


ACCESS_LOGGER_NAME = "minihttp.access"

logger = logging.getLogger(ACCESS_LOGGER_NAME)

COMMON_LOG_DATE_FORMAT = "%d/%b/%Y:%H:%M:%S %z"


@dataclass
class AccessRecord:
    """The fields of one access log line."""

    remote: str
    timestamp: str
    method: str
    uri: str
    protocol: str
    status: int
    length: Optional[int]
    duration_ms: float
    request_id: Optional[str] = None

    def to_common(self) -> str:
        length = "-" if self.length is None else self.length
        return (
            f'{self.remote} - - [{self.timestamp}] '
            f'"{self.method} {self.uri} {self.protocol}" {self.status} {length}'
        )

    def to_json(self) -> str:
        record = asdict(self)
        record["duration_ms"] = round(self.duration_ms, 2)
        if record["request_id"] is None:
            del record["request_id"]
        return json.dumps(record)


def common_log_timestamp(moment: Optional[datetime] = None) -> str:
    """Local time in Common Log Format, e.g. 19/Oct/2026:14:03:27 +0200."""
    moment = moment or datetime.now().astimezone()
    return moment.strftime(COMMON_LOG_DATE_FORMAT)


class AccessLogMiddleware(Middleware):
    """
    Logs every request/response pair.

    Args:
        log_format: "common" (Common Log Format) or "json".
        log_level: level of the access lines (INFO by default).
        skip_paths: request paths that are not logged (e.g. ["/ping"]).
        include_request_id: tag the response with a short X-Request-ID
            and include it in the log record.

    A handler failure is logged at ERROR and re-raised untouched.
    """

    FORMATS = ("common", "json")

    def __init__(
        self,
        log_format: str = "common",
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
        include_request_id: bool = False,
    ):
        if log_format not in self.FORMATS:
            raise ValueError(f"log_format must be one of {self.FORMATS}, got {log_format!r}")
        self.log_format = log_format
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())
        self.include_request_id = include_request_id

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8] if self.include_request_id else None
        timestamp = common_log_timestamp()
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"Request failed: {request.method.value} {request.uri} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000

        if request_id is not None:
            response = response.copy().set_header("X-Request-ID", request_id).build()

        if request.path in self.skip_paths:
            return response

        record = AccessRecord(
            remote=request.remote_host or "-",
            timestamp=timestamp,
            method=request.method.value,
            uri=request.uri,
            protocol=request.protocol,
            status=response.status,
            length=response.length,
            duration_ms=duration_ms,
            request_id=request_id,
        )
        if self.log_format == "json":
            logger.log(self.log_level, record.to_json())
        else:
            logger.log(self.log_level, record.to_common())

        return response


def access_log(handler: Handler, **options) -> Handler:
    """`handler` wrapped in an AccessLogMiddleware."""
    return AccessLogMiddleware(**options).wrap(handler)
