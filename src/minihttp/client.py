"""
=============================================================================
URLLIB CLIENT
=============================================================================

A handler that answers requests by sending them over the network.

    client = UrllibClient()
    response = client(HTTPRequest.get(f"{server.url}/ping"))
    response.status      # 200
    response.text()      # "pong"

Because the client is itself a handler, code written against handlers
runs unchanged against the in-memory transport or a real server.

    ┌─────────────────────────┬────────────────────────────────────────┐
    │ request.method          │ urllib Request(method=...)             │
    │ request.headers         │ one header per name, values joined ", "│
    │ request body            │ sent only when length is not 0         │
    │ 4xx / 5xx               │ returned as responses, never raised    │
    │ response body           │ read fully, exact length               │
    └─────────────────────────┴────────────────────────────────────────┘

Connection failures (refused, DNS, timeout) still raise urllib.error.URLError.

=============================================================================
"""

from typing import Optional
from urllib.error import HTTPError
from urllib.request import Request, urlopen
import logging

from .http.containers import CaseInsensitiveMultiDict
from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger(__name__)


class UrllibClient:
    """
    Args:
        timeout: seconds to wait for the server; None uses the socket default.
    """

    def __init__(self, timeout: Optional[float] = 30.0):
        self.timeout = timeout

    def _to_urllib(self, request: HTTPRequest) -> Request:
        data = None
        if request.length != 0:
            data = request.read_body()

        outgoing = Request(request.uri, data=data, method=str(request.method))
        for name in request.headers:
            outgoing.add_header(name.title(), ", ".join(request.headers.getall(name)))
        return outgoing

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        outgoing = self._to_urllib(request)
        logger.debug(f"{outgoing.get_method()} {outgoing.full_url}")

        try:
            with urlopen(outgoing, timeout=self.timeout) as reply:
                status = reply.status
                headers = CaseInsensitiveMultiDict(reply.headers.items())
                body = reply.read()
        except HTTPError as e:
            status = e.code
            headers = CaseInsensitiveMultiDict(e.headers.items() if e.headers else ())
            body = e.read()
            e.close()

        return HTTPResponse(status=status, body=body, length=len(body), headers=headers)

    __call__ = handle
