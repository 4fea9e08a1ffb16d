"""
=============================================================================
MIDDLEWARE CONTRACT
=============================================================================

Middleware wraps a handler to observe or transform what passes through it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   request ──► AccessLog ──► Gzip ──► Router ──► handler             │
    │                  │            │                    │                │
    │   response ◄─────┘ log line ◄─┘ compress ◄─────────┘                │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Each middleware receives the request plus `next`, the rest of the chain:

    class Timing(Middleware):
        def __call__(self, request, next):
            started = time.perf_counter()
            response = next(request)
            elapsed = time.perf_counter() - started
            return response.with_header("X-Elapsed", f"{elapsed:.3f}")

Rules of the road:

1. Messages are immutable. Return a NEW response (response.with_header,
   response.copy()...), never try to change the one you got.
2. A body can be read only once. Middleware that reads a body must put
   the bytes it read (or a replacement) into the response it returns.
3. Not calling next() short-circuits the chain.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.router import Handler


logger = logging.getLogger(__name__)


# The rest of the chain, as seen from inside a middleware
NextHandler = Handler


class Middleware(ABC):
    """Base class for middleware: implement __call__(request, next)."""

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle `request`, normally by delegating to next(request)."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def wrap(self, handler: Handler) -> Handler:
        """This middleware in front of `handler`, as a plain handler."""
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return self(request, handler)
        wrapped.__name__ = f"{self.name}({getattr(handler, '__name__', 'handler')})"
        return wrapped


class MiddlewarePipeline:
    """
    An ordered stack of middleware.

        pipeline = MiddlewarePipeline().use(AccessLogMiddleware(), GzipMiddleware())
        handler = pipeline.wrap(router)

    The first middleware added is the OUTERMOST: it sees the request first
    and the response last. Wrapping is done in reverse order to get there:

        [A, B, C] + handler  →  A(B(C(handler)))
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: Handler) -> Handler:
        current = handler
        for middleware in reversed(self._middleware):
            current = middleware.wrap(current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """
    A plain function used as middleware.

        def add_version(request, next):
            return next(request).with_header("X-Version", "1")

        pipeline.add(FunctionMiddleware(add_version))
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None,
    ):
        self._func = func
        self._name = name or getattr(func, "__name__", "FunctionMiddleware")

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: Callable[[HTTPRequest, NextHandler], HTTPResponse]) -> FunctionMiddleware:
    """Decorator form of FunctionMiddleware."""
    return FunctionMiddleware(func)
