"""
=============================================================================
MIDDLEWARE MODULE
=============================================================================

Handlers that wrap other handlers.

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │ AccessLogMiddleware  │ one Common Log Format line per request      │
    │ GzipMiddleware       │ gzip response bodies                         │
    │ FunctionMiddleware   │ turn a plain function into middleware        │
    │ MiddlewarePipeline   │ stack several middleware around a handler    │
    └──────────────────────┴──────────────────────────────────────────────┘

Two ways to apply them:

    # class style
    handler = MiddlewarePipeline().use(AccessLogMiddleware(), GzipMiddleware()).wrap(router)

    # functional style
    handler = access_log(gzip(router))
    handler = common(router)              # same thing

=============================================================================
"""

from .base import FunctionMiddleware, Middleware, MiddlewarePipeline, NextHandler, function_middleware
from .compression import GzipMiddleware, gzip
from .logging import ACCESS_LOGGER_NAME, AccessLogMiddleware, AccessRecord, access_log
from ..http.router import Handler


def common(handler: Handler) -> Handler:
    """The usual stack: access log outside, gzip inside."""
    return access_log(gzip(handler))


__all__ = [
    # Contract
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",

    # Built-in middleware
    "AccessLogMiddleware",
    "AccessRecord",
    "ACCESS_LOGGER_NAME",
    "GzipMiddleware",

    # Functional forms
    "access_log",
    "gzip",
    "common",
]
