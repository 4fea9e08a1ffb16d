"""
=============================================================================
ROUTER
=============================================================================

Dispatches a request to the handler registered for its method and path.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   GET /echo/hello                                                   │
    │        │                                                            │
    │        ▼                                                            │
    │   routes[GET]  (registration order)                                 │
    │   ┌───────────────────────────────────────────────────────────┐     │
    │   │ /ping            → pong          no                       │     │
    │   │ /echo/{message}  → echo          MATCH  {message: hello}  │     │
    │   │ /echo/{other}    → never reached (first match wins)       │     │
    │   └───────────────────────────────────────────────────────────┘     │
    │        │                                                            │
    │        ▼                                                            │
    │   echo(request.with_params({"message": "hello"}))                   │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Path variables are merged into the request's params AFTER the query
string was parsed, so on a name clash the path variable wins.

=============================================================================
NO MATCH: 404 OR 405?
=============================================================================

When nothing under the request's method matches, every OTHER method's
routes are scanned too:

    POST /ping    GET /ping exists        → invalid-method handler (405)
    GET /nowhere  no template matches     → fallback handler (404)

=============================================================================
FIRST MATCH WINS
=============================================================================

There is no "most specific route" logic. With

    GET /items/{id}
    GET /items/new

a request for /items/new goes to the FIRST route. Register overlapping
templates in the order you want them tried.

=============================================================================
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import logging

from .methods import HTTPMethod
from .request import HTTPRequest
from .response import HTTPResponse
from .uri_template import UriTemplate


logger = logging.getLogger(__name__)


# A handler turns a request into a response. Routers, middleware-wrapped
# handlers and clients are all handlers.
Handler = Callable[[HTTPRequest], HTTPResponse]

MethodLike = Union[HTTPMethod, str]


@dataclass(frozen=True)
class Route:
    """One registration: method + template + handler."""

    method: HTTPMethod
    template: UriTemplate
    handler: Handler = field(compare=False)

    def __str__(self) -> str:
        return f"{self.method.value} {self.template}"


@dataclass(frozen=True)
class RouteMatch:
    """A route together with the variables its template captured."""

    route: Route
    params: Dict[str, str]


class Router:
    """
    Immutable method-aware router. Build one with Router.builder().

    A Router is itself a handler:

        router = (Router.builder()
            .get("/ping", pong())
            .get("/echo/{message}", echo)
            .build())

        response = router(HTTPRequest.get("/echo/hi"))

    It holds no per-request state, so one instance can serve every worker
    thread at once.
    """

    def __init__(
        self,
        routes: Mapping[HTTPMethod, Sequence[Route]],
        fallback_handler: Handler,
        invalid_method_handler: Handler,
    ):
        self._routes: Mapping[HTTPMethod, Tuple[Route, ...]] = MappingProxyType(
            {method: tuple(entries) for method, entries in routes.items()}
        )
        self._fallback = fallback_handler
        self._invalid_method = invalid_method_handler

    @staticmethod
    def builder() -> "RouterBuilder":
        return RouterBuilder()

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route `request` and return the chosen handler's response unchanged.

        Exceptions raised by handlers propagate to the caller.
        """
        path = request.path
        found = self.match(request.method, path)

        if found is not None:
            logger.debug(f"{request.method.value} {path} -> {found.route.template}")
            return found.route.handler(request.with_params(found.params))

        if self._matches_any_method(path):
            logger.debug(f"{request.method.value} {path} -> invalid method")
            return self._invalid_method(request)

        logger.debug(f"{request.method.value} {path} -> no route")
        return self._fallback(request)

    __call__ = handle

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def match(self, method: MethodLike, path: str) -> Optional[RouteMatch]:
        """First route registered for `method` whose template matches `path`."""
        for route in self._routes.get(HTTPMethod.parse(method), ()):
            if route.template.matches(path):
                return RouteMatch(route=route, params=route.template.match(path))
        return None

    def allowed_methods(self, path: str) -> List[HTTPMethod]:
        """Methods having at least one template that matches `path`."""
        return [
            method
            for method, entries in self._routes.items()
            if any(route.template.matches(path) for route in entries)
        ]

    def routes(self) -> List[Route]:
        """Every route, grouped by method, in registration order."""
        return [route for entries in self._routes.values() for route in entries]

    def _matches_any_method(self, path: str) -> bool:
        return any(
            route.template.matches(path)
            for entries in self._routes.values()
            for route in entries
        )

    def __repr__(self) -> str:
        return f"Router({[str(route) for route in self.routes()]})"


class RouterBuilder:
    """
    Collects routes, then freezes them into a Router.

    Every registration method works two ways:

        builder.get("/ping", pong_handler)        # fluent, returns builder

        @builder.get("/echo/{message}")           # decorator, returns the
        def echo(request):                        # function unchanged
            return ok(request.param("message"))

    Templates are compiled at registration, so a malformed template fails
    while the router is being assembled, never during dispatch.
    """

    def __init__(self):
        self._routes: Dict[HTTPMethod, List[Route]] = {}
        self._fallback: Optional[Handler] = None
        self._invalid_method: Optional[Handler] = None

    def handler(self, method: MethodLike, template: str, handler: Optional[Handler] = None):
        """Register `handler` for `method` + `template`."""
        if handler is None:
            def decorator(func: Handler) -> Handler:
                self.handler(method, template, func)
                return func
            return decorator

        if not callable(handler):
            raise TypeError(f"handler for {template!r} is not callable: {handler!r}")

        route = Route(HTTPMethod.parse(method), UriTemplate.parse(template), handler)
        self._routes.setdefault(route.method, []).append(route)
        logger.debug(f"Registered route {route}")
        return self

    def route(self, methods: Union[MethodLike, Iterable[MethodLike]], template: str,
              handler: Optional[Handler] = None):
        """Register one handler under several methods at once."""
        if isinstance(methods, (str, HTTPMethod)):
            methods = [methods]
        methods = list(methods)

        if handler is None:
            def decorator(func: Handler) -> Handler:
                self.route(methods, template, func)
                return func
            return decorator

        for method in methods:
            self.handler(method, template, handler)
        return self

    def get(self, template: str, handler: Optional[Handler] = None):
        return self.handler(HTTPMethod.GET, template, handler)

    def post(self, template: str, handler: Optional[Handler] = None):
        return self.handler(HTTPMethod.POST, template, handler)

    def put(self, template: str, handler: Optional[Handler] = None):
        return self.handler(HTTPMethod.PUT, template, handler)

    def delete(self, template: str, handler: Optional[Handler] = None):
        return self.handler(HTTPMethod.DELETE, template, handler)

    def head(self, template: str, handler: Optional[Handler] = None):
        return self.handler(HTTPMethod.HEAD, template, handler)

    def update(self, template: str, handler: Optional[Handler] = None):
        return self.handler(HTTPMethod.UPDATE, template, handler)

    def fallback_handler(self, handler: Handler) -> "RouterBuilder":
        """Handler for paths no route matches under any method (default 404)."""
        self._fallback = handler
        return self

    def invalid_method_handler(self, handler: Handler) -> "RouterBuilder":
        """Handler for paths that only match under other methods (default 405)."""
        self._invalid_method = handler
        return self

    def build(self) -> Router:
        # Deferred: the common handlers module builds responses from this package
        from ..handlers import invalid_method, not_found

        return Router(
            self._routes,
            self._fallback or not_found(),
            self._invalid_method or invalid_method(),
        )
