"""HTTP services — ordered route tables that turn requests into tasks.

An ``HttpService`` holds pattern/handler pairs in declaration order. Calling
the service with a request returns a ``Task``; nothing is matched and no
handler runs until that task is run. The first pattern that matches wins.
A request that matches nothing is handed to the default handler, which is
configurable and returns a 404 out of the box.

Usage::

    service = HttpService()

    @service.route(GET, Root / "hello" / Var("name"))
    def hello(request, name):
        return f"Hello, {name}."

    @service.route(GET, "/user/{id:int}", OptionalQueryParam("tab"))
    def user(request, id, tab):
        return Task.delay(load_user, id).map(render_user)

    response = service(Request.build("GET", "/hello/world")).run()
"""

import logging
from collections.abc import Callable, Iterator

from perch._internal.invoke import invoke
from perch._internal.types import DefaultHandler, Handler
from perch.errors import ConfigurationError
from perch.http.request import Request
from perch.http.response import AnyResponse, Response
from perch.routing.method import MethodMatcher, as_method_matcher
from perch.routing.path import PathPattern
from perch.routing.pattern import RoutePattern
from perch.routing.query import QueryMatcher
from perch.routing.route import Route, RouteMatch
from perch.task import Task

logger = logging.getLogger("perch.routing")

# Handlers receive the request positionally; a binding may not shadow it.
_RESERVED_NAMES = frozenset({"request"})


def not_found(request: Request) -> Response:
    """The built-in default handler."""
    return Response.not_found(f"No route matches {request.method} {request.path}")


class HttpService:
    """An ordered, first-match-wins route table.

    Mutable during setup. ``freeze()`` (called by ``App`` on the first
    request) makes it read-only so matching can run on many worker threads
    without locks.
    """

    __slots__ = ("_default", "_frozen", "_routes")

    def __init__(self, *, default: DefaultHandler | None = None) -> None:
        self._routes: list[Route] = []
        self._default: DefaultHandler = default or not_found
        self._frozen = False

    # -- Registration --

    def route(
        self,
        method: RoutePattern | MethodMatcher | str | list[str] | tuple[str, ...],
        path: PathPattern | str | None = None,
        *query: QueryMatcher,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a handler via decorator.

        Args:
            method: A ``RoutePattern`` (then *path* must be omitted), a
                method matcher, a method name, ``"*"`` for any method, or
                a list of method names.
            path: A ``PathPattern`` or a ``"/users/{id:int}"`` string.
            *query: Query matchers, evaluated after the path matches.
            name: Optional route name, shown by ``perch routes``.
        """
        pattern = self._build_pattern(method, path, query)

        def decorator(func: Handler) -> Handler:
            self.add(pattern, func, name=name)
            return func

        return decorator

    def add(self, pattern: RoutePattern, handler: Handler, *, name: str | None = None) -> Route:
        """Append a route. Routes are tried in the order they were added."""
        self._check_not_frozen()
        reserved = _RESERVED_NAMES.intersection(pattern.names)
        if reserved:
            msg = f"Binding name {sorted(reserved)[0]!r} is reserved (route {pattern})"
            raise ConfigurationError(msg)
        route = Route(pattern=pattern, handler=handler, name=name)
        self._routes.append(route)
        logger.debug("registered route %s -> %s", pattern, route.handler_name)
        return route

    def fallback(self, handler: DefaultHandler) -> DefaultHandler:
        """Decorator: use *handler* for requests that match no route."""
        self._check_not_frozen()
        self._default = handler
        return handler

    @staticmethod
    def _build_pattern(
        method: RoutePattern | MethodMatcher | str | list[str] | tuple[str, ...],
        path: PathPattern | str | None,
        query: tuple[QueryMatcher, ...],
    ) -> RoutePattern:
        if isinstance(method, RoutePattern):
            if path is not None:
                msg = "Pass either a RoutePattern or a method and path, not both"
                raise ConfigurationError(msg)
            pattern = method
            for matcher in query:
                pattern = pattern & matcher
            return pattern
        if path is None:
            msg = "route() needs a path when given a method"
            raise ConfigurationError(msg)
        return RoutePattern(as_method_matcher(method), path, query)

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot modify the service after it is frozen (first request already served)."
            raise ConfigurationError(msg)

    def freeze(self) -> None:
        """Make the route table read-only. Idempotent."""
        self._frozen = True

    # -- Introspection --

    @property
    def routes(self) -> tuple[Route, ...]:
        """Registered routes, in evaluation order."""
        return tuple(self._routes)

    @property
    def default(self) -> DefaultHandler:
        return self._default

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"<HttpService routes={len(self._routes)}>"

    # -- Matching --

    def match(self, request: Request) -> RouteMatch | None:
        """Return the first route whose pattern matches, with its bindings."""
        for route in self._routes:
            bindings = route.pattern.try_match(request)
            if bindings is not None:
                return RouteMatch(route=route, bindings=bindings)
        return None

    def __call__(self, request: Request) -> Task[AnyResponse]:
        """Describe handling *request*. Matching happens when the task runs."""
        return Task.suspend(lambda: self._dispatch(request))

    def _dispatch(self, request: Request) -> Task[AnyResponse]:
        match = self.match(request)
        if match is None:
            logger.debug("no route matched %s %s; using default handler", request.method, request.path)
            return invoke(self._default, request)
        return invoke(match.route.handler, request, **match.bindings)

    # -- Composition --

    def __or__(self, other: "HttpService") -> "HttpService":
        """Try this service's routes first, then *other*'s.

        The combined service falls back to *other*'s default handler.
        """
        if not isinstance(other, HttpService):
            return NotImplemented
        combined = HttpService(default=other._default)
        combined._routes = [*self._routes, *other._routes]
        return combined

    def mount(self, other: "HttpService") -> None:
        """Append all of *other*'s routes to this service, in order."""
        for route in other.routes:
            self.add(route.pattern, route.handler, name=route.name)

