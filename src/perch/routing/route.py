"""Route and RouteMatch frozen dataclasses."""

from dataclasses import dataclass

from perch._internal.types import Bindings, Handler
from perch.routing.pattern import RoutePattern


@dataclass(frozen=True, slots=True)
class Route:
    """A pattern paired with the handler it dispatches to.

    Created by ``HttpService.route``/``add``; evaluated in declaration order.
    """

    pattern: RoutePattern
    handler: Handler
    name: str | None = None

    @property
    def handler_name(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful match: the route and the values it bound."""

    route: Route
    bindings: Bindings
