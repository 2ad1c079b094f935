"""Route patterns — method, path and query matchers combined.

Every matcher in perch exposes one operation, ``try_match(input)``,
returning a dict of bindings on success or ``None`` on a non-match. A
``RoutePattern`` runs its matchers in a fixed order (method, then path,
then each query matcher) and merges their bindings.

``>>`` joins a method matcher to a path and ``&`` appends query
matchers::

    pattern = GET >> Root / "user" / IntVar("id") & OptionalQueryParam("tab")
    pattern.try_match(Request.build("GET", "/user/12?tab=posts"))
    # {'id': 12, 'tab': 'posts'}
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol, TypeVar

from perch._internal.types import Bindings
from perch.errors import ConfigurationError
from perch.http.request import Request
from perch.routing.method import MethodMatcher, as_method_matcher
from perch.routing.path import PathPattern, parse_path
from perch.routing.query import QueryMatcher

In_contra = TypeVar("In_contra", contravariant=True)


class Matcher(Protocol[In_contra]):
    """Anything that can try to match an input and produce bindings."""

    def try_match(self, value: In_contra, /) -> Bindings | None: ...


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A method matcher, a path pattern and zero or more query matchers.

    Binding names must be unique across all three parts.
    """

    method: MethodMatcher
    path: PathPattern
    query: tuple[QueryMatcher, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.method, MethodMatcher):
            object.__setattr__(self, "method", as_method_matcher(self.method))
        if isinstance(self.path, str):
            object.__setattr__(self, "path", parse_path(self.path))
        object.__setattr__(self, "query", tuple(self.query))

        seen: set[str] = set()
        for name in self.names:
            if name in seen:
                msg = f"Duplicate binding name {name!r} in route pattern {self}"
                raise ConfigurationError(msg)
            seen.add(name)

    @property
    def names(self) -> tuple[str, ...]:
        return (
            *self.method.names,
            *self.path.names,
            *(name for matcher in self.query for name in matcher.names),
        )

    def __and__(self, matcher: QueryMatcher) -> RoutePattern:
        if not isinstance(matcher, QueryMatcher):
            return NotImplemented
        return replace(self, query=(*self.query, matcher))

    def try_match(self, request: Request) -> Bindings | None:
        """Match *request*; query matchers run only if method and path match."""
        bindings = self.method.try_match(request.method)
        if bindings is None:
            return None

        path_bindings = self.path.try_match(request.segments)
        if path_bindings is None:
            return None
        bindings.update(path_bindings)

        for matcher in self.query:
            bound = matcher.try_match(request.query)
            if bound is None:
                return None
            bindings.update(bound)
        return bindings

    def describe(self) -> str:
        text = f"{self.method.describe()} {self.path.describe()}"
        if self.query:
            text += " ?" + "&".join(matcher.describe() for matcher in self.query)
        return text

    def __str__(self) -> str:
        return self.describe()
