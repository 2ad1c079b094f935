"""Method matchers.

``GET``, ``POST`` and friends are ready-made exact matchers. Combine them
with ``|`` to match a set, or use ``AnyMethod("method")`` to accept every
method and bind the one that arrived::

    GET >> Root / "users"                  # exact
    (GET | HEAD) >> Root / "status"        # set membership
    AnyMethod("verb") >> Root / "echo"     # wildcard, binds verb="PATCH" etc.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from perch._internal.types import Bindings
from perch.errors import ConfigurationError

if TYPE_CHECKING:
    from perch.routing.path import PathPattern
    from perch.routing.pattern import RoutePattern

# RFC 9110 token characters
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def normalize_method(method: str) -> str:
    """Upper-case *method*, rejecting anything that is not an HTTP token."""
    if not _TOKEN_RE.match(method):
        msg = f"Invalid HTTP method {method!r}"
        raise ConfigurationError(msg)
    return method.upper()


class MethodMatcher(ABC):
    """Matches the request method; may contribute a binding."""

    __slots__ = ()

    @abstractmethod
    def try_match(self, method: str) -> Bindings | None: ...

    @abstractmethod
    def describe(self) -> str: ...

    @property
    def names(self) -> tuple[str, ...]:
        """Binding names this matcher can produce."""
        return ()

    def __str__(self) -> str:
        return self.describe()

    def __or__(self, other: MethodMatcher | str) -> AnyOf:
        return AnyOf(*_methods_of(self), *_methods_of(as_method_matcher(other)))

    def __rshift__(self, path: PathPattern | str) -> RoutePattern:
        from perch.routing.pattern import RoutePattern

        return RoutePattern(self, path)


def _methods_of(matcher: MethodMatcher) -> frozenset[str]:
    if isinstance(matcher, Method):
        return frozenset({matcher.name})
    if isinstance(matcher, AnyOf):
        return matcher.methods
    msg = f"Cannot combine {matcher!r} into a method set"
    raise ConfigurationError(msg)


@dataclass(frozen=True, slots=True)
class Method(MethodMatcher):
    """Matches exactly one method."""

    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_method(self.name))

    def try_match(self, method: str) -> Bindings | None:
        return {} if method.upper() == self.name else None

    def describe(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True, init=False)
class AnyOf(MethodMatcher):
    """Matches any method in a fixed set."""

    methods: frozenset[str]

    def __init__(self, *methods: str | Method) -> None:
        names = frozenset(
            m.name if isinstance(m, Method) else normalize_method(m) for m in methods
        )
        if not names:
            msg = "AnyOf() needs at least one method"
            raise ConfigurationError(msg)
        object.__setattr__(self, "methods", names)

    def try_match(self, method: str) -> Bindings | None:
        return {} if method.upper() in self.methods else None

    def describe(self) -> str:
        return "|".join(sorted(self.methods))


@dataclass(frozen=True, slots=True)
class AnyMethod(MethodMatcher):
    """Matches every method and binds it under ``name``."""

    name: str = "method"

    def try_match(self, method: str) -> Bindings | None:
        return {self.name: method.upper()}

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name,)

    def describe(self) -> str:
        return "*"


def as_method_matcher(value: MethodMatcher | str | list[str] | tuple[str, ...]) -> MethodMatcher:
    """Accept the shorthand forms used by ``HttpService.route``.

    ``"GET"`` -> ``Method``, ``"*"`` -> ``AnyMethod()``,
    ``["GET", "HEAD"]`` -> ``AnyOf``.
    """
    if isinstance(value, MethodMatcher):
        return value
    if isinstance(value, str):
        return AnyMethod() if value == "*" else Method(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return AnyOf(*value)
    msg = f"Expected a method matcher, got {value!r}"
    raise ConfigurationError(msg)


GET = Method("GET")
HEAD = Method("HEAD")
POST = Method("POST")
PUT = Method("PUT")
PATCH = Method("PATCH")
DELETE = Method("DELETE")
OPTIONS = Method("OPTIONS")
