"""Path patterns and segment binders.

A path pattern is anchored at ``Root`` and built left to right with ``/``::

    Root / "user" / IntVar("id")            # exactly two segments
    Root / "static" / Rest("file")          # one or more... or just "static"

Without ``Rest`` the pattern has a fixed arity: the request path must have
exactly as many segments. With ``Rest`` as the final element the pattern
has variable arity: ``Rest`` greedily binds every trailing segment (zero
or more) as a tuple.

Patterns can also be written as strings using ``{name}`` and
``{name:type}`` placeholders; see ``parse_path`` and ``CONVERTERS``.
"""

from __future__ import annotations

import math
import re
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any
from urllib.parse import quote

from perch._internal.types import Bindings
from perch.errors import ConfigurationError

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

# Errors a segment parser may raise to signal "not this type"
PARSE_ERRORS: tuple[type[Exception], ...] = (ValueError, TypeError, ArithmeticError)


def _bounded_int(bits: int) -> Callable[[str], int]:
    low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1

    def parse(segment: str) -> int:
        if not _INT_RE.fullmatch(segment):
            msg = f"{segment!r} is not an integer"
            raise ValueError(msg)
        value = int(segment)
        if not low <= value <= high:
            msg = f"{segment!r} does not fit in {bits} bits"
            raise ValueError(msg)
        return value

    parse.__name__ = f"int{bits}"
    return parse


parse_int32 = _bounded_int(32)
parse_int64 = _bounded_int(64)


def parse_finite_float(segment: str) -> float:
    if not _FLOAT_RE.fullmatch(segment):
        msg = f"{segment!r} is not a number"
        raise ValueError(msg)
    value = float(segment)
    if not math.isfinite(value):
        msg = f"{segment!r} is not a finite number"
        raise ValueError(msg)
    return value


# -- Segment matchers ---------------------------------------------------------


class SegmentMatcher(ABC):
    """Matches (and possibly binds) exactly one path segment."""

    __slots__ = ()

    @abstractmethod
    def try_match(self, segment: str) -> Bindings | None: ...

    @abstractmethod
    def describe(self) -> str: ...

    @abstractmethod
    def render(self, bindings: Bindings) -> str: ...

    @property
    def names(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True, slots=True)
class Literal(SegmentMatcher):
    """Matches one segment exactly."""

    text: str

    def __post_init__(self) -> None:
        if not self.text or "/" in self.text:
            msg = f"Literal segment must be non-empty and contain no '/': {self.text!r}"
            raise ConfigurationError(msg)

    def try_match(self, segment: str) -> Bindings | None:
        return {} if segment == self.text else None

    def describe(self) -> str:
        return self.text

    def render(self, bindings: Bindings) -> str:
        return quote(self.text, safe="")


@dataclass(frozen=True, slots=True)
class SegmentVar(SegmentMatcher):
    """Binds one segment as ``parse(segment)``.

    If *parse* raises ``ValueError``, ``TypeError`` or ``ArithmeticError``
    the segment simply does not match; the router moves on to the next
    route. Use this directly for custom extractors::

        Root / "at" / SegmentVar("day", date.fromisoformat, "date")
    """

    name: str
    parse: Callable[[str], Any] = str
    label: str = "str"

    def try_match(self, segment: str) -> Bindings | None:
        try:
            return {self.name: self.parse(segment)}
        except PARSE_ERRORS:
            return None

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name,)

    def describe(self) -> str:
        if self.label == "str":
            return f"{{{self.name}}}"
        return f"{{{self.name}:{self.label}}}"

    def render(self, bindings: Bindings) -> str:
        return quote(str(bindings[self.name]), safe="")


class Var(SegmentVar):
    """Binds one segment as a ``str``."""

    __slots__ = ()

    def __init__(self, name: str) -> None:
        SegmentVar.__init__(self, name, str, "str")


class IntVar(SegmentVar):
    """Binds one segment as a 32-bit signed ``int``."""

    __slots__ = ()

    def __init__(self, name: str) -> None:
        SegmentVar.__init__(self, name, parse_int32, "int")


class LongVar(SegmentVar):
    """Binds one segment as a 64-bit signed ``int``."""

    __slots__ = ()

    def __init__(self, name: str) -> None:
        SegmentVar.__init__(self, name, parse_int64, "long")


class FloatVar(SegmentVar):
    """Binds one segment as a finite ``float``."""

    __slots__ = ()

    def __init__(self, name: str) -> None:
        SegmentVar.__init__(self, name, parse_finite_float, "float")


class UUIDVar(SegmentVar):
    """Binds one segment as a ``uuid.UUID``."""

    __slots__ = ()

    def __init__(self, name: str) -> None:
        SegmentVar.__init__(self, name, uuid.UUID, "uuid")


@dataclass(frozen=True, slots=True)
class Rest:
    """Remainder capture: binds all trailing segments as a tuple.

    Must be the last element of a path pattern.
    """

    name: str

    def try_match(self, segments: tuple[str, ...]) -> Bindings:
        return {self.name: tuple(segments)}

    def describe(self) -> str:
        return f"{{{self.name}:path}}"

    def render(self, bindings: Bindings) -> str:
        value = bindings[self.name]
        parts = value.split("/") if isinstance(value, str) else value
        return "/".join(quote(str(part), safe="") for part in parts if part != "")


# -- Path pattern -------------------------------------------------------------


def _check_unique(names: Iterable[str], where: object) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            msg = f"Duplicate binding name {name!r} in {where}"
            raise ConfigurationError(msg)
        seen.add(name)


@dataclass(frozen=True, slots=True)
class PathPattern:
    """An ordered sequence of segment matchers, optionally ending in ``Rest``."""

    segments: tuple[SegmentMatcher, ...] = ()
    rest: Rest | None = None

    def __truediv__(self, other: str | SegmentMatcher | Rest) -> PathPattern:
        if self.rest is not None:
            msg = f"Cannot add {other!r} after {self.rest.describe()}; Rest must be last"
            raise ConfigurationError(msg)
        if isinstance(other, str):
            other = Literal(other)
        if isinstance(other, Rest):
            pattern = replace(self, rest=other)
        elif isinstance(other, SegmentMatcher):
            pattern = replace(self, segments=(*self.segments, other))
        else:
            return NotImplemented
        _check_unique(pattern.names, pattern)
        return pattern

    @property
    def names(self) -> tuple[str, ...]:
        names = tuple(name for seg in self.segments for name in seg.names)
        if self.rest is not None:
            names = (*names, self.rest.name)
        return names

    @property
    def is_variable(self) -> bool:
        """True when a trailing ``Rest`` makes the arity open-ended."""
        return self.rest is not None

    def try_match(self, segments: tuple[str, ...]) -> Bindings | None:
        """Match decoded request segments; return bindings or ``None``."""
        fixed = len(self.segments)
        if self.rest is None:
            if len(segments) != fixed:
                return None
        elif len(segments) < fixed:
            return None

        bindings: Bindings = {}
        for matcher, segment in zip(self.segments, segments):
            bound = matcher.try_match(segment)
            if bound is None:
                return None
            bindings.update(bound)

        if self.rest is not None:
            bindings.update(self.rest.try_match(segments[fixed:]))
        return bindings

    def render(self, **bindings: Any) -> str:
        """Build a concrete path from binding values.

        ``(Root / "user" / IntVar("id")).render(id=12)`` -> ``"/user/12"``
        """
        parts = [seg.render(bindings) for seg in self.segments]
        if self.rest is not None:
            tail = self.rest.render(bindings)
            if tail:
                parts.append(tail)
        return "/" + "/".join(parts)

    def describe(self) -> str:
        parts = [seg.describe() for seg in self.segments]
        if self.rest is not None:
            parts.append(self.rest.describe())
        return "/" + "/".join(parts)

    def __str__(self) -> str:
        return self.describe()


Root = PathPattern()


# -- String syntax ------------------------------------------------------------

# placeholder type -> binder factory
CONVERTERS: dict[str, Callable[[str], SegmentVar | Rest]] = {
    "str": Var,
    "int": IntVar,
    "long": LongVar,
    "float": FloatVar,
    "uuid": UUIDVar,
    "path": Rest,
}

_FLASK_STYLE_RE = re.compile(r"<[^>]+>")


def parse_path(path: str) -> PathPattern:
    """Parse a ``/users/{id:int}`` style string into a ``PathPattern``.

    Examples::

        "/"                   -> Root
        "/users"              -> Root / "users"
        "/users/{name}"       -> Root / "users" / Var("name")
        "/users/{id:int}"     -> Root / "users" / IntVar("id")
        "/files/{tail:path}"  -> Root / "files" / Rest("tail")
    """
    if _FLASK_STYLE_RE.search(path):
        msg = (
            f"Route path {path!r} uses <param> placeholders; "
            "perch expects {param} or {param:type}."
        )
        raise ConfigurationError(msg)

    pattern = Root
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            name, _, kind = part[1:-1].partition(":")
            kind = kind or "str"
            if kind not in CONVERTERS:
                msg = f"Unknown placeholder type {kind!r} in {path!r}; expected one of {sorted(CONVERTERS)}"
                raise ConfigurationError(msg)
            pattern = pattern / CONVERTERS[kind](name)
        else:
            pattern = pattern / part
    return pattern
