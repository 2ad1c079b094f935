"""Routing — declarative, first-match-wins request matching.

Patterns combine a method matcher, a path pattern anchored at ``Root``,
and optional query matchers. An ``HttpService`` evaluates them in order
and turns the winning handler's result into a ``Task``.
"""

from perch.routing.method import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    AnyMethod,
    AnyOf,
    Method,
    MethodMatcher,
)
from perch.routing.path import (
    FloatVar,
    IntVar,
    Literal,
    LongVar,
    PathPattern,
    Rest,
    Root,
    SegmentMatcher,
    SegmentVar,
    UUIDVar,
    Var,
    parse_path,
)
from perch.routing.pattern import Matcher, RoutePattern
from perch.routing.query import (
    FlagQueryParam,
    MultiQueryParam,
    OptionalQueryParam,
    QueryCodecs,
    QueryMatcher,
    QueryParam,
    default_codecs,
    encode_query,
)
from perch.routing.route import Route, RouteMatch
from perch.routing.service import HttpService

__all__ = [
    "DELETE",
    "GET",
    "HEAD",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "AnyMethod",
    "AnyOf",
    "FlagQueryParam",
    "FloatVar",
    "HttpService",
    "IntVar",
    "Literal",
    "LongVar",
    "Matcher",
    "Method",
    "MethodMatcher",
    "MultiQueryParam",
    "OptionalQueryParam",
    "PathPattern",
    "QueryCodecs",
    "QueryMatcher",
    "QueryParam",
    "Rest",
    "Root",
    "Route",
    "RouteMatch",
    "RoutePattern",
    "SegmentMatcher",
    "SegmentVar",
    "UUIDVar",
    "Var",
    "default_codecs",
    "encode_query",
    "parse_path",
]
