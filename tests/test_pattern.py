"""Tests for perch.routing.pattern — combined method, path and query patterns."""

import pytest

from perch.errors import ConfigurationError
from perch.http.request import Request
from perch.routing.method import GET, HEAD, POST, AnyMethod
from perch.routing.path import IntVar, Rest, Root, Var
from perch.routing.pattern import RoutePattern
from perch.routing.query import (
    FlagQueryParam,
    MultiQueryParam,
    OptionalQueryParam,
    QueryMatcher,
    QueryParam,
)


def req(method: str, target: str) -> Request:
    return Request.build(method, target)


class TestMatching:
    def test_method_path_and_query(self) -> None:
        pattern = GET >> Root / "user" / IntVar("id") & OptionalQueryParam("tab")
        assert pattern.try_match(req("GET", "/user/12?tab=posts")) == {"id": 12, "tab": "posts"}

    def test_method_mismatch(self) -> None:
        pattern = GET >> Root / "user"
        assert pattern.try_match(req("POST", "/user")) is None

    def test_path_mismatch(self) -> None:
        pattern = GET >> Root / "user" / IntVar("id")
        assert pattern.try_match(req("GET", "/user/abc")) is None

    def test_encoded_newline_is_not_an_integer(self) -> None:
        pattern = GET >> Root / "user" / IntVar("id") & QueryParam("page", int)
        assert pattern.try_match(req("GET", "/user/12%0A?page=1")) is None
        assert pattern.try_match(req("GET", "/user/12?page=5%0A")) is None
        assert pattern.try_match(req("GET", "/user/12?page=5")) == {"id": 12, "page": 5}

    def test_required_query_missing(self) -> None:
        pattern = GET >> Root & QueryParam("b")
        assert pattern.try_match(req("GET", "/?a=1")) is None

    def test_optional_query_missing(self) -> None:
        pattern = GET >> Root & OptionalQueryParam("b")
        assert pattern.try_match(req("GET", "/?a=1")) == {"b": None}

    def test_query_order_independent_of_request(self) -> None:
        pattern = GET >> Root / "s" & QueryParam("a") & QueryParam("b", int)
        assert pattern.try_match(req("GET", "/s?b=2&a=x")) == {"a": "x", "b": 2}

    def test_any_method_binding(self) -> None:
        pattern = AnyMethod("verb") >> Root / "echo"
        assert pattern.try_match(req("delete", "/echo")) == {"verb": "DELETE"}

    def test_method_set(self) -> None:
        pattern = (GET | HEAD) >> Root / "status"
        assert pattern.try_match(req("HEAD", "/status")) == {}
        assert pattern.try_match(req("POST", "/status")) is None

    def test_percent_decoded_segments(self) -> None:
        pattern = GET >> Root / "files" / Var("name")
        assert pattern.try_match(req("GET", "/files/a%20b.txt")) == {"name": "a b.txt"}

    def test_empty_segments_ignored(self) -> None:
        pattern = GET >> Root / "a" / "b"
        assert pattern.try_match(req("GET", "//a//b/")) == {}

    def test_rest_with_query(self) -> None:
        pattern = GET >> Root / "static" / Rest("path") & FlagQueryParam("download")
        assert pattern.try_match(req("GET", "/static/css/x.css?download")) == {
            "path": ("css", "x.css"),
            "download": True,
        }

    def test_query_matchers_not_consulted_on_path_mismatch(self) -> None:
        calls: list[str] = []

        class Spy(QueryMatcher):
            def __init__(self) -> None:
                self.key = self.name = "spy"

            def try_match(self, query):  # type: ignore[no-untyped-def]
                calls.append("spy")
                return {}

            def describe(self) -> str:
                return "spy"

            def encode(self, value):  # type: ignore[no-untyped-def]
                return ""

        pattern = GET >> Root / "a" & Spy()
        assert pattern.try_match(req("GET", "/b")) is None
        assert calls == []
        assert pattern.try_match(req("GET", "/a")) == {}
        assert calls == ["spy"]


class TestConstruction:
    def test_string_path(self) -> None:
        pattern = RoutePattern("GET", "/user/{id:int}")
        assert pattern.method == GET
        assert pattern.path == Root / "user" / IntVar("id")

    def test_list_method(self) -> None:
        pattern = RoutePattern(["GET", "POST"], Root)
        assert pattern.try_match(req("POST", "/")) == {}

    def test_query_is_tuple(self) -> None:
        pattern = RoutePattern(GET, Root, [QueryParam("q")])  # type: ignore[arg-type]
        assert pattern.query == (QueryParam("q"),)

    def test_and_returns_new_pattern(self) -> None:
        base = GET >> Root / "search"
        extended = base & QueryParam("q")
        assert base.query == ()
        assert extended.query == (QueryParam("q"),)

    def test_and_rejects_non_query_matcher(self) -> None:
        with pytest.raises(TypeError):
            (GET >> Root) & "q"  # type: ignore[operator]

    def test_duplicate_names_across_parts(self) -> None:
        with pytest.raises(ConfigurationError, match="Duplicate binding name 'id'"):
            GET >> Root / IntVar("id") & QueryParam("id")

    def test_duplicate_with_method_binding(self) -> None:
        with pytest.raises(ConfigurationError):
            AnyMethod("x") >> Root / Var("x")

    def test_same_key_different_names_allowed(self) -> None:
        pattern = GET >> Root & QueryParam("q") & MultiQueryParam("q", name="all_q")
        assert pattern.try_match(req("GET", "/?q=a&q=b")) == {"q": "a", "all_q": ["a", "b"]}

    def test_names(self) -> None:
        pattern = AnyMethod() >> Root / Var("a") & QueryParam("b")
        assert pattern.names == ("method", "a", "b")


class TestDescribe:
    def test_plain(self) -> None:
        assert str(POST >> Root / "users") == "POST /users"

    def test_with_query(self) -> None:
        pattern = GET >> Root / "search" & QueryParam("q") & OptionalQueryParam("page", int)
        assert str(pattern) == "GET /search ?q&[page:int]"
