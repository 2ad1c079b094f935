"""Tests for perch.http.response — immutable responses and .with_*() chaining."""

import pytest

from perch.http.response import APPLICATION_JSON, TEXT_PLAIN, Response, StreamingResponse
from perch.stream import Stream


class TestConstructors:
    def test_defaults(self) -> None:
        response = Response()
        assert response.status == 200
        assert response.content_type == TEXT_PLAIN
        assert response.headers == ()
        assert response.body == ""

    def test_ok(self) -> None:
        assert Response.ok("hi").text == "hi"

    def test_created_with_location(self) -> None:
        response = Response.created("made", location="/items/1")
        assert response.status == 201
        assert response.header("location") == "/items/1"

    def test_no_content(self) -> None:
        assert Response.no_content().status == 204

    def test_bad_request_and_not_found(self) -> None:
        assert Response.bad_request().status == 400
        assert Response.not_found().text == "Not Found"
        assert Response.not_found("gone").status == 404

    def test_json(self) -> None:
        response = Response.json({"a": [1, 2]}, status=201)
        assert response.status == 201
        assert response.content_type == APPLICATION_JSON
        assert response.text == '{"a": [1, 2]}'

    def test_json_falls_back_to_str(self) -> None:
        class Thing:
            def __str__(self) -> str:
                return "thing"

        assert Response.json({"t": Thing()}).text == '{"t": "thing"}'

    def test_redirect(self) -> None:
        response = Response.redirect("/login")
        assert response.status == 302
        assert response.header("Location") == "/login"
        assert Response.redirect("/x", status=301).status == 301


class TestTransformations:
    def test_with_status(self) -> None:
        original = Response("x")
        changed = original.with_status(418)
        assert changed.status == 418
        assert original.status == 200

    def test_with_header_appends(self) -> None:
        response = Response().with_header("X-A", "1").with_header("X-A", "2")
        assert response.headers == (("X-A", "1"), ("X-A", "2"))
        assert response.header("x-a") == "1"

    def test_with_headers(self) -> None:
        response = Response().with_headers({"X-A": "1", "X-B": "2"})
        assert response.header("X-B") == "2"

    def test_with_content_type(self) -> None:
        assert Response().with_content_type("text/csv").content_type == "text/csv"

    def test_missing_header(self) -> None:
        assert Response().header("x-nope") is None

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Response().status = 500  # type: ignore[misc]


class TestBody:
    def test_body_bytes_from_str(self) -> None:
        assert Response("héllo").body_bytes == "héllo".encode()

    def test_text_from_bytes(self) -> None:
        assert Response(b"abc").text == "abc"


class TestStreamingResponse:
    def test_defaults(self) -> None:
        response = StreamingResponse(Stream.emit("a"))
        assert response.status == 200
        assert response.content_type == TEXT_PLAIN

    def test_with_methods(self) -> None:
        response = (
            StreamingResponse(Stream.empty())
            .with_status(206)
            .with_header("X-A", "1")
            .with_headers({"X-B": "2"})
            .with_content_type("text/event-stream")
        )
        assert response.status == 206
        assert response.headers == (("X-A", "1"), ("X-B", "2"))
        assert response.content_type == "text/event-stream"
