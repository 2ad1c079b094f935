"""Tests for perch._internal.invoke — handler result coercion."""

import pytest

from perch._internal.invoke import invoke, to_response, to_task
from perch.http.response import Response, StreamingResponse
from perch.stream import Stream
from perch.task import Task


class TestToResponse:
    def test_response_passthrough(self) -> None:
        response = Response("x", status=201)
        assert to_response(response) is response

    def test_streaming_passthrough(self) -> None:
        response = StreamingResponse(Stream.empty())
        assert to_response(response) is response

    def test_stream_becomes_streaming_response(self) -> None:
        stream = Stream.emit("a")
        response = to_response(stream)
        assert isinstance(response, StreamingResponse)
        assert response.body is stream

    def test_str_and_bytes(self) -> None:
        assert to_response("hi") == Response("hi")
        assert to_response(b"hi") == Response(b"hi")

    def test_dict_and_list_become_json(self) -> None:
        assert to_response({"a": 1}).content_type == "application/json"
        assert to_response([1]).text == "[1]"  # type: ignore[union-attr]

    def test_unsupported(self) -> None:
        with pytest.raises(TypeError, match="Handler returned int"):
            to_response(42)


class TestToTask:
    def test_plain_value(self) -> None:
        assert to_task("x").run() == Response("x")

    def test_task_value(self) -> None:
        assert to_task(Task.pure({"n": 1})).run() == Response.json({"n": 1})

    def test_bad_value_fails_on_run_only(self) -> None:
        task = to_task(object())
        with pytest.raises(TypeError):
            task.run()


class TestInvoke:
    def test_deferred_call(self) -> None:
        calls: list[tuple] = []

        def handler(request, name):  # type: ignore[no-untyped-def]
            calls.append((request, name))
            return f"hi {name}"

        task = invoke(handler, "req", name="bob")
        assert calls == []
        assert task.run() == Response("hi bob")
        assert calls == [("req", "bob")]

    def test_handler_exception_surfaces_on_run(self) -> None:
        def handler() -> str:
            raise KeyError("k")

        task = invoke(handler)
        with pytest.raises(KeyError):
            task.run()
