"""Invoke helpers — turn whatever a handler returns into a response task.

Handlers may return a ``Task`` or a plain value. The coercion lives in
exactly one place so the service, the fallback handler and the error
handlers all agree on it.

Usage::

    from perch._internal.invoke import invoke

    task = invoke(handler, request, **bindings)   # nothing has run yet
    response = task.run()
"""

from typing import Any

from perch.http.response import AnyResponse, Response, StreamingResponse
from perch.stream import Stream
from perch.task import Task


def to_response(result: Any) -> AnyResponse:
    """Coerce a handler's plain return value into a response.

    ``Response``/``StreamingResponse`` pass through, a ``Stream`` becomes a
    streaming body, ``str``/``bytes`` become a 200 body, ``dict``/``list``
    become JSON.
    """
    if isinstance(result, (Response, StreamingResponse)):
        return result
    if isinstance(result, Stream):
        return StreamingResponse(body=result)
    if isinstance(result, (str, bytes)):
        return Response(body=result)
    if isinstance(result, (dict, list)):
        return Response.json(result)
    msg = (
        f"Handler returned {type(result).__name__}; expected Task, Response, "
        "StreamingResponse, Stream, str, bytes, dict or list"
    )
    raise TypeError(msg)


def to_task(result: Any) -> Task[AnyResponse]:
    """Wrap a handler result as a task producing a response."""
    if isinstance(result, Task):
        return result.map(to_response)
    return Task.delay(to_response, result)


def invoke(handler: Any, *args: Any, **kwargs: Any) -> Task[AnyResponse]:
    """Defer calling *handler*; the call happens when the task runs.

    Works with handlers that return tasks and with handlers that return
    plain values::

        def hello(request, name):
            return f"Hello, {name}."

        def slow(request, name):
            return Task.delay(render, name)
    """
    return Task.suspend(lambda: to_task(handler(*args, **kwargs)))
