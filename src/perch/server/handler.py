"""ASGI request handler — the one place a service's task meets the event loop.

Reads the request, asks the service for a task, runs that task on a
worker thread through the anyio engine, and sends whatever response it
produced.
"""

from collections.abc import Callable
from typing import Any

import anyio

from perch._internal.asgi import Receive, Scope, Send
from perch.errors import HTTPError
from perch.http.request import Request, scope_path
from perch.http.response import AnyResponse, Response, StreamingResponse
from perch.routing.service import HttpService
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.sender import send_response, send_streaming_response


def _bodiless_request(scope: Scope) -> Request:
    """A request built from the scope alone, for errors raised while reading the body."""
    return Request(method=scope["method"], path=scope_path(scope))


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    service: HttpService,
    error_handlers: dict[int | type, Callable[..., Any]],
    limiter: anyio.CapacityLimiter | None,
    debug: bool,
    max_content_length: int | None,
) -> None:
    """Process a single HTTP request through routing and the task engine."""
    request: Request | None = None
    try:
        request = await Request.from_asgi(scope, receive, max_content_length=max_content_length)
        response: AnyResponse = await service(request).run_async(limiter)
    except HTTPError as exc:
        response = await handle_http_error(
            exc, request or _bodiless_request(scope), error_handlers, limiter, debug
        )
    except Exception as exc:
        try:
            response = await handle_internal_error(
                exc, request or _bodiless_request(scope), error_handlers, limiter, debug
            )
        except Exception:
            # error handler failed too
            response = Response(body="Internal Server Error", status=500)

    if isinstance(response, StreamingResponse):
        await send_streaming_response(response, send, limiter=limiter)
    else:
        await send_response(response, send)
