"""Error handling pipeline for perch requests.

Maps ``HTTPError`` exceptions and unexpected failures to responses, using
registered error handlers or plain-text defaults.
"""

import inspect
import logging
import traceback
from collections.abc import Callable
from typing import Any

import anyio

from perch._internal.invoke import to_task
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import AnyResponse, Response

logger = logging.getLogger("perch.server")


def _call_with_arity(handler: Callable[..., Any], request: Request, exc: Exception) -> Any:
    """Error handlers may accept zero, one (request), or two (request, exc) args."""
    params = list(inspect.signature(handler).parameters.values())
    if len(params) >= 2:
        return handler(request, exc)
    if len(params) == 1:
        return handler(request)
    return handler()


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
    limiter: anyio.CapacityLimiter | None,
) -> AnyResponse:
    """Invoke a user-registered error handler and run what it returns.

    The handler may return a ``Task`` or any value a route handler may
    return; either way it runs on a worker thread like a route would.
    """
    task = to_task(_call_with_arity(handler, request, exc))
    return await task.run_async(limiter)


def _lookup(
    error_handlers: dict[int | type, Callable[..., Any]],
    exc: Exception,
    status: int,
) -> Callable[..., Any] | None:
    for klass in type(exc).__mro__:
        if klass in error_handlers:
            return error_handlers[klass]
    return error_handlers.get(status)


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    limiter: anyio.CapacityLimiter | None,
    debug: bool,
) -> AnyResponse:
    """Map an HTTPError to a response using registered error handlers."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = _lookup(error_handlers, exc, exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc, limiter)
        # Keep the error status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"

    response = Response(body=detail, status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    limiter: anyio.CapacityLimiter | None,
    debug: bool,
) -> AnyResponse:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", request.method, request.path, exc_info=exc)

    handler = _lookup(error_handlers, exc, 500)
    if handler is not None:
        return await call_error_handler(handler, request, exc, limiter)

    if debug:
        body = "".join(traceback.format_exception(exc))
        return Response(body=body, status=500)
    return Response(body="Internal Server Error", status=500)
