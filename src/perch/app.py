"""Perch application class.

Wraps an ``HttpService`` as an ASGI application. Mutable during setup
(routes, error handlers); frozen when the first request or lifespan event
arrives.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

import anyio

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.types import DefaultHandler, ErrorHandler, Handler
from perch.config import AppConfig
from perch.errors import ConfigurationError
from perch.routing.method import MethodMatcher
from perch.routing.path import PathPattern
from perch.routing.pattern import RoutePattern
from perch.routing.query import QueryMatcher
from perch.routing.service import HttpService
from perch.server.handler import handle_request

logger = logging.getLogger("perch.server")


class App:
    """The perch ASGI application.

    Usage::

        app = App()

        @app.route(GET, Root / "hello" / Var("name"))
        def hello(request, name):
            return Task.delay(greet, name)

        app.run()

    Handler tasks run on anyio worker threads, at most
    ``config.worker_threads`` at a time.

    Thread safety:
        The freeze transition uses a Lock + double-check so exactly one
        caller freezes the service, even if several ASGI workers hit the
        app concurrently on first request.
    """

    __slots__ = (
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_limiter",
        "config",
        "service",
    )

    def __init__(self, service: HttpService | None = None, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self.service: HttpService = service if service is not None else HttpService()
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._limiter: anyio.CapacityLimiter | None = None
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

    # -- Setup (delegates to the service) --

    def route(
        self,
        method: RoutePattern | MethodMatcher | str | list[str] | tuple[str, ...],
        path: PathPattern | str | None = None,
        *query: QueryMatcher,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler. See ``HttpService.route``."""
        self._check_not_frozen()
        return self.service.route(method, path, *query, name=name)

    def fallback(self, handler: DefaultHandler) -> DefaultHandler:
        """Set the handler for requests that match no route."""
        self._check_not_frozen()
        return self.service.fallback(handler)

    def error(self, key: int | type[Exception]) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler for a status code or exception type.

        The handler may take ``()``, ``(request)`` or ``(request, exc)``
        and may return a ``Task`` or a plain response value::

            @app.error(404)
            def missing(request):
                return Response.not_found(f"nothing at {request.path}")
        """

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[key] = func
            return func

        return decorator

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot modify the app after it has started serving."
            raise ConfigurationError(msg)

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self.service.freeze()
            self._frozen = True

    # -- ASGI --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self._ensure_frozen()

        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.config.worker_threads)

        await handle_request(
            scope,
            receive,
            send,
            service=self.service,
            error_handlers=self._error_handlers,
            limiter=self._limiter,
            debug=self.config.debug,
            max_content_length=self.config.max_content_length,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.debug("startup: %d routes", len(self.service))
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Serving --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve with uvicorn (``pip install perch[server]``)."""
        from perch.server.dev import run_server

        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            log_level=self.config.log_level,
        )


def as_app(target: Any) -> App:
    """Return *target* if it is an ``App``; wrap it if it is an ``HttpService``."""
    if isinstance(target, App):
        return target
    if isinstance(target, HttpService):
        return App(target)
    msg = f"Expected a perch App or HttpService, got {type(target).__name__}"
    raise TypeError(msg)
