"""perch — declarative HTTP routing and deferred tasks for ASGI.

Routes are ordered patterns over method, path and query string; handlers
return ``Task`` values that describe work without doing it. The app runs
each task on a worker thread and sends the response.

Basic usage::

    from perch import GET, App, IntVar, OptionalQueryParam, Root, Task

    app = App()

    @app.route(GET >> Root / "user" / IntVar("id") & OptionalQueryParam("tab"))
    def user(request, id, tab):
        return Task.delay(load_user, id).map(render)

    app.run()

Lazy streams::

    from perch import Stream

    numbers = Stream.range(10).filter(lambda n: n % 2).map(str)
    numbers.run_log().run()  # ['1', '3', '5', '7', '9']
"""

__version__ = "0.1.0"
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
    "App",
    "AppConfig",
    "Attempt",
    "BadRequest",
    "ConfigurationError",
    "FlagQueryParam",
    "FloatVar",
    "HTTPError",
    "HttpService",
    "IntVar",
    "LongVar",
    "Method",
    "MultiQueryParam",
    "NotFound",
    "OptionalQueryParam",
    "PayloadTooLarge",
    "PerchError",
    "QueryCodecs",
    "QueryParam",
    "Request",
    "Response",
    "Rest",
    "Root",
    "SegmentVar",
    "Stream",
    "StreamingResponse",
    "Task",
    "UUIDVar",
    "Var",
    "default_codecs",
    "encode_query",
]

_ROUTING_NAMES = frozenset(
    {
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
        "LongVar",
        "Method",
        "MultiQueryParam",
        "OptionalQueryParam",
        "QueryCodecs",
        "QueryParam",
        "Rest",
        "Root",
        "SegmentVar",
        "UUIDVar",
        "Var",
        "default_codecs",
        "encode_query",
    }
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in _ROUTING_NAMES:
        from perch import routing as _routing

        return getattr(_routing, name)

    if name in ("Task", "Attempt"):
        from perch import task as _task

        return getattr(_task, name)

    if name == "Stream":
        from perch.stream import Stream

        return Stream

    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "StreamingResponse"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in (
        "BadRequest",
        "ConfigurationError",
        "HTTPError",
        "NotFound",
        "PayloadTooLarge",
        "PerchError",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
