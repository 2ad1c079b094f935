"""Immutable HTTP request.

The body is read once, up front, by ``Request.from_asgi`` so that handler
tasks can run synchronously on a worker thread without touching ASGI.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, unquote

from perch._internal.asgi import Receive, Scope
from perch.errors import PayloadTooLarge
from perch.http.headers import Headers
from perch.http.query import QueryParams


def split_path(path: str) -> tuple[str, ...]:
    """Split a request path into percent-decoded segments.

    The root ``/`` is the anchor and yields no segment. Empty segments
    (``//`` or a trailing ``/``) are dropped::

        "/"              -> ()
        "/user/12"       -> ("user", "12")
        "/files/a%20b/"  -> ("files", "a b")
    """
    return tuple(unquote(part) for part in path.split("/") if part)


def scope_path(scope: Scope) -> str:
    """The still percent-encoded request path of an ASGI scope.

    Prefers ``raw_path`` so an encoded ``/`` (``%2F``) stays inside its
    segment; falls back to re-quoting the decoded ``path``.
    """
    raw_path = scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1")
    return quote(scope["path"])


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Only ``method``, ``path`` and ``query`` take part in route matching.
    ``path`` is kept percent-encoded; ``segments`` decodes it.
    """

    method: str
    path: str
    query: QueryParams = field(default_factory=QueryParams)
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    http_version: str = "1.1"
    client: tuple[str, int] | None = None

    # -- Computed properties --

    @property
    def segments(self) -> tuple[str, ...]:
        """Decoded path segments after the root, as seen by path matchers."""
        return split_path(self.path)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Path plus query string."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw}"
        return self.path

    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Body parsed as JSON."""
        return json_module.loads(self.body)

    # -- Factories --

    @classmethod
    def build(
        cls,
        method: str,
        target: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
    ) -> Request:
        """Build a request from a method and a ``path?query`` target.

        Handy for calling an ``HttpService`` directly::

            service(Request.build("GET", "/search?q=perch")).run()
        """
        path, _, query_string = target.partition("?")
        return cls(
            method=method.upper(),
            path=path or "/",
            query=QueryParams(query_string),
            headers=Headers.from_mapping(headers),
            body=body,
        )

    @classmethod
    async def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        *,
        max_content_length: int | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope, reading the whole body.

        Raises ``PayloadTooLarge`` once more than *max_content_length*
        bytes have arrived.
        """
        chunks: list[bytes] = []
        received = 0
        while True:
            message = await receive()
            chunk = message.get("body", b"")
            if chunk:
                received += len(chunk)
                if max_content_length is not None and received > max_content_length:
                    raise PayloadTooLarge(max_content_length)
                chunks.append(chunk)
            if not message.get("more_body", False):
                break

        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope_path(scope),
            query=QueryParams(scope.get("query_string", b"")),
            headers=Headers(tuple(scope.get("headers", ()))),
            body=b"".join(chunks),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
        )
