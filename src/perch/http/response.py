"""HTTP responses with a chainable ``.with_*()`` transformation API.

Each transformation returns a new response. Handlers usually build one of
these inside a ``Task``; the app sends it once the task has run.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.stream import Stream

TEXT_PLAIN = "text/plain; charset=utf-8"
APPLICATION_JSON = "application/json"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations."""

    body: str | bytes = ""
    status: int = 200
    content_type: str = TEXT_PLAIN
    headers: tuple[tuple[str, str], ...] = ()

    # -- Status constructors --

    @classmethod
    def ok(cls, body: str | bytes = "") -> Response:
        return cls(body=body)

    @classmethod
    def created(cls, body: str | bytes = "", *, location: str | None = None) -> Response:
        response = cls(body=body, status=201)
        if location is not None:
            response = response.with_header("Location", location)
        return response

    @classmethod
    def no_content(cls) -> Response:
        return cls(status=204)

    @classmethod
    def bad_request(cls, body: str | bytes = "Bad Request") -> Response:
        return cls(body=body, status=400)

    @classmethod
    def not_found(cls, body: str | bytes = "Not Found") -> Response:
        return cls(body=body, status=404)

    @classmethod
    def json(cls, data: Any, *, status: int = 200) -> Response:
        return cls(
            body=json_module.dumps(data, default=str),
            status=status,
            content_type=APPLICATION_JSON,
        )

    @classmethod
    def redirect(cls, location: str, *, status: int = 302) -> Response:
        return cls(status=status).with_header("Location", location)

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> Response:
        return replace(self, content_type=content_type)

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), if set."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class StreamingResponse:
    """A response whose body is a lazy ``Stream`` of text or byte chunks.

    The stream is pulled while the response is being sent, so its effects
    happen then and not when the handler returns. Supports the same
    ``.with_*()`` API as ``Response``.
    """

    body: Stream[str | bytes]
    status: int = 200
    content_type: str = TEXT_PLAIN
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> StreamingResponse:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> StreamingResponse:
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> StreamingResponse:
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> StreamingResponse:
        return replace(self, content_type=content_type)


AnyResponse = Response | StreamingResponse
