"""Perch exception hierarchy.

Shared across routing, the task runtime, and the ASGI app so every
module raises and catches the same types.

A pattern that does not match is never an exception. These types cover
misconfiguration at setup time and errors raised by handlers.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when a route pattern or service is built incorrectly.

    Typical causes: duplicate binding names in one pattern, a segment
    added after ``Rest``, or a query type with no registered decoder.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers (inside their tasks) or while reading the request.
    ``App`` catches these and dispatches to the matching ``@app.error()``
    handler, or renders a plain-text default.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400 — the request could not be understood."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404 — no resource for this request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413 — request body exceeds ``AppConfig.max_content_length``."""

    def __init__(self, limit: int, detail: str = "") -> None:
        super().__init__(
            status=413,
            detail=detail or f"Request body exceeds {limit} bytes",
        )
