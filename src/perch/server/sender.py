"""ASGI response sending — translates perch responses to ASGI messages.

Handles single-body responses and streaming responses whose body is a
lazy ``Stream``. Stream chunks are pulled on a worker thread, one at a
time, so effects inside the stream never block the event loop.
"""

import logging
from collections.abc import Iterator

import anyio
import anyio.to_thread

from perch._internal.asgi import Send
from perch.http.response import Response, StreamingResponse

logger = logging.getLogger("perch.server")

_DONE = object()


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _raw_headers(content_type: str, headers: tuple[tuple[str, str], ...]) -> list[tuple[bytes, bytes]]:
    raw = [(b"content-type", content_type.encode("latin-1"))]
    raw.extend((name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers)
    return raw


def _encode_chunk(chunk: str | bytes) -> bytes:
    return chunk.encode("utf-8") if isinstance(chunk, str) else chunk


async def send_response(response: Response, send: Send) -> None:
    """Translate a ``Response`` into ASGI send() calls."""
    body = response.body_bytes if _body_allowed(response.status) else b""
    raw_headers = _raw_headers(response.content_type, response.headers)
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send({"type": "http.response.start", "status": response.status, "headers": raw_headers})
    await send({"type": "http.response.body", "body": body})


async def send_streaming_response(
    response: StreamingResponse,
    send: Send,
    *,
    limiter: anyio.CapacityLimiter | None = None,
) -> None:
    """Send a streaming response via chunked transfer encoding.

    Headers go out immediately; each chunk pulled from the body stream is
    sent with ``more_body=True``. A failure mid-stream is logged and the
    response is closed; the status line has already been sent by then.
    The body iterator is always closed, and an error from *send* propagates.
    """
    raw_headers = _raw_headers(response.content_type, response.headers)
    raw_headers.append((b"transfer-encoding", b"chunked"))
    await send({"type": "http.response.start", "status": response.status, "headers": raw_headers})

    chunks: Iterator[str | bytes] = await anyio.to_thread.run_sync(
        response.body.pull, limiter=limiter
    )
    try:
        while True:
            try:
                chunk = await anyio.to_thread.run_sync(next, chunks, _DONE, limiter=limiter)
            except Exception:
                logger.exception("stream failed mid-response")
                break
            if chunk is _DONE:
                break
            if chunk:
                await send({"type": "http.response.body", "body": _encode_chunk(chunk), "more_body": True})
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            await anyio.to_thread.run_sync(close, limiter=limiter)

    await send({"type": "http.response.body", "body": b"", "more_body": False})
