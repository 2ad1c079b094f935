"""Server startup.

perch ships no HTTP server of its own; it hands its ASGI ``App`` to
uvicorn (``pip install perch[server]``).
"""

from __future__ import annotations

from typing import Any


def run_server(app: Any, host: str, port: int, *, log_level: str = "info") -> None:
    """Serve *app* with uvicorn until interrupted.

    Args:
        app: ASGI callable (a perch ``App``).
        host: Bind host address.
        port: Bind port number.
        log_level: uvicorn log level (``"debug"``, ``"info"``, ...).
    """
    import uvicorn

    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())
