"""``perch run`` — configure logging and serve an app with uvicorn."""

import argparse
import logging
import sys

from perch.cli._resolve import resolve_app


def run_server(args: argparse.Namespace) -> None:
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    config = app.config
    log_level = args.log_level or config.log_level
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from perch.server.dev import run_server as _serve

    _serve(
        app,
        args.host or config.host,
        args.port or config.port,
        log_level=log_level,
    )
