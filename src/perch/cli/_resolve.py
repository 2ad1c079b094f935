"""App import resolution — resolves ``"module:attribute"`` strings to an App.

Shared by ``perch run`` and ``perch routes``.
"""

import importlib
import sys
from pathlib import Path

from perch.app import App, as_app
from perch.routing.service import HttpService


def resolve_app(import_string: str) -> App:
    """Resolve an import string to a perch ``App``.

    Accepts ``"module:attribute"``. When the attribute is omitted it
    defaults to ``"app"``. The attribute may be an ``App``, an
    ``HttpService`` (wrapped in a default ``App``), or a zero-argument
    factory returning either.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not an App or HttpService.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "app"

    # Let ``perch run app:app`` find app.py in the working directory.
    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, (App, HttpService)):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    try:
        return as_app(obj)
    except TypeError as exc:
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a perch App or HttpService"
        raise TypeError(msg) from exc
