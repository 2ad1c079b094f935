"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: called as ``handler(request, **bindings)``
Handler: TypeAlias = Callable[..., Any]

# Fallback handler: called as ``handler(request)`` when no route matches
DefaultHandler: TypeAlias = Callable[..., Any]

# Error handler: receives (request, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]

# Bindings produced by a successful match
Bindings: TypeAlias = dict[str, Any]
