"""Flask front end for the U2F validation library."""
from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = ["main"]


def __getattr__(name: str) -> Any:
    # Routes register on import of .app; server.config stays importable alone.
    # The Flask application itself is server.app.app.
    if name in __all__:
        return getattr(import_module(".app", __name__), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
