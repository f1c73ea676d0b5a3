"""Interactive runtime: terminal control, key reading, rendering, app loop.

``run_app`` is imported lazily so that importing the package does not pull
in the whole command stack.
"""

from __future__ import annotations


def run_app(*args, **kwargs):
    """Lazily import the app entrypoint to avoid package-import cycles."""
    from .app import run_app as _run_app

    return _run_app(*args, **kwargs)


__all__ = ["run_app"]
