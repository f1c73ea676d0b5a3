"""In-process host environment: event loop, display surfaces, pty processes."""

from .loop import EventLoop
from .processes import ProcessHost
from .surfaces import (
    HIDDEN_HIDE,
    HIDDEN_WIPE,
    MODE_INSERT,
    MODE_NORMAL,
    MODE_VISUAL,
    REGION_FLOATING,
    REGION_MAIN,
    REGION_SPLIT,
    Notification,
    Region,
    RegionGeometry,
    Surface,
    SurfaceHost,
)
from .terminal_buffer import TerminalBuffer

__all__ = [
    "EventLoop",
    "ProcessHost",
    "SurfaceHost",
    "Surface",
    "Region",
    "RegionGeometry",
    "Notification",
    "TerminalBuffer",
    "HIDDEN_HIDE",
    "HIDDEN_WIPE",
    "MODE_INSERT",
    "MODE_NORMAL",
    "MODE_VISUAL",
    "REGION_FLOATING",
    "REGION_MAIN",
    "REGION_SPLIT",
]
