"""Frame composition for the surface host.

Draws the main viewer, docked splits with a title divider, floating
overlays inside a rounded frame, notifications, and the status/prompt row.
Rendering is presentation-only: it returns one string for a single write.
"""

from __future__ import annotations

import logging

from ..ansi import clip_ansi_line, display_width, pad_ansi_line
from ..host.surfaces import (
    MODE_INSERT,
    MODE_VISUAL,
    REGION_FLOATING,
    REGION_MAIN,
    REGION_SPLIT,
    Region,
    RegionGeometry,
    SurfaceHost,
)

BORDER_COLOR = "\033[38;5;45m"
DIVIDER_COLOR = "\033[2;38;5;245m"
CURSOR_STYLE = "\033[7m"
VISUAL_STYLE = "\033[48;5;238m"
RESET = "\033[0m"
NOTIFICATION_MAX_ROWS = 8

_LEVEL_STYLES = {
    logging.ERROR: "\033[1;31m",
    logging.WARNING: "\033[33m",
}

_MODE_LABELS = {
    MODE_VISUAL: "-- VISUAL --",
    MODE_INSERT: "-- INSERT --",
}


def build_status_line(left_text: str, width: int, right_text: str = "│ : J  q quit") -> str:
    usable = max(1, width - 1)
    if usable <= len(right_text):
        return right_text[-usable:]
    left_limit = max(0, usable - len(right_text) - 1)
    left = left_text[:left_limit]
    gap = " " * (usable - len(left) - len(right_text))
    return f"{left}{gap}{right_text}"


def _move(row: int, col: int) -> str:
    return f"\033[{row + 1};{col + 1}H"


def _titled_rule(title: str, width: int, fill: str = "─") -> str:
    title = clip_ansi_line(title, max(0, width - 2))
    title_width = display_width(title)
    left = max(0, (width - title_width) // 2)
    right = max(0, width - title_width - left)
    return fill * left + title + fill * right


def _selection_bounds(host: SurfaceHost, region: Region, focused: bool) -> tuple[int, int] | None:
    if not focused or host.mode != MODE_VISUAL:
        return None
    surface = host.surface(region.surface_id)
    if surface.visual_anchor is None:
        return None
    return min(surface.visual_anchor, surface.cursor), max(surface.visual_anchor, surface.cursor)


def _region_rows(host: SurfaceHost, region: Region, geometry: RegionGeometry, focused: bool) -> list[str]:
    surface = host.surface(region.surface_id)
    lines = surface.buffer.lines
    selection = _selection_bounds(host, region, focused)
    rows: list[str] = []
    for offset in range(geometry.height):
        index = region.top + offset
        text = lines[index] if index < len(lines) else ""
        if focused and index == surface.cursor and index < len(lines):
            rows.append(CURSOR_STYLE + pad_ansi_line(surface.buffer.plain_line(index), geometry.width) + RESET)
        elif selection is not None and selection[0] <= index <= selection[1]:
            rows.append(VISUAL_STYLE + pad_ansi_line(surface.buffer.plain_line(index), geometry.width) + RESET)
        else:
            rows.append(pad_ansi_line(text, geometry.width) + RESET)
    return rows


def _draw_region(out: list[str], host: SurfaceHost, region: Region, geometry: RegionGeometry, focused: bool) -> None:
    surface = host.surface(region.surface_id)
    if region.style == REGION_SPLIT and geometry.row > 0:
        out.append(_move(geometry.row - 1, geometry.col))
        out.append(DIVIDER_COLOR + _titled_rule(surface.title, geometry.width) + RESET)

    if geometry.bordered:
        inner_w = geometry.width
        top, left = geometry.row - 1, geometry.col - 1
        out.append(_move(top, left))
        out.append(BORDER_COLOR + "╭" + _titled_rule(surface.title, inner_w) + "╮" + RESET)
        for offset in range(geometry.height):
            out.append(_move(geometry.row + offset, left) + BORDER_COLOR + "│" + RESET)
            out.append(_move(geometry.row + offset, geometry.col + inner_w) + BORDER_COLOR + "│" + RESET)
        out.append(_move(geometry.row + geometry.height, left))
        out.append(BORDER_COLOR + "╰" + "─" * inner_w + "╯" + RESET)

    for offset, row in enumerate(_region_rows(host, region, geometry, focused)):
        out.append(_move(geometry.row + offset, geometry.col))
        out.append(row)


def _draw_notification(out: list[str], host: SurfaceHost) -> None:
    notification = host.notification
    if notification is None or not notification.message:
        return
    lines = notification.message.splitlines()[-NOTIFICATION_MAX_ROWS:]
    style = _LEVEL_STYLES.get(notification.level, "")
    width = min(host.columns, max(display_width(line) for line in lines) + 2)
    first_row = max(0, host.lines - 1 - len(lines))
    for offset, line in enumerate(lines):
        out.append(_move(first_row + offset, host.columns - width))
        out.append(style + pad_ansi_line(" " + line, width) + RESET)


def render_frame(
    host: SurfaceHost,
    *,
    status_left: str = "",
    prompt: tuple[str, int] | None = None,
) -> str:
    """Compose one full frame; ``prompt`` is ``(text, cursor_col)`` when open."""
    out: list[str] = ["\033[?25l\033[H\033[J"]
    geometry = host.layout()
    current = host.current_region
    ordered = host.regions(REGION_MAIN) + host.regions(REGION_SPLIT) + host.regions(REGION_FLOATING)
    for region in ordered:
        region_geometry = geometry.get(region.id)
        if region_geometry is None:
            continue
        focused = current is not None and current.id == region.id
        _draw_region(out, host, region, region_geometry, focused)

    status_row = host.lines - 1
    if prompt is not None:
        text, cursor_col = prompt
        out.append(_move(status_row, 0))
        out.append(pad_ansi_line(text, host.columns))
        out.append(_move(status_row, min(host.columns - 1, cursor_col)) + "\033[?25h")
        return "".join(out)

    _draw_notification(out, host)
    left = _MODE_LABELS.get(host.mode, status_left)
    out.append(_move(status_row, 0))
    out.append("\033[7m" + build_status_line(left, host.columns) + RESET)
    return "".join(out)
