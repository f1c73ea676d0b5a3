"""Display surfaces, presentation regions, channels, and surface keymaps.

A surface is a text buffer; a region is a place on screen that shows one
surface (the main viewer, a split docked under it, or a centered floating
overlay). Channels feed terminal-formatted bytes into a surface. Keymaps
and destruction observers are scoped to one surface and disappear with it.
"""

from __future__ import annotations

import itertools
import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from ..errors import ResourceError
from .terminal_buffer import TerminalBuffer

logger = logging.getLogger(__name__)

REGION_MAIN = "main"
REGION_SPLIT = "split"
REGION_FLOATING = "floating"
REGION_STYLES = (REGION_MAIN, REGION_SPLIT, REGION_FLOATING)

HIDDEN_WIPE = "wipe"
HIDDEN_HIDE = "hide"

MODE_NORMAL = "n"
MODE_VISUAL = "v"
MODE_INSERT = "i"

KeyHandler = Callable[[], None]
DestroyObserver = Callable[[int], None]


@dataclass(frozen=True)
class Keymap:
    handler: KeyHandler
    desc: str = ""


@dataclass
class Surface:
    id: int
    buffer: TerminalBuffer
    hidden: str = HIDDEN_WIPE
    title: str = ""
    modifiable: bool = True
    cursor: int = 0
    visual_anchor: int | None = None
    keymaps: dict[tuple[str, str], Keymap] = field(default_factory=dict)
    destroy_observers: list[DestroyObserver] = field(default_factory=list)


@dataclass
class Region:
    id: int
    style: str
    surface_id: int
    top: int = 0


@dataclass(frozen=True)
class RegionGeometry:
    """Zero-based cell rectangle of a region's content (border excluded)."""

    row: int
    col: int
    width: int
    height: int
    bordered: bool = False


@dataclass
class Notification:
    message: str
    level: int = logging.INFO


class SurfaceHost:
    """In-process implementation of the host display API."""

    def __init__(
        self,
        columns: int = 80,
        lines: int = 24,
        *,
        split_ratio: float = 0.4,
        floating_ratio: float = 0.8,
    ) -> None:
        self.columns = max(1, columns)
        self.lines = max(2, lines)
        self.split_ratio = split_ratio
        self.floating_ratio = floating_ratio
        self.mode = MODE_NORMAL
        self.notification: Notification | None = None
        self.dirty = True
        self._surfaces: dict[int, Surface] = {}
        self._regions: dict[int, Region] = {}
        self._channels: dict[int, int] = {}
        self._surface_ids = itertools.count(1)
        self._region_ids = itertools.count(1)
        self._channel_ids = itertools.count(3)
        self._current_region: int | None = None
        self._previous_region: int | None = None

    # -- surfaces -------------------------------------------------------

    def create_surface(self, *, hidden: str = HIDDEN_WIPE, title: str = "") -> int:
        surface_id = next(self._surface_ids)
        self._surfaces[surface_id] = Surface(id=surface_id, buffer=TerminalBuffer(), hidden=hidden, title=title)
        logger.debug("created surface %d (hidden=%s)", surface_id, hidden)
        return surface_id

    def is_valid(self, surface_id: int | None) -> bool:
        return surface_id is not None and surface_id in self._surfaces

    def surface(self, surface_id: int) -> Surface:
        try:
            return self._surfaces[surface_id]
        except KeyError:
            raise ResourceError(f"Invalid surface id: {surface_id}") from None

    def set_title(self, surface_id: int, title: str) -> None:
        self.surface(surface_id).title = title
        self.dirty = True

    def set_modifiable(self, surface_id: int, modifiable: bool) -> None:
        self.surface(surface_id).modifiable = modifiable

    def set_text(self, surface_id: int, text: str) -> None:
        surface = self.surface(surface_id)
        surface.buffer.set_text(text)
        surface.cursor = 0
        surface.visual_anchor = None
        for region in self._regions.values():
            if region.surface_id == surface_id:
                region.top = 0
        self.dirty = True

    def on_destroy(self, surface_id: int, observer: DestroyObserver) -> None:
        self.surface(surface_id).destroy_observers.append(observer)

    def destroy_surface(self, surface_id: int) -> None:
        """Wipe a surface: close its regions and channels, then notify observers."""
        surface = self._surfaces.pop(surface_id, None)
        if surface is None:
            return
        logger.debug("destroying surface %d", surface_id)
        for region_id in [r.id for r in self._regions.values() if r.surface_id == surface_id]:
            self._drop_region(region_id)
        for channel_id in [c for c, s in self._channels.items() if s == surface_id]:
            self.close_channel(channel_id)
        surface.keymaps.clear()
        self.dirty = True
        for observer in surface.destroy_observers:
            observer(surface_id)

    # -- regions --------------------------------------------------------

    def open_region(self, surface_id: int, style: str, *, focus: bool = True) -> int:
        if style not in REGION_STYLES:
            raise ResourceError(f"Unknown region style: {style}")
        if not self.is_valid(surface_id):
            raise ResourceError(f"Cannot show invalid surface {surface_id}")
        region_id = next(self._region_ids)
        self._regions[region_id] = Region(id=region_id, style=style, surface_id=surface_id)
        if focus:
            self.focus_region(region_id)
        self.dirty = True
        return region_id

    def region(self, region_id: int) -> Region | None:
        return self._regions.get(region_id)

    def regions(self, style: str | None = None) -> list[Region]:
        return [r for r in self._regions.values() if style is None or r.style == style]

    def regions_for(self, surface_id: int) -> list[int]:
        return [r.id for r in self._regions.values() if r.surface_id == surface_id]

    def close_region(self, region_id: int) -> None:
        """Close a region; a ``wipe`` surface left without regions is destroyed."""
        region = self._regions.get(region_id)
        if region is None:
            return
        self._drop_region(region_id)
        surface = self._surfaces.get(region.surface_id)
        if surface is not None and surface.hidden == HIDDEN_WIPE and not self.regions_for(surface.id):
            self.destroy_surface(surface.id)

    def _drop_region(self, region_id: int) -> None:
        self._regions.pop(region_id, None)
        if self._previous_region == region_id:
            self._previous_region = None
        if self._current_region == region_id:
            fallback = self._previous_region
            if fallback is None or fallback not in self._regions:
                main = self.regions(REGION_MAIN)
                fallback = main[0].id if main else next(iter(self._regions), None)
            self._current_region = fallback
            self._previous_region = None
            self.mode = MODE_NORMAL
        self.dirty = True

    def focus_region(self, region_id: int) -> None:
        if region_id not in self._regions:
            raise ResourceError(f"Invalid region id: {region_id}")
        if self._current_region != region_id:
            self._previous_region = self._current_region
            self._current_region = region_id
            self.mode = MODE_NORMAL
            self.dirty = True

    def cycle_focus(self) -> None:
        # Floating regions capture focus until hidden, matching overlay behavior.
        order = [r.id for r in self._regions.values() if r.style != REGION_FLOATING]
        floating = [r.id for r in self.regions(REGION_FLOATING)]
        if floating or not order:
            return
        if self._current_region not in order:
            self.focus_region(order[0])
            return
        index = order.index(self._current_region)
        self.focus_region(order[(index + 1) % len(order)])

    @property
    def current_region(self) -> Region | None:
        if self._current_region is None:
            return None
        return self._regions.get(self._current_region)

    def current_surface(self) -> int | None:
        region = self.current_region
        return region.surface_id if region is not None else None

    # -- geometry -------------------------------------------------------

    def resize(self, columns: int, lines: int) -> None:
        columns, lines = max(1, columns), max(2, lines)
        if (columns, lines) != (self.columns, self.lines):
            self.columns, self.lines = columns, lines
            self.dirty = True

    def layout(self) -> dict[int, RegionGeometry]:
        """Compute region rectangles; the last screen row is the status line."""
        usable = max(1, self.lines - 1)
        geometry: dict[int, RegionGeometry] = {}
        mains = self.regions(REGION_MAIN)
        splits = self.regions(REGION_SPLIT)

        split_total = 0
        if splits:
            wanted = max(3 * len(splits), int(usable * self.split_ratio))
            split_total = usable if not mains else min(usable - 2, wanted)
        main_rows = usable - split_total
        for region in mains:
            geometry[region.id] = RegionGeometry(row=0, col=0, width=self.columns, height=max(1, main_rows))

        if splits:
            # Each split gets a one-row title divider above its content.
            share = max(2, split_total // len(splits))
            row = main_rows if mains else 0
            for index, region in enumerate(splits):
                rows = share if index < len(splits) - 1 else max(2, usable - row)
                geometry[region.id] = RegionGeometry(row=row + 1, col=0, width=self.columns, height=max(1, rows - 1))
                row += rows

        width = math.floor(self.columns * self.floating_ratio)
        height = math.floor(self.lines * self.floating_ratio)
        top = (self.lines - height) // 2
        left = (self.columns - width) // 2
        for region in self.regions(REGION_FLOATING):
            geometry[region.id] = RegionGeometry(
                row=top + 1,
                col=left + 1,
                width=max(1, width - 2),
                height=max(1, height - 2),
                bordered=True,
            )
        return geometry

    def region_size(self, region_id: int) -> tuple[int, int]:
        geometry = self.layout().get(region_id)
        if geometry is None:
            raise ResourceError(f"Invalid region id: {region_id}")
        return geometry.width, geometry.height

    # -- channels -------------------------------------------------------

    def open_channel(self, surface_id: int) -> int:
        if not self.is_valid(surface_id):
            raise ResourceError("Failed to create terminal channel")
        channel_id = next(self._channel_ids)
        self._channels[channel_id] = surface_id
        return channel_id

    def channel_is_open(self, channel_id: int | None) -> bool:
        return channel_id is not None and channel_id in self._channels

    def send(self, channel_id: int, data: bytes | str) -> bool:
        """Write into a channel; writes to closed channels are discarded."""
        surface_id = self._channels.get(channel_id)
        if surface_id is None or surface_id not in self._surfaces:
            return False
        surface = self._surfaces[surface_id]
        surface.buffer.feed(data)
        surface.cursor = min(surface.cursor, max(0, surface.buffer.line_count() - 1))
        self.dirty = True
        return True

    def close_channel(self, channel_id: int) -> None:
        self._channels.pop(channel_id, None)

    # -- keymaps and modes ----------------------------------------------

    def keymap_set(self, surface_id: int, modes: Iterable[str], key: str, handler: KeyHandler, desc: str = "") -> None:
        surface = self.surface(surface_id)
        for mode in modes:
            surface.keymaps[(mode, key)] = Keymap(handler=handler, desc=desc)

    def keymap_del(self, surface_id: int, mode: str, key: str) -> None:
        """Remove one mapping; raises ``KeyError`` when it does not exist."""
        surface = self.surface(surface_id)
        del surface.keymaps[(mode, key)]

    def keymap_get(self, surface_id: int, mode: str, key: str) -> Keymap | None:
        surface = self._surfaces.get(surface_id)
        if surface is None:
            return None
        return surface.keymaps.get((mode, key))

    def dispatch_key(self, key: str) -> bool:
        """Run the focused surface's mapping for ``key`` in the current mode."""
        surface_id = self.current_surface()
        if surface_id is None:
            return False
        keymap = self.keymap_get(surface_id, self.mode, key)
        if keymap is None:
            return False
        keymap.handler()
        self.dirty = True
        return True

    def start_visual(self) -> None:
        surface_id = self.current_surface()
        if surface_id is None:
            return
        surface = self.surface(surface_id)
        surface.visual_anchor = surface.cursor
        self.mode = MODE_VISUAL
        self.dirty = True

    def stop_insert(self) -> None:
        """Return to normal mode from insert or visual mode."""
        if self.mode != MODE_NORMAL:
            self.mode = MODE_NORMAL
            self.dirty = True
        for surface in self._surfaces.values():
            surface.visual_anchor = None

    # -- cursor ---------------------------------------------------------

    def current_line(self) -> str:
        surface_id = self.current_surface()
        if surface_id is None:
            return ""
        surface = self.surface(surface_id)
        return surface.buffer.plain_line(surface.cursor)

    def move_cursor(self, delta: int) -> None:
        self.set_cursor(self._current_cursor() + delta)

    def set_cursor(self, line: int) -> None:
        surface_id = self.current_surface()
        if surface_id is None:
            return
        surface = self.surface(surface_id)
        last = max(0, surface.buffer.line_count() - 1)
        surface.cursor = max(0, min(line, last))
        self.scroll_to_cursor()
        self.dirty = True

    def _current_cursor(self) -> int:
        surface_id = self.current_surface()
        return self.surface(surface_id).cursor if surface_id is not None else 0

    def scroll_to_cursor(self) -> None:
        region = self.current_region
        if region is None:
            return
        geometry = self.layout().get(region.id)
        rows = geometry.height if geometry is not None else 1
        cursor = self.surface(region.surface_id).cursor
        if cursor < region.top:
            region.top = cursor
        elif cursor >= region.top + rows:
            region.top = cursor - rows + 1

    # -- notifications --------------------------------------------------

    def notify(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, "%s", message)
        self.notification = Notification(message=message, level=level)
        self.dirty = True
