"""Reusable terminal sessions for ``jj`` command output.

There is one ``Session`` per kind (split and floating). ``SessionManager.run``
reuses the session's surface while it is alive, replaces its channel and
process on every call, and swaps the command-specific keymaps so bindings
from a previous command never leak into the next one.

Session states: idle (nothing bound), active (surface, channel and process
all bound), and the transient "output finished" state where the process has
exited but the surface and channel stay open for reading.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import partial

from .errors import ProcessStartError, ResourceError
from .host.loop import EventLoop
from .host.processes import ProcessHost
from .host.surfaces import (
    HIDDEN_HIDE,
    HIDDEN_WIPE,
    MODE_NORMAL,
    MODE_VISUAL,
    REGION_FLOATING,
    REGION_MAIN,
    REGION_SPLIT,
    SurfaceHost,
)

logger = logging.getLogger(__name__)

TERMINAL_RESET = "\x1b[H\x1b[2J"

PROCESS_ENVIRONMENT: dict[str, str] = {
    "TERM": "xterm-256color",
    "COLORTERM": "truecolor",
    "PAGER": "cat",
    "DELTA_PAGER": "cat",
    "DFT_BACKGROUND": "light",
}

CAP_BASE_KEYMAPS = "base_keymaps"
CAP_CLEANUP = "cleanup"


class SessionKind(str, Enum):
    SPLIT = "split"
    FLOATING = "floating"


@dataclass(frozen=True)
class KeymapSpec:
    """A command-specific key binding requested by the command façade."""

    modes: frozenset[str]
    trigger: str
    handler: Callable[[], None]
    desc: str = ""

    @classmethod
    def normal(cls, trigger: str, handler: Callable[[], None], desc: str = "") -> KeymapSpec:
        return cls(modes=frozenset({MODE_NORMAL}), trigger=trigger, handler=handler, desc=desc)


@dataclass
class Session:
    kind: SessionKind
    surface_id: int | None = None
    channel_id: int | None = None
    process_id: int | None = None
    installed: set[str] = field(default_factory=set)
    command_keymaps: list[KeymapSpec] = field(default_factory=list)

    @property
    def is_idle(self) -> bool:
        return self.surface_id is None and self.channel_id is None and self.process_id is None

    @property
    def is_active(self) -> bool:
        return self.surface_id is not None and self.channel_id is not None and self.process_id is not None

    def bind_surface(self, surface_id: int) -> None:
        self.surface_id = surface_id
        self.installed = set()
        self.command_keymaps = []

    def reset(self) -> None:
        self.surface_id = None
        self.channel_id = None
        self.process_id = None
        self.installed = set()
        self.command_keymaps = []


_REGION_STYLE = {
    SessionKind.SPLIT: REGION_SPLIT,
    SessionKind.FLOATING: REGION_FLOATING,
}
_HIDDEN_POLICY = {
    SessionKind.SPLIT: HIDDEN_WIPE,
    SessionKind.FLOATING: HIDDEN_HIDE,
}
_BLOCKED_KEYS = ("i", "c", "a")


class SessionManager:
    """Owns the split and floating sessions and every mutation of them."""

    def __init__(
        self,
        surfaces: SurfaceHost,
        processes: ProcessHost,
        loop: EventLoop,
        *,
        environment: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> None:
        self.surfaces = surfaces
        self.processes = processes
        self.loop = loop
        self.environment = dict(PROCESS_ENVIRONMENT if environment is None else environment)
        self.cwd = cwd
        self.sessions: dict[SessionKind, Session] = {kind: Session(kind=kind) for kind in SessionKind}

    def session(self, kind: SessionKind) -> Session:
        return self.sessions[kind]

    # -- run ------------------------------------------------------------

    def run(
        self,
        command: str,
        kind: SessionKind = SessionKind.SPLIT,
        keymaps: Iterable[KeymapSpec] = (),
    ) -> Session:
        """Run ``command`` in the session of ``kind``, reusing its surface."""
        session = self.sessions[kind]

        if session.surface_id is not None and not self.surfaces.is_valid(session.surface_id):
            logger.debug("%s session surface %s is gone; resetting", kind.value, session.surface_id)
            session.reset()

        if session.process_id is not None:
            self.processes.stop(session.process_id)
            session.process_id = None

        if session.channel_id is not None:
            self.surfaces.close_channel(session.channel_id)
            session.channel_id = None

        try:
            region_id = self._show_surface(session)
            assert session.surface_id is not None
            surface_id = session.surface_id
            self.surfaces.set_title(surface_id, f" {command} ")
            channel_id = self.surfaces.open_channel(surface_id)
        except ResourceError as exc:
            logger.warning("could not prepare %s session for %r: %s", kind.value, command, exc)
            self._abandon(session)
            raise
        session.channel_id = channel_id

        surface = self.surfaces.surface(surface_id)
        surface.cursor = 0
        surface.visual_anchor = None
        self.surfaces.send(channel_id, TERMINAL_RESET)
        self.surfaces.set_modifiable(surface_id, True)

        width, height = self.surfaces.region_size(region_id)
        try:
            job_id = self.processes.start(
                command,
                width=width,
                height=height,
                env=self.environment,
                on_output=partial(self._on_output, channel_id),
                on_exit=partial(self._on_exit, session),
                cwd=self.cwd,
            )
        except ProcessStartError as exc:
            logger.warning("%s", exc)
            self.surfaces.send(channel_id, f"Failed to start command: {command}\r\n")
        else:
            session.process_id = job_id

        self._install_base_keymaps(session)
        self._replace_command_keymaps(session, keymaps)
        self.surfaces.stop_insert()
        self._install_cleanup(session)
        return session

    def _show_surface(self, session: Session) -> int:
        style = _REGION_STYLE[session.kind]
        if session.surface_id is not None:
            regions = self.surfaces.regions_for(session.surface_id)
            if regions:
                self.surfaces.focus_region(regions[0])
                return regions[0]
            return self.surfaces.open_region(session.surface_id, style)

        surface_id = self.surfaces.create_surface(hidden=_HIDDEN_POLICY[session.kind])
        session.bind_surface(surface_id)
        return self.surfaces.open_region(surface_id, style)

    def _abandon(self, session: Session) -> None:
        surface_id = session.surface_id
        session.reset()
        if surface_id is not None:
            self.surfaces.destroy_surface(surface_id)

    # -- process callbacks ----------------------------------------------

    def _on_output(self, channel_id: int, _job_id: int, data: bytes) -> None:
        # A replaced job still drains into its closed channel; send drops it.
        self.surfaces.send(channel_id, data)

    def _on_exit(self, session: Session, job_id: int, returncode: int) -> None:
        if session.process_id != job_id:
            return
        session.process_id = None
        logger.debug("%s session job %d finished (%d)", session.kind.value, job_id, returncode)
        if session.surface_id is not None:
            self.loop.schedule(partial(self._finish_output, session.surface_id))

    def _finish_output(self, surface_id: int) -> None:
        if not self.surfaces.is_valid(surface_id):
            return
        self.surfaces.set_modifiable(surface_id, False)
        if self.surfaces.current_surface() == surface_id:
            self.surfaces.stop_insert()

    # -- keymaps --------------------------------------------------------

    def _install_base_keymaps(self, session: Session) -> None:
        if CAP_BASE_KEYMAPS in session.installed or session.surface_id is None:
            return
        surface_id = session.surface_id
        modes = (MODE_NORMAL, MODE_VISUAL)
        for key in _BLOCKED_KEYS:
            self.surfaces.keymap_set(surface_id, modes, key, _ignore_key)
        kind = session.kind
        self.surfaces.keymap_set(surface_id, modes, "q", partial(self.close, kind), desc="Close the session")
        if kind is SessionKind.FLOATING:
            self.surfaces.keymap_set(surface_id, (MODE_NORMAL,), "ESC", partial(self.hide, kind), desc="Hide the session")
        else:
            self.surfaces.keymap_set(surface_id, (MODE_NORMAL,), "ESC", partial(self.close, kind), desc="Close the session")
        session.installed.add(CAP_BASE_KEYMAPS)

    def _replace_command_keymaps(self, session: Session, keymaps: Iterable[KeymapSpec]) -> None:
        surface_id = session.surface_id
        if surface_id is None:
            return
        for keymap in session.command_keymaps:
            for mode in keymap.modes:
                try:
                    self.surfaces.keymap_del(surface_id, mode, keymap.trigger)
                except KeyError:
                    logger.debug("keymap %s/%s already removed", mode, keymap.trigger)
        session.command_keymaps = []
        for keymap in keymaps:
            self.surfaces.keymap_set(surface_id, keymap.modes, keymap.trigger, keymap.handler, desc=keymap.desc)
            session.command_keymaps.append(keymap)

    def _install_cleanup(self, session: Session) -> None:
        if CAP_CLEANUP in session.installed or session.surface_id is None:
            return
        self.surfaces.on_destroy(session.surface_id, partial(self._on_surface_destroyed, session))
        session.installed.add(CAP_CLEANUP)

    def _on_surface_destroyed(self, session: Session, surface_id: int) -> None:
        if session.surface_id != surface_id:
            return
        logger.debug("%s session surface %d destroyed", session.kind.value, surface_id)
        if session.channel_id is not None:
            self.surfaces.close_channel(session.channel_id)
        if session.process_id is not None:
            self.processes.stop(session.process_id)
        session.reset()

    # -- user actions ---------------------------------------------------

    def close(self, kind: SessionKind = SessionKind.SPLIT) -> None:
        """Destroy the session surface, or close the focused region if none."""
        session = self.sessions[kind]
        if self.surfaces.is_valid(session.surface_id):
            assert session.surface_id is not None
            self.surfaces.destroy_surface(session.surface_id)
            return
        region = self.surfaces.current_region
        if region is not None and region.style != REGION_MAIN:
            self.surfaces.close_region(region.id)

    def hide(self, kind: SessionKind = SessionKind.FLOATING) -> None:
        session = self.sessions[kind]
        if not self.surfaces.is_valid(session.surface_id):
            return
        assert session.surface_id is not None
        for region_id in self.surfaces.regions_for(session.surface_id):
            self.surfaces.close_region(region_id)

    def shutdown(self) -> None:
        for session in self.sessions.values():
            if session.process_id is not None:
                self.processes.stop(session.process_id)
            if session.channel_id is not None:
                self.surfaces.close_channel(session.channel_id)
            session.reset()
        self.processes.shutdown()


def _ignore_key() -> None:
    """Swallow editing triggers on output-only surfaces."""
