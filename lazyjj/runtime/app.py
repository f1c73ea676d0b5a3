"""Interactive application wiring the host, sessions, and command façade.

The main loop keeps the host geometry in sync with the terminal, renders
when something changed, runs one event-loop turn, and dispatches keys:
the prompt first, then the focused surface's keymaps, then global keys.
"""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Callable
from functools import partial
from pathlib import Path

from ..commands import CommandFacade, CommandUI, LogOptions
from ..config import Settings, save_split_percent
from ..describe import edit_lines, launch_editor
from ..errors import CommandError
from ..highlight import render_file
from ..host import HIDDEN_HIDE, REGION_MAIN, REGION_SPLIT, EventLoop, ProcessHost, SurfaceHost
from ..prompt import Prompt, PromptCallback
from ..session import SessionManager
from ..tool import JJTool
from .reader import has_pending_key, read_key
from .render import render_frame
from .terminal import TerminalController

logger = logging.getLogger(__name__)

FRAME_TIMEOUT_SECONDS = 0.05
SPLIT_RESIZE_STEP = 0.05
COMMAND_PROMPT_LABEL = ":J "


class LazyJJApp:
    """One interactive session over a viewer region plus jj sessions."""

    def __init__(
        self,
        path: Path | None,
        settings: Settings,
        *,
        tool: JJTool | None = None,
        processes: ProcessHost | None = None,
        no_color: bool = False,
        columns: int = 80,
        lines: int = 24,
    ) -> None:
        self.settings = settings
        self.no_color = no_color
        self.tool = tool or JJTool(settings.jj_executable)
        self.loop = EventLoop()
        self.surfaces = SurfaceHost(
            columns,
            lines,
            split_ratio=settings.split_ratio,
            floating_ratio=settings.floating_ratio,
        )
        self.processes = processes if processes is not None else ProcessHost(self.loop)
        self.sessions = SessionManager(self.surfaces, self.processes, self.loop, cwd=str(self.tool.cwd))
        self.prompt = Prompt()
        self.terminal: TerminalController | None = None
        self.running = True
        self.viewer_path: Path | None = None
        self.viewer_surface = self.surfaces.create_surface(hidden=HIDDEN_HIDE, title=" lazyjj ")
        self.surfaces.open_region(self.viewer_surface, REGION_MAIN)
        self.commands = CommandFacade(
            self.sessions,
            self.tool,
            CommandUI(
                notify=self.notify,
                prompt=self.open_prompt,
                current_line=self.surfaces.current_line,
                current_file=self.current_file,
                open_file=self.open_file,
                edit_lines=self.edit_lines,
            ),
            settings,
        )
        self._global_keys: dict[str, Callable[[], None]] = self._build_global_keys()
        if path is not None and path.is_file():
            try:
                self.open_file(path)
            except CommandError as exc:
                self.notify(str(exc), logging.ERROR)

    def _build_global_keys(self) -> dict[str, Callable[[], None]]:
        surfaces = self.surfaces
        commands = self.commands
        return {
            "j": partial(surfaces.move_cursor, 1),
            "DOWN": partial(surfaces.move_cursor, 1),
            "k": partial(surfaces.move_cursor, -1),
            "UP": partial(surfaces.move_cursor, -1),
            "g": partial(surfaces.set_cursor, 0),
            "HOME": partial(surfaces.set_cursor, 0),
            "G": self._cursor_to_end,
            "END": self._cursor_to_end,
            "CTRL_D": partial(self._half_page, 1),
            "CTRL_U": partial(self._half_page, -1),
            "TAB": surfaces.cycle_focus,
            "v": surfaces.start_visual,
            "ESC": surfaces.stop_insert,
            ":": self._open_command_prompt,
            "s": commands.status,
            "S": partial(commands.status, notify=True),
            "l": commands.log,
            "L": partial(commands.log, LogOptions(summary=True)),
            "d": partial(commands.diff, current=True),
            "D": commands.describe,
            "n": commands.new,
            "N": partial(commands.new, show_log=True, with_input=True),
            "E": commands.edit,
            "R": commands.rebase,
            "b": commands.bookmark_create,
            "B": commands.bookmark_delete,
            "e": self._edit_viewer_file,
            "q": self._quit_from_viewer,
            "CTRL_C": self.quit,
            "SHIFT_UP": partial(self._resize_split, SPLIT_RESIZE_STEP),
            "SHIFT_DOWN": partial(self._resize_split, -SPLIT_RESIZE_STEP),
        }

    # -- user interface for the command façade -------------------------

    def notify(self, message: str, level: int = logging.INFO) -> None:
        self.surfaces.notify(message, level)

    def open_prompt(self, label: str, callback: PromptCallback, default: str = "") -> None:
        self.prompt.open(label, callback, default)
        self.surfaces.dirty = True

    def current_file(self) -> Path | None:
        return self.viewer_path

    def open_file(self, path: Path) -> None:
        """Show ``path`` in the viewer region and focus it."""
        try:
            text = render_file(path, self.settings.style, self.no_color)
        except OSError as exc:
            raise CommandError(f"Failed to open {path}: {exc}") from exc
        self.surfaces.set_text(self.viewer_surface, text)
        self.surfaces.set_title(self.viewer_surface, f" {path.name} ")
        self.viewer_path = path
        regions = self.surfaces.regions_for(self.viewer_surface)
        if regions:
            self.surfaces.focus_region(regions[0])

    def edit_lines(self, lines: list[str]) -> list[str] | None:
        edited, error = edit_lines(lines, self._suspend, self._resume)
        if error is not None:
            raise CommandError(error)
        return edited

    # -- global key actions --------------------------------------------

    def _suspend(self) -> None:
        if self.terminal is not None:
            self.terminal.disable_tui_mode()

    def _resume(self) -> None:
        if self.terminal is not None:
            self.terminal.enable_tui_mode()
        self.surfaces.dirty = True

    def _cursor_to_end(self) -> None:
        surface_id = self.surfaces.current_surface()
        if surface_id is None:
            return
        self.surfaces.set_cursor(self.surfaces.surface(surface_id).buffer.line_count() - 1)

    def _half_page(self, direction: int) -> None:
        region = self.surfaces.current_region
        if region is None:
            return
        _, height = self.surfaces.region_size(region.id)
        self.surfaces.move_cursor(direction * max(1, height // 2))

    def _open_command_prompt(self) -> None:
        def on_input(text: str | None) -> None:
            if text is not None:
                self.commands.j(text)

        self.open_prompt(COMMAND_PROMPT_LABEL, on_input)

    def _edit_viewer_file(self) -> None:
        if self.surfaces.current_surface() != self.viewer_surface:
            return
        if self.viewer_path is None:
            self.notify("No file open in the viewer", logging.WARNING)
            return
        error = launch_editor(self.viewer_path, self._suspend, self._resume)
        if error is not None:
            self.notify(error, logging.ERROR)
            return
        try:
            self.open_file(self.viewer_path)
        except CommandError as exc:
            self.notify(str(exc), logging.ERROR)

    def _quit_from_viewer(self) -> None:
        if self.surfaces.current_surface() == self.viewer_surface:
            self.quit()

    def quit(self) -> None:
        self.running = False

    def _resize_split(self, delta: float) -> None:
        if not self.surfaces.regions(REGION_SPLIT):
            return
        ratio = max(0.1, min(0.9, self.surfaces.split_ratio + delta))
        self.surfaces.split_ratio = ratio
        self.surfaces.dirty = True
        usable = max(1, self.surfaces.lines - 1)
        save_split_percent(usable, int(usable * ratio))
        self._sync_process_sizes()

    def _sync_process_sizes(self) -> None:
        for session in self.sessions.sessions.values():
            if session.process_id is None or not self.surfaces.is_valid(session.surface_id):
                continue
            assert session.surface_id is not None
            regions = self.surfaces.regions_for(session.surface_id)
            if regions:
                width, height = self.surfaces.region_size(regions[0])
                self.processes.resize(session.process_id, width, height)

    # -- dispatch and loop ---------------------------------------------

    def handle_key(self, key: str) -> None:
        if not key:
            return
        if self.surfaces.notification is not None:
            self.surfaces.notification = None
            self.surfaces.dirty = True
        if self.prompt.active:
            self.prompt.handle_key(key)
            self.surfaces.dirty = True
            return
        if self.surfaces.dispatch_key(key):
            return
        handler = self._global_keys.get(key)
        if handler is None:
            logger.debug("unbound key %r", key)
            return
        handler()
        self.surfaces.dirty = True

    def status_text(self) -> str:
        if self.viewer_path is None:
            return f" {self.tool.cwd}"
        try:
            return f" {self.viewer_path.relative_to(self.tool.cwd)}"
        except ValueError:
            return f" {self.viewer_path}"

    def render(self) -> str:
        prompt = self.prompt.render() if self.prompt.active else None
        return render_frame(self.surfaces, status_left=self.status_text(), prompt=prompt)

    def _sync_size(self) -> None:
        if self.terminal is None:
            return
        columns, lines = self.terminal.size()
        if (columns, lines) != (self.surfaces.columns, self.surfaces.lines):
            self.surfaces.resize(columns, lines)
            self._sync_process_sizes()

    def run(self, stdin_fd: int, stdout_fd: int, initial_command: str | None = None) -> None:
        self.terminal = TerminalController(stdin_fd, stdout_fd)
        with self.terminal.raw_mode():
            try:
                self._sync_size()
                if initial_command:
                    self.commands.j(initial_command)
                while self.running:
                    self._sync_size()
                    if self.surfaces.dirty:
                        self.terminal.write(self.render())
                        self.surfaces.dirty = False
                    timeout = 0.0 if has_pending_key() else FRAME_TIMEOUT_SECONDS
                    ready = self.loop.run_turn(timeout=timeout, extra_fds=(stdin_fd,))
                    if stdin_fd in ready or has_pending_key():
                        key = read_key(stdin_fd, timeout_ms=0)
                        if not key and stdin_fd in ready:
                            logger.info("stdin closed; exiting")
                            self.quit()
                            continue
                        self.handle_key(key)
            finally:
                self.sessions.shutdown()


def run_app(path: Path, settings: Settings, *, no_color: bool = False, command: str | None = None) -> None:
    """Start the TUI for ``path`` (a file to view or a directory to work in)."""
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        raise SystemExit("lazyjj requires an interactive terminal")
    target = path.resolve()
    cwd = target if target.is_dir() else target.parent
    columns, lines = shutil.get_terminal_size((80, 24))
    app = LazyJJApp(
        target if target.is_file() else None,
        settings,
        tool=JJTool(settings.jj_executable, cwd),
        no_color=no_color,
        columns=columns,
        lines=lines,
    )
    logger.info("starting lazyjj in %s", cwd)
    app.run(sys.stdin.fileno(), sys.stdout.fileno(), initial_command=command)


__all__ = ["LazyJJApp", "run_app"]
