"""Command façade: builds ``jj`` command lines and picks session keymaps.

Every public operation checks the ``jj`` environment first and converts
``LazyJJError`` failures into a single error notification. Commands either
stream into a session (``SessionManager.run``) or run silently through
``JJTool`` with a result notification.
"""

from __future__ import annotations

import functools
import logging
import shlex
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from .config import DEFAULT_LOG_LIMIT, Settings
from .describe import build_describe_scaffold, strip_describe_scaffold
from .errors import CommandError, JJEnvironmentError, LazyJJError
from .parser import parse_file_change_from_status_line, parse_revision_from_log_line
from .prompt import PromptCallback
from .session import KeymapSpec, SessionKind, SessionManager
from .tool import JJTool

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

STATUS_SUBCOMMANDS = frozenset({"st", "status"})
LOG_SUBCOMMANDS = frozenset({"log"})


@dataclass(frozen=True)
class CommandUI:
    """User-interface operations the façade needs from the application."""

    notify: Callable[[str, int], None]
    prompt: Callable[[str, PromptCallback, str], None]
    current_line: Callable[[], str]
    current_file: Callable[[], Path | None]
    open_file: Callable[[Path], None]
    edit_lines: Callable[[list[str]], list[str] | None]


@dataclass(frozen=True)
class LogOptions:
    summary: bool = False
    reversed: bool = False
    no_graph: bool = False
    limit: int | None = None
    revisions: str | None = None


def build_log_args(options: LogOptions, default_limit: int = DEFAULT_LOG_LIMIT) -> list[str]:
    """Translate ``LogOptions`` into ``jj log`` flags in a fixed order."""
    args: list[str] = []
    for name in ("summary", "reversed", "no_graph"):
        if getattr(options, name):
            args.append("--" + name.replace("_", "-"))
    limit = options.limit if options.limit is not None else default_limit
    if limit:
        args.extend(["--limit", str(int(limit))])
    if options.revisions:
        args.extend(["--revisions", shlex.quote(options.revisions)])
    return args


def subcommand_of(command: str) -> str | None:
    try:
        parts = shlex.split(command)
    except ValueError:
        parts = command.split()
    return parts[1] if len(parts) > 1 else None


def _command(method: F) -> F:
    """Check the environment, then turn recoverable errors into a notification."""

    @functools.wraps(method)
    def wrapper(self: CommandFacade, *args: Any, **kwargs: Any) -> Any:
        if not self.ensure_environment():
            return None
        try:
            return method(self, *args, **kwargs)
        except LazyJJError as exc:
            logger.warning("%s failed: %s", method.__name__, exc)
            self.ui.notify(str(exc), logging.ERROR)
            return None

    return wrapper  # type: ignore[return-value]


class CommandFacade:
    def __init__(
        self,
        sessions: SessionManager,
        tool: JJTool,
        ui: CommandUI,
        settings: Settings | None = None,
    ) -> None:
        self.sessions = sessions
        self.tool = tool
        self.ui = ui
        self.settings = settings or Settings()
        self._environment_ok = False

    def ensure_environment(self) -> bool:
        if self._environment_ok:
            return True
        try:
            self.tool.check_environment()
        except JJEnvironmentError as exc:
            self.ui.notify(str(exc), logging.ERROR)
            return False
        self._environment_ok = True
        return True

    def _notify(self, message: str) -> None:
        self.ui.notify(message, logging.INFO)

    def _guarded(self, callback: PromptCallback) -> PromptCallback:
        """Wrap a prompt callback so its failures are notified, not raised."""

        def run(value: str | None) -> None:
            try:
                callback(value)
            except LazyJJError as exc:
                logger.warning("prompt action failed: %s", exc)
                self.ui.notify(str(exc), logging.ERROR)

        return run

    def _close_split(self) -> None:
        self.sessions.close(SessionKind.SPLIT)

    # -- sessions -------------------------------------------------------

    def keymaps_for(self, command: str) -> list[KeymapSpec]:
        subcommand = subcommand_of(command)
        if subcommand in STATUS_SUBCOMMANDS:
            return [
                KeymapSpec.normal("ENTER", self.open_file_under_cursor, "Open file under cursor"),
                KeymapSpec.normal("X", self.restore_file_under_cursor, "Restore file under cursor"),
            ]
        if subcommand in LOG_SUBCOMMANDS:
            return [
                KeymapSpec.normal("ENTER", self.edit_revision_under_cursor, "Edit change under cursor"),
                KeymapSpec.normal("d", self.diff_revision_under_cursor, "Diff change under cursor"),
            ]
        return []

    def run_in_session(self, command: str, kind: SessionKind = SessionKind.SPLIT) -> None:
        self.sessions.run(command, kind, self.keymaps_for(command))

    # -- keymap handlers ------------------------------------------------

    @_command
    def open_file_under_cursor(self) -> None:
        change = parse_file_change_from_status_line(self.ui.current_line())
        if change is None:
            return
        path = self.tool.resolve(change.new_path)
        if not path.exists():
            raise CommandError(f"File not found: {change.new_path}")
        self.ui.open_file(path)

    @_command
    def restore_file_under_cursor(self) -> None:
        change = parse_file_change_from_status_line(self.ui.current_line())
        if change is None:
            return

        if change.is_rename:
            try:
                self.tool.resolve(change.new_path).unlink()
            except OSError as exc:
                raise CommandError(f"Failed to remove renamed file: {exc}") from exc
            self.tool.execute(
                self.tool.command("restore", "--from", "@-", shlex.quote(change.old_path)),
                "Failed to restore original file",
            )
            self._notify(f"Reverted rename: {change.new_path} -> {change.old_path}")
        else:
            self.tool.execute(
                self.tool.command("restore", shlex.quote(change.old_path)),
                "Failed to restore",
            )
            self._notify(f"Restored: {change.old_path}")
        self.status()

    @_command
    def edit_revision_under_cursor(self) -> None:
        revision = parse_revision_from_log_line(self.ui.current_line())
        if revision is None:
            return
        self.tool.execute(self.tool.command("edit", revision.id), "Error editing change")
        self._notify(f"Editing change: `{revision.id}`")
        self._close_split()

    @_command
    def diff_revision_under_cursor(self) -> None:
        revision = parse_revision_from_log_line(self.ui.current_line())
        if revision is None:
            raise CommandError("No valid revision found in the log line")
        self.run_in_session(self.tool.command("show", revision.id), SessionKind.FLOATING)

    # -- operations -----------------------------------------------------

    @_command
    def status(self, notify: bool = False) -> None:
        command = self.tool.command("st")
        if notify:
            output = self.tool.execute(command, "Failed to get status")
            self._notify(output.rstrip())
            return
        self.run_in_session(command)

    @_command
    def log(self, options: LogOptions | None = None) -> None:
        args = build_log_args(options or LogOptions(), self.settings.log_limit)
        self.run_in_session(self.tool.command("log", *args))

    @_command
    def diff(self, current: bool = False) -> None:
        if not current:
            self.run_in_session(self.tool.command("diff"))
            return
        path = self.ui.current_file()
        if path is None:
            raise CommandError("Current buffer is not a file")
        self.run_in_session(self.tool.command("diff", shlex.quote(str(path))))

    def _execute_describe(self, description: str) -> None:
        if not description:
            raise CommandError("Description cannot be empty")
        self.tool.execute(self.tool.command("describe", "--stdin"), "Failed to describe", input_text=description)
        self._notify("Description set.")

    @_command
    def describe(self, description: str | None = None, with_status: bool = True) -> None:
        if description is not None:
            self._execute_describe(description)
            return

        if self.settings.describe_editor == "buffer":
            scaffold = build_describe_scaffold(self.tool.status_files())
            edited = self.ui.edit_lines(scaffold)
            if edited is None:
                return
            self._execute_describe(strip_describe_scaffold(edited))
            return

        if with_status:
            self.status()

        def on_input(text: str | None) -> None:
            try:
                if text is not None:
                    self._execute_describe(text)
            finally:
                self._close_split()

        self.ui.prompt("Description: ", self._guarded(on_input), "")

    def _execute_new(self, command: str, show_log: bool) -> None:
        self.tool.execute(command, "Failed to create new change")
        self._notify("Command `new` was successful.")
        if show_log:
            self.log()

    @_command
    def new(self, show_log: bool = False, with_input: bool = False, args: str | None = None) -> None:
        if with_input:
            if show_log:
                self.log()

            def on_input(text: str | None) -> None:
                if text is None:
                    self._close_split()
                    return
                parents = [shlex.quote(part) for part in text.split()]
                self._execute_new(self.tool.command("new", *parents), show_log)

            self.ui.prompt("Parent(s) of the new change [default: @]: ", self._guarded(on_input), "")
            return

        command = self.tool.command("new", args) if args else self.tool.command("new")
        self._execute_new(command, show_log)

    @_command
    def edit(self) -> None:
        self.log()

        def on_input(text: str | None) -> None:
            if not text:
                self._close_split()
                return
            self.tool.execute(self.tool.command("edit", shlex.quote(text)), "Error editing change")
            self.log()

        self.ui.prompt("Change to edit: ", self._guarded(on_input), "")

    @_command
    def squash(self) -> None:
        self.tool.execute(self.tool.command("squash"), "Failed to squash")
        self._notify("Command `squash` was successful.")

    @_command
    def rebase(self) -> None:
        self.log()

        def on_input(destination: str | None) -> None:
            if not destination:
                self._close_split()
                return
            self._notify(f"Beginning rebase on {destination}")
            self.tool.execute(self.tool.command("rebase", "-d", shlex.quote(destination)), "Error rebasing")
            self._notify("Rebase successful.")
            self.log()

        self.ui.prompt("Rebase destination: ", self._guarded(on_input), "trunk()")

    def _bookmark(self, action: str, error_prefix: str, success: str) -> None:
        self.log()

        def on_input(name: str | None) -> None:
            if not name:
                self._close_split()
                return
            self.tool.execute(self.tool.command("bookmark", action, shlex.quote(name)), error_prefix)
            self._notify(success.format(name=name))
            self.log()

        self.ui.prompt("Bookmark name: ", self._guarded(on_input), "")

    @_command
    def bookmark_create(self) -> None:
        self._bookmark("create", "Error creating bookmark", "Bookmark `{name}` created successfully for @")

    @_command
    def bookmark_delete(self) -> None:
        self._bookmark("delete", "Error deleting bookmark", "Bookmark `{name}` deleted successfully.")

    @_command
    def j(self, args: str | Sequence[str] = ()) -> None:
        """Passthrough for ``:J <args>`` with routing for interactive subcommands."""
        parts = args.split() if isinstance(args, str) else list(args)
        if not parts:
            self.run_in_session(self.tool.command())
            return

        subcommand, rest = parts[0], parts[1:]
        if subcommand in {"describe", "desc"}:
            self.describe(" ".join(rest) or None)
        elif subcommand == "edit" and not rest:
            self.edit()
        elif subcommand == "new":
            self.new(show_log=True, args=" ".join(rest) or None)
        elif subcommand == "rebase":
            self.rebase()
        else:
            self.run_in_session(self.tool.command(*parts))
