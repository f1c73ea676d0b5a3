"""Describe-message scaffolding and external editor launching.

The multi-line describe flow writes a ``JJ:``-prefixed scaffold to a
temporary file, runs ``$EDITOR`` on it while the TUI is suspended, and
strips the scaffold lines from what comes back.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Callable

from .parser import FileChangeRecord

SCAFFOLD_PREFIX = "JJ:"
FALLBACK_EDITOR = "vi"


def build_describe_scaffold(changes: Iterable[FileChangeRecord]) -> list[str]:
    lines = [f"{SCAFFOLD_PREFIX} This commit contains the following changes:"]
    for change in changes:
        lines.append(f"{SCAFFOLD_PREFIX}     {change.status.value} {change.display_path}")
    lines.append(SCAFFOLD_PREFIX)
    lines.append(f'{SCAFFOLD_PREFIX} Lines starting with "{SCAFFOLD_PREFIX}" (like this one) will be ignored when finalizing')
    lines.append("")
    lines.append("")
    return lines


def strip_describe_scaffold(lines: Iterable[str]) -> str:
    """Drop ``JJ:`` lines, join the rest, and trim surrounding whitespace."""
    kept = [line for line in lines if not line.startswith(SCAFFOLD_PREFIX)]
    return "\n".join(kept).strip()


def launch_editor(
    target: Path,
    disable_tui_mode: Callable[[], None],
    enable_tui_mode: Callable[[], None],
    fallback: str | None = None,
) -> str | None:
    """Run ``$EDITOR`` (or ``fallback``) on ``target``; returns an error message instead of raising."""
    editor_env = os.environ.get("EDITOR", "").strip() or (fallback or "")
    if not editor_env:
        return "Cannot edit: $EDITOR is not set."
    cmd = shlex.split(editor_env)
    if not cmd:
        return "Cannot edit: $EDITOR is empty."

    disable_tui_mode()
    try:
        subprocess.run([*cmd, str(target)], check=False)
    except OSError as exc:
        return f"Failed to launch editor: {exc}"
    finally:
        enable_tui_mode()
    return None


def edit_lines(
    initial: list[str],
    disable_tui_mode: Callable[[], None],
    enable_tui_mode: Callable[[], None],
) -> tuple[list[str] | None, str | None]:
    """Edit ``initial`` in ``$EDITOR`` (``vi`` when unset) and return ``(lines, error)``."""
    fd, raw_path = tempfile.mkstemp(prefix="lazyjj-describe-", suffix=".jjdescription")
    path = Path(raw_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write("\n".join(initial) + "\n")
        error = launch_editor(path, disable_tui_mode, enable_tui_mode, fallback=FALLBACK_EDITOR)
        if error is not None:
            return None, error
        return path.read_text(encoding="utf-8").splitlines(), None
    finally:
        path.unlink(missing_ok=True)
