"""Silent ``jj`` invocations: environment check, execute, and status files.

These run to completion with captured output, unlike session commands
which stream into a terminal surface.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path

from .errors import CommandError, JJEnvironmentError
from .parser import FileChangeRecord, parse_file_change_from_status_line

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

# Captured output is parsed or shown in notifications, so keep it plain.
_SILENT_ENVIRONMENT = {
    "PAGER": "cat",
    "NO_COLOR": "1",
    "JJ_EDITOR": "true",
}


class JJTool:
    def __init__(
        self,
        executable: str = "jj",
        cwd: Path | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.executable = executable
        self.cwd = (cwd or Path.cwd()).resolve()
        self.timeout_seconds = timeout_seconds

    def command(self, *args: str) -> str:
        """Build a shell command line; ``args`` are inserted as-is."""
        return " ".join([shlex.quote(self.executable), *args])

    def check_environment(self) -> Path:
        """Return the repository root or raise ``JJEnvironmentError``."""
        if shutil.which(self.executable) is None:
            raise JJEnvironmentError(f"`{self.executable}` executable not found in PATH")
        try:
            proc = subprocess.run(
                [self.executable, "root"],
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout_seconds,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise JJEnvironmentError(f"Failed to run `{self.executable} root`: {exc}") from exc
        if proc.returncode != 0:
            raise JJEnvironmentError("Not in a jj repository")
        return Path(proc.stdout.strip())

    def execute(self, command: str, error_prefix: str, input_text: str | None = None) -> str:
        """Run a shell command line and return stdout; failures raise ``CommandError``."""
        logger.info("executing: %s", command)
        try:
            proc = subprocess.run(
                command,
                shell=True,
                cwd=self.cwd,
                input=input_text,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout_seconds,
                env={**os.environ, **_SILENT_ENVIRONMENT},
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise CommandError(f"{error_prefix}: {exc}") from exc
        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout).strip()
            logger.warning("command failed (%d): %s: %s", proc.returncode, command, detail)
            raise CommandError(f"{error_prefix}: {detail}" if detail else error_prefix, output=proc.stdout)
        return proc.stdout

    def status_files(self) -> list[FileChangeRecord]:
        output = self.execute(self.command("status", "--color", "never"), "Failed to get status")
        records: list[FileChangeRecord] = []
        for line in output.splitlines():
            record = parse_file_change_from_status_line(line)
            if record is not None:
                records.append(record)
        return records

    def resolve(self, path: str) -> Path:
        return self.cwd / path
