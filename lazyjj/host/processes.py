"""Pseudo-terminal backed subprocesses driven by the event loop.

Each job runs ``/bin/sh -c <command>`` with its stdio attached to a fresh
pty sized to the region that displays it. Output chunks and the final exit
are delivered from ``EventLoop`` turns, so they never run concurrently with
key handling. Exit codes are polled, never waited for.
"""

from __future__ import annotations

import errno
import fcntl
import itertools
import logging
import os
import pty
import signal
import struct
import subprocess
import termios
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from ..errors import ProcessStartError
from .loop import EventLoop

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 65536
REAP_INTERVAL_SECONDS = 0.05

OutputCallback = Callable[[int, bytes], None]
ExitCallback = Callable[[int, int], None]


@dataclass
class _Job:
    id: int
    command: str
    process: subprocess.Popen[bytes]
    master_fd: int
    on_output: OutputCallback
    on_exit: ExitCallback
    output_closed: bool = False


def set_window_size(fd: int, columns: int, rows: int) -> None:
    winsize = struct.pack("HHHH", max(1, rows), max(1, columns), 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


class ProcessHost:
    """Start, feed, and stop pty jobs; job ids are positive integers."""

    def __init__(self, loop: EventLoop, shell: str = "/bin/sh") -> None:
        self.loop = loop
        self.shell = shell
        self._jobs: dict[int, _Job] = {}
        self._job_ids = itertools.count(1)

    def start(
        self,
        command: str,
        *,
        width: int,
        height: int,
        env: Mapping[str, str],
        on_output: OutputCallback,
        on_exit: ExitCallback,
        cwd: str | os.PathLike[str] | None = None,
    ) -> int:
        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as exc:
            raise ProcessStartError(f"Failed to open pseudo-terminal: {exc}") from exc

        try:
            set_window_size(slave_fd, width, height)
            process = subprocess.Popen(
                [self.shell, "-c", command],
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                env={**os.environ, **env},
                cwd=cwd,
                start_new_session=True,
                close_fds=True,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            os.close(master_fd)
            raise ProcessStartError(f"Failed to start command: {command}: {exc}") from exc
        finally:
            os.close(slave_fd)

        job_id = next(self._job_ids)
        self._jobs[job_id] = _Job(
            id=job_id,
            command=command,
            process=process,
            master_fd=master_fd,
            on_output=on_output,
            on_exit=on_exit,
        )
        self.loop.add_reader(master_fd, lambda: self._on_readable(job_id))
        logger.info("started job %d (pid %d): %s", job_id, process.pid, command)
        return job_id

    def resize(self, job_id: int, width: int, height: int) -> None:
        job = self._jobs.get(job_id)
        if job is None or job.output_closed:
            return
        try:
            set_window_size(job.master_fd, width, height)
        except OSError:
            logger.debug("resize of job %d failed", job_id, exc_info=True)

    def stop(self, job_id: int) -> None:
        """Request termination without waiting; output keeps draining until EOF."""
        job = self._jobs.get(job_id)
        if job is None or job.process.poll() is not None:
            return
        logger.info("stopping job %d", job_id)
        try:
            os.killpg(job.process.pid, signal.SIGTERM)
        except (ProcessLookupError, PermissionError):
            pass

    def shutdown(self) -> None:
        """Signal every job and release its pty; exits are no longer reported."""
        for job_id in list(self._jobs):
            self.stop(job_id)
            job = self._jobs.pop(job_id)
            self._close_output(job)

    def _on_readable(self, job_id: int) -> None:
        job = self._jobs.get(job_id)
        if job is None or job.output_closed:
            return
        try:
            data = os.read(job.master_fd, READ_CHUNK_BYTES)
        except OSError as exc:
            # Linux reports EIO on the master once every slave fd is closed.
            if exc.errno not in (errno.EIO, errno.EBADF):
                logger.warning("reading job %d failed: %s", job_id, exc)
            data = b""
        if data:
            job.on_output(job_id, data)
            return
        self._close_output(job)
        self._reap(job_id)

    def _close_output(self, job: _Job) -> None:
        if job.output_closed:
            return
        job.output_closed = True
        self.loop.remove_reader(job.master_fd)
        try:
            os.close(job.master_fd)
        except OSError:
            pass

    def _reap(self, job_id: int) -> None:
        """Report the exit once the process is gone; poll again on a later turn."""
        job = self._jobs.get(job_id)
        if job is None:
            return
        returncode = job.process.poll()
        if returncode is None:
            self.loop.call_later(REAP_INTERVAL_SECONDS, lambda: self._reap(job_id))
            return
        del self._jobs[job_id]
        logger.info("job %d exited with %d", job_id, returncode)
        job.on_exit(job_id, returncode)
