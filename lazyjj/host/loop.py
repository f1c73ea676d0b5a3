"""Single-threaded cooperative event loop.

Readers registered for file descriptors are dispatched when ``select``
reports them ready; deferred tasks posted with ``schedule`` run at the end
of the turn that follows their posting, never inside the callback that
posted them.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import select
import time
from collections import deque
from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)

DeferredTask = Callable[[], None]
ReaderCallback = Callable[[], None]


class EventLoop:
    """Select-based loop shared by the pty processes and the key reader."""

    def __init__(self) -> None:
        self._deferred: deque[DeferredTask] = deque()
        self._readers: dict[int, ReaderCallback] = {}
        self._timers: list[tuple[float, int, DeferredTask]] = []
        self._timer_ids = itertools.count()

    def schedule(self, task: DeferredTask) -> None:
        """Post ``task`` to run after the current event-processing turn."""
        self._deferred.append(task)

    def call_later(self, delay: float, task: DeferredTask) -> None:
        """Run ``task`` at the end of the first turn finishing ``delay`` seconds from now."""
        heapq.heappush(self._timers, (time.monotonic() + max(0.0, delay), next(self._timer_ids), task))

    def add_reader(self, fd: int, callback: ReaderCallback) -> None:
        self._readers[fd] = callback

    def remove_reader(self, fd: int) -> None:
        self._readers.pop(fd, None)

    def has_reader(self, fd: int) -> bool:
        return fd in self._readers

    @property
    def pending_tasks(self) -> int:
        return len(self._deferred)

    def run_deferred(self) -> int:
        """Run tasks queued before this call; tasks they post wait a turn."""
        count = len(self._deferred)
        for _ in range(count):
            task = self._deferred.popleft()
            task()
        return count

    def _run_due_timers(self) -> None:
        now = time.monotonic()
        while self._timers and self._timers[0][0] <= now:
            _, _, task = heapq.heappop(self._timers)
            task()

    def run_turn(self, timeout: float | None = 0.0, extra_fds: Iterable[int] = ()) -> list[int]:
        """Run one loop turn and return the ready fds from ``extra_fds``.

        Reader callbacks are dispatched in fd registration order, then due
        timers run and the deferred queue is drained. ``extra_fds`` are polled but not handled,
        so the caller can read stdin itself.
        """
        extras = list(extra_fds)
        watched = list(self._readers) + [fd for fd in extras if fd not in self._readers]
        if self._deferred:
            timeout = 0.0
        elif self._timers:
            until_due = max(0.0, self._timers[0][0] - time.monotonic())
            timeout = until_due if timeout is None else min(timeout, until_due)
        ready: list[int] = []
        if watched:
            try:
                ready, _, _ = select.select(watched, [], [], timeout)
            except InterruptedError:
                ready = []
        elif self._timers and timeout:
            time.sleep(timeout)
        for fd in list(self._readers):
            if fd in ready:
                callback = self._readers.get(fd)
                if callback is not None:
                    callback()
        self._run_due_timers()
        self.run_deferred()
        return [fd for fd in extras if fd in ready]
