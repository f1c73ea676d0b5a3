"""Integration tests for pty-backed processes driven by the event loop."""

from __future__ import annotations

import os
import time
import unittest

from lazyjj.errors import ProcessStartError
from lazyjj.host.loop import EventLoop
from lazyjj.host.processes import ProcessHost


@unittest.skipUnless(os.path.exists("/bin/sh"), "requires /bin/sh")
class ProcessHostTests(unittest.TestCase):
    def setUp(self) -> None:
        self.loop = EventLoop()
        self.host = ProcessHost(self.loop)
        self.output: list[bytes] = []
        self.exits: list[tuple[int, int]] = []

    def tearDown(self) -> None:
        self.host.shutdown()

    def _start(self, command: str, **kwargs) -> int:
        return self.host.start(
            command,
            width=40,
            height=10,
            env={"LAZYJJ_TEST": "yes"},
            on_output=lambda _job, data: self.output.append(data),
            on_exit=lambda job, rc: self.exits.append((job, rc)),
            **kwargs,
        )

    def _pump_until_exit(self, timeout: float = 5.0) -> None:
        deadline = time.monotonic() + timeout
        while not self.exits and time.monotonic() < deadline:
            self.loop.run_turn(timeout=0.05)

    def test_output_and_exit_are_reported(self) -> None:
        job_id = self._start('printf "%s" "$LAZYJJ_TEST"; exit 3')
        self._pump_until_exit()
        self.assertEqual(b"".join(self.output), b"yes")
        self.assertEqual(self.exits, [(job_id, 3)])

    def test_window_size_is_applied(self) -> None:
        self._start("stty size")
        self._pump_until_exit()
        self.assertEqual(b"".join(self.output).strip(), b"10 40")

    def test_stop_terminates_process_group(self) -> None:
        job_id = self._start("sleep 30")
        self.host.stop(job_id)
        self._pump_until_exit()
        self.assertEqual(len(self.exits), 1)
        self.assertNotEqual(self.exits[0][1], 0)

    def test_process_that_detaches_stdio_is_reaped_without_blocking(self) -> None:
        job_id = self._start("exec >/dev/null 2>&1 </dev/null; sleep 1; exit 0")
        worst = 0.0
        deadline = time.monotonic() + 5.0
        while not self.exits and time.monotonic() < deadline:
            started = time.monotonic()
            self.loop.run_turn(timeout=0.05)
            worst = max(worst, time.monotonic() - started)
        self.assertEqual(self.exits, [(job_id, 0)])
        self.assertLess(worst, 0.5)

    def test_invalid_working_directory_raises(self) -> None:
        with self.assertRaises(ProcessStartError):
            self._start("true", cwd="/nonexistent/lazyjj-test-dir")


if __name__ == "__main__":
    unittest.main()
