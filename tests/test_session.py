"""Tests for split/floating session reuse, keymap replacement, and cleanup.

Uses the real surface host and event loop with a fake process host so
process output and exit can be driven deterministically.
"""

from __future__ import annotations

import unittest

from lazyjj.errors import ResourceError
from lazyjj.host import HIDDEN_HIDE, MODE_INSERT, MODE_NORMAL, MODE_VISUAL, REGION_MAIN, EventLoop, SurfaceHost
from lazyjj.session import (
    CAP_BASE_KEYMAPS,
    CAP_CLEANUP,
    PROCESS_ENVIRONMENT,
    KeymapSpec,
    SessionKind,
    SessionManager,
)

from fakes import FakeProcessHost


class SessionManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.loop = EventLoop()
        self.surfaces = SurfaceHost(80, 24)
        viewer = self.surfaces.create_surface(hidden=HIDDEN_HIDE)
        self.viewer_region = self.surfaces.open_region(viewer, REGION_MAIN)
        self.processes = FakeProcessHost()
        self.manager = SessionManager(self.surfaces, self.processes, self.loop, cwd="/repo")

    def test_run_activates_split_session(self) -> None:
        session = self.manager.run("jj st")

        self.assertTrue(session.is_active)
        self.assertEqual(session.installed, {CAP_BASE_KEYMAPS, CAP_CLEANUP})
        job = self.processes.jobs[session.process_id]
        self.assertEqual(job.command, "jj st")
        self.assertEqual(job.cwd, "/repo")
        for key, value in PROCESS_ENVIRONMENT.items():
            self.assertEqual(job.env[key], value)
        self.assertEqual(self.surfaces.surface(session.surface_id).title, " jj st ")
        self.assertEqual(self.surfaces.current_surface(), session.surface_id)
        width, height = self.surfaces.region_size(self.surfaces.regions_for(session.surface_id)[0])
        self.assertEqual((job.width, job.height), (width, height))

    def test_rerun_reuses_surface_and_replaces_process(self) -> None:
        first = self.manager.run("jj st")
        surface_id, first_job, first_channel = first.surface_id, first.process_id, first.channel_id

        second = self.manager.run("jj log")

        self.assertIs(first, second)
        self.assertEqual(second.surface_id, surface_id)
        self.assertIn(first_job, self.processes.stopped)
        self.assertNotEqual(second.process_id, first_job)
        self.assertFalse(self.surfaces.channel_is_open(first_channel))
        self.assertEqual(len(self.surfaces.regions_for(surface_id)), 1)

    def test_repeated_runs_leave_one_surface_channel_and_job(self) -> None:
        self.manager.run("jj st")
        self.manager.run("jj log")
        session = self.manager.run("jj log")

        viewer = self.surfaces.region(self.viewer_region).surface_id
        session_surfaces = [sid for sid in self.surfaces._surfaces if sid != viewer]
        self.assertEqual(session_surfaces, [session.surface_id])
        self.assertEqual(list(self.surfaces._channels), [session.channel_id])
        live_jobs = [job_id for job_id, job in self.processes.jobs.items() if not job.stopped]
        self.assertEqual(live_jobs, [session.process_id])
        self.assertEqual(len(self.surfaces.regions_for(session.surface_id)), 1)

    def test_output_from_replaced_process_is_discarded(self) -> None:
        first = self.manager.run("jj st")
        old_job = first.process_id
        self.manager.run("jj log")
        new_job = self.manager.session(SessionKind.SPLIT).process_id

        self.processes.emit(old_job, b"stale\r\n")
        self.processes.emit(new_job, b"fresh\r\n")

        buffer = self.surfaces.surface(first.surface_id).buffer
        self.assertEqual(buffer.plain_line(0), "fresh")
        self.assertEqual(buffer.line_count(), 1)

    def test_exit_of_stale_process_does_not_clear_current(self) -> None:
        self.manager.run("jj st")
        old_job = self.manager.session(SessionKind.SPLIT).process_id
        session = self.manager.run("jj log")
        current_job = session.process_id

        self.processes.exit(old_job)
        self.assertEqual(session.process_id, current_job)
        self.assertEqual(self.loop.pending_tasks, 0)

    def test_exit_defers_read_only_step_to_next_turn(self) -> None:
        session = self.manager.run("jj st")
        surface_id = session.surface_id
        self.surfaces.mode = MODE_INSERT

        self.processes.exit(session.process_id, 0)

        self.assertIsNone(session.process_id)
        self.assertTrue(self.surfaces.surface(surface_id).modifiable)
        self.loop.run_turn(timeout=0.0)
        self.assertFalse(self.surfaces.surface(surface_id).modifiable)
        self.assertEqual(self.surfaces.mode, MODE_NORMAL)
        self.assertTrue(self.surfaces.channel_is_open(session.channel_id))

    def test_deferred_step_is_noop_when_surface_destroyed(self) -> None:
        session = self.manager.run("jj st")
        surface_id = session.surface_id
        self.processes.exit(session.process_id, 0)
        self.surfaces.destroy_surface(surface_id)
        self.loop.run_turn(timeout=0.0)
        self.assertTrue(session.is_idle)

    def test_destroying_surface_returns_session_to_idle(self) -> None:
        session = self.manager.run("jj st")
        job_id = session.process_id
        self.surfaces.destroy_surface(session.surface_id)

        self.assertTrue(session.is_idle)
        self.assertEqual(session.installed, set())
        self.assertIn(job_id, self.processes.stopped)

    def test_run_after_external_destruction_creates_fresh_surface(self) -> None:
        session = self.manager.run("jj st")
        old_surface = session.surface_id
        self.surfaces.destroy_surface(old_surface)

        session = self.manager.run("jj log")

        self.assertNotEqual(session.surface_id, old_surface)
        self.assertTrue(session.is_active)
        self.assertIsNotNone(self.surfaces.keymap_get(session.surface_id, MODE_NORMAL, "q"))

    def test_command_keymaps_are_replaced_not_accumulated(self) -> None:
        calls: list[str] = []
        status_keys = [
            KeymapSpec.normal("ENTER", lambda: calls.append("open")),
            KeymapSpec.normal("X", lambda: calls.append("restore")),
        ]
        log_keys = [KeymapSpec.normal("d", lambda: calls.append("diff"))]
        session = self.manager.run("jj st", keymaps=status_keys)
        self.manager.run("jj log", keymaps=log_keys)

        surface_id = session.surface_id
        self.assertIsNone(self.surfaces.keymap_get(surface_id, MODE_NORMAL, "ENTER"))
        self.assertIsNone(self.surfaces.keymap_get(surface_id, MODE_NORMAL, "X"))
        self.assertTrue(self.surfaces.dispatch_key("d"))
        self.assertEqual(calls, ["diff"])

        self.manager.run("jj diff")
        self.assertIsNone(self.surfaces.keymap_get(surface_id, MODE_NORMAL, "d"))
        self.assertEqual(session.command_keymaps, [])

    def test_base_keymaps_block_editing_and_close(self) -> None:
        session = self.manager.run("jj st")
        surface_id = session.surface_id
        for mode in (MODE_NORMAL, MODE_VISUAL):
            for key in ("i", "c", "a", "q"):
                self.assertIsNotNone(self.surfaces.keymap_get(surface_id, mode, key), (mode, key))

        self.assertTrue(self.surfaces.dispatch_key("i"))
        self.assertTrue(session.is_active)
        self.assertTrue(self.surfaces.dispatch_key("q"))
        self.assertTrue(session.is_idle)
        self.assertEqual(self.surfaces.current_region.id, self.viewer_region)

    def test_floating_escape_hides_and_rerun_reshows(self) -> None:
        session = self.manager.run("jj show abc", SessionKind.FLOATING)
        surface_id = session.surface_id

        self.assertTrue(self.surfaces.dispatch_key("ESC"))
        self.assertTrue(self.surfaces.is_valid(surface_id))
        self.assertEqual(self.surfaces.regions_for(surface_id), [])

        self.manager.run("jj show def", SessionKind.FLOATING)
        self.assertEqual(session.surface_id, surface_id)
        self.assertEqual(len(self.surfaces.regions_for(surface_id)), 1)

    def test_split_and_floating_are_independent(self) -> None:
        split = self.manager.run("jj log")
        floating = self.manager.run("jj show abc", SessionKind.FLOATING)
        self.assertNotEqual(split.surface_id, floating.surface_id)
        self.assertTrue(split.is_active)
        self.assertTrue(floating.is_active)

    def test_start_failure_writes_message_and_keeps_channel(self) -> None:
        self.processes.fail_next_start = True
        session = self.manager.run("jj st")

        self.assertIsNone(session.process_id)
        self.assertTrue(self.surfaces.channel_is_open(session.channel_id))
        buffer = self.surfaces.surface(session.surface_id).buffer
        self.assertEqual(buffer.plain_line(0), "Failed to start command: jj st")

    def test_channel_failure_leaves_session_idle(self) -> None:
        def refuse(_surface_id: int) -> int:
            raise ResourceError("Failed to create terminal channel")

        self.surfaces.open_channel = refuse  # type: ignore[method-assign]
        with self.assertRaises(ResourceError):
            self.manager.run("jj st")
        session = self.manager.session(SessionKind.SPLIT)
        self.assertTrue(session.is_idle)
        self.assertEqual(self.processes.jobs, {})
        self.assertEqual(self.surfaces.current_region.id, self.viewer_region)

    def test_reset_sequence_precedes_output(self) -> None:
        session = self.manager.run("jj st")
        self.processes.emit(session.process_id, b"one\r\n")
        session = self.manager.run("jj st")
        self.processes.emit(session.process_id, b"two\r\n")
        buffer = self.surfaces.surface(session.surface_id).buffer
        self.assertEqual([buffer.plain_line(i) for i in range(buffer.line_count())], ["two"])

    def test_shutdown_stops_processes_and_resets(self) -> None:
        split = self.manager.run("jj log")
        floating = self.manager.run("jj show abc", SessionKind.FLOATING)
        jobs = {split.process_id, floating.process_id}

        self.manager.shutdown()

        self.assertTrue(jobs.issubset(set(self.processes.stopped)))
        self.assertTrue(self.processes.shutdown_called)
        self.assertTrue(split.is_idle)
        self.assertTrue(floating.is_idle)


if __name__ == "__main__":
    unittest.main()
