"""Tests for frame composition: dividers, floating frame, status, prompt."""

from __future__ import annotations

import logging
import unittest

from lazyjj.host import HIDDEN_HIDE, REGION_FLOATING, REGION_MAIN, REGION_SPLIT, SurfaceHost
from lazyjj.runtime.render import CURSOR_STYLE, build_status_line, render_frame


class RenderFrameTests(unittest.TestCase):
    def setUp(self) -> None:
        self.host = SurfaceHost(40, 12)
        self.viewer = self.host.create_surface(hidden=HIDDEN_HIDE, title=" a.py ")
        self.host.open_region(self.viewer, REGION_MAIN)
        self.host.set_text(self.viewer, "first\nsecond")

    def test_focused_cursor_line_is_reversed(self) -> None:
        frame = render_frame(self.host, status_left=" a.py")
        self.assertIn(CURSOR_STYLE + "first" + " " * 35, frame)
        self.assertIn("second", frame)

    def test_split_divider_carries_title(self) -> None:
        split = self.host.create_surface(title=" jj st ")
        self.host.open_region(split, REGION_SPLIT)
        frame = render_frame(self.host)
        self.assertIn("─ jj st ─", frame)

    def test_floating_region_has_rounded_frame(self) -> None:
        floating = self.host.create_surface(hidden=HIDDEN_HIDE, title=" jj show ")
        self.host.open_region(floating, REGION_FLOATING)
        frame = render_frame(self.host)
        self.assertIn("╭", frame)
        self.assertIn("╯", frame)
        self.assertIn(" jj show ", frame)

    def test_status_line_shows_mode_and_notification(self) -> None:
        self.host.notify("Rebase successful.", logging.INFO)
        self.host.start_visual()
        frame = render_frame(self.host, status_left=" a.py")
        self.assertIn("Rebase successful.", frame)
        self.assertIn("-- VISUAL --", frame)

    def test_prompt_replaces_status_and_shows_cursor(self) -> None:
        frame = render_frame(self.host, status_left=" a.py", prompt=(":J log", 6))
        self.assertIn(":J log", frame)
        self.assertTrue(frame.endswith("\033[12;7H\033[?25h"))

    def test_build_status_line_fits_width(self) -> None:
        line = build_status_line(" left", 30, "│ right")
        self.assertEqual(len(line), 29)
        self.assertTrue(line.startswith(" left"))
        self.assertTrue(line.endswith("│ right"))


if __name__ == "__main__":
    unittest.main()
