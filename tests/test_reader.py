"""Regression tests for raw-key decoding.

Covers ESC timing, arrow and shifted-arrow sequences, and control keys.
"""

import os
import time
import unittest

from lazyjj.runtime import reader as reader_mod


class ReadKeyRegressionTests(unittest.TestCase):
    def setUp(self) -> None:
        reader_mod._PENDING_BYTES.clear()

    def tearDown(self) -> None:
        reader_mod._PENDING_BYTES.clear()

    def _keys(self, payload: bytes, count: int) -> list[str]:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, payload)
            return [reader_mod.read_key(read_fd, timeout_ms=20) for _ in range(count)]
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_single_escape_returns_esc_without_second_keypress(self) -> None:
        started = time.monotonic()
        keys = self._keys(b"\x1b", 1)
        elapsed = time.monotonic() - started
        self.assertEqual(keys, ["ESC"])
        self.assertLess(elapsed, 0.2)

    def test_arrow_and_shifted_arrow_sequences(self) -> None:
        self.assertEqual(self._keys(b"\x1b[A\x1b[1;2A\x1b[1;2B", 3), ["UP", "SHIFT_UP", "SHIFT_DOWN"])

    def test_home_and_end_variants(self) -> None:
        self.assertEqual(self._keys(b"\x1b[H\x1b[4~\x1bOF", 3), ["HOME", "END", "END"])

    def test_escape_does_not_swallow_following_printable_key(self) -> None:
        self.assertEqual(self._keys(b"\x1ba", 2), ["ESC", "a"])
        self.assertFalse(reader_mod.has_pending_key())

    def test_pending_byte_is_reported(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, b"\x1bq")
            self.assertEqual(reader_mod.read_key(read_fd, timeout_ms=20), "ESC")
            self.assertTrue(reader_mod.has_pending_key())
            self.assertEqual(reader_mod.read_key(read_fd, timeout_ms=0), "q")
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_control_keys(self) -> None:
        self.assertEqual(
            self._keys(b"\r\n\t\x7f\x04\x15\x03", 7),
            ["ENTER", "ENTER", "TAB", "BACKSPACE", "CTRL_D", "CTRL_U", "CTRL_C"],
        )

    def test_multibyte_character_is_one_key(self) -> None:
        self.assertEqual(self._keys("é".encode("utf-8"), 1), ["é"])

    def test_timeout_returns_empty(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            self.assertEqual(reader_mod.read_key(read_fd, timeout_ms=1), "")
        finally:
            os.close(read_fd)
            os.close(write_fd)


if __name__ == "__main__":
    unittest.main()
