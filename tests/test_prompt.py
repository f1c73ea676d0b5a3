"""Tests for the single-line status-row prompt."""

from __future__ import annotations

import unittest

from lazyjj.prompt import Prompt


class PromptTests(unittest.TestCase):
    def setUp(self) -> None:
        self.results: list[str | None] = []
        self.prompt = Prompt()

    def test_typing_and_enter_submit_text(self) -> None:
        self.prompt.open("Name: ", self.results.append)
        for key in "feat":
            self.prompt.handle_key(key)
        self.prompt.handle_key("BACKSPACE")
        self.assertEqual(self.prompt.render(), ("Name: fea", 9))
        self.prompt.handle_key("ENTER")
        self.assertEqual(self.results, ["fea"])
        self.assertFalse(self.prompt.active)

    def test_escape_cancels_with_none(self) -> None:
        self.prompt.open("Name: ", self.results.append, "default")
        self.prompt.handle_key("ESC")
        self.assertEqual(self.results, [None])

    def test_default_text_and_cursor_editing(self) -> None:
        self.prompt.open("Rebase destination: ", self.results.append, "trunk()")
        self.prompt.handle_key("HOME")
        self.prompt.handle_key("x")
        self.prompt.handle_key("END")
        self.prompt.handle_key("LEFT")
        self.prompt.handle_key("CTRL_U")
        self.prompt.handle_key("ENTER")
        self.assertEqual(self.results, [")"])

    def test_callback_may_open_another_prompt(self) -> None:
        def chain(value: str | None) -> None:
            self.results.append(value)
            self.prompt.open("Second: ", self.results.append)

        self.prompt.open("First: ", chain)
        self.prompt.handle_key("ENTER")
        self.assertTrue(self.prompt.active)
        self.assertEqual(self.prompt.render()[0], "Second: ")

    def test_inactive_prompt_ignores_keys(self) -> None:
        self.assertFalse(self.prompt.handle_key("a"))


if __name__ == "__main__":
    unittest.main()
