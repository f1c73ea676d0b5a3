"""Single-line input prompt shown in the status row.

The prompt owns keys while it is open. Submitting calls the callback with
the typed text; cancelling with ``ESC`` calls it with ``None``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

PromptCallback = Callable[[str | None], None]


@dataclass
class PromptState:
    label: str
    text: str
    callback: PromptCallback
    cursor: int = 0

    def __post_init__(self) -> None:
        self.cursor = len(self.text)


class Prompt:
    def __init__(self) -> None:
        self.state: PromptState | None = None

    @property
    def active(self) -> bool:
        return self.state is not None

    def open(self, label: str, callback: PromptCallback, default: str = "") -> None:
        self.state = PromptState(label=label, text=default, callback=callback)

    def render(self) -> tuple[str, int]:
        """Return the prompt row text and the cursor column within it."""
        if self.state is None:
            return "", 0
        return f"{self.state.label}{self.state.text}", len(self.state.label) + self.state.cursor

    def handle_key(self, key: str) -> bool:
        state = self.state
        if state is None:
            return False
        if key == "ESC":
            self._finish(None)
        elif key == "ENTER":
            self._finish(state.text)
        elif key == "BACKSPACE":
            if state.cursor > 0:
                state.text = state.text[: state.cursor - 1] + state.text[state.cursor :]
                state.cursor -= 1
        elif key == "CTRL_U":
            state.text = state.text[state.cursor :]
            state.cursor = 0
        elif key == "LEFT":
            state.cursor = max(0, state.cursor - 1)
        elif key == "RIGHT":
            state.cursor = min(len(state.text), state.cursor + 1)
        elif key == "HOME":
            state.cursor = 0
        elif key == "END":
            state.cursor = len(state.text)
        elif len(key) == 1 and key.isprintable():
            state.text = state.text[: state.cursor] + key + state.text[state.cursor :]
            state.cursor += 1
        return True

    def _finish(self, value: str | None) -> None:
        state = self.state
        self.state = None
        if state is not None:
            state.callback(value)
