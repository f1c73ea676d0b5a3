"""Line store fed by terminal-formatted bytes from a channel.

This is not a terminal emulator: it keeps SGR color sequences, honors the
clear-screen sequences used to reset a surface, collapses carriage returns,
and drops every other control sequence. Bytes are decoded incrementally so
multi-byte glyphs and escape sequences split across chunks survive intact.
"""

from __future__ import annotations

import codecs
import re

from ..ansi import strip_ansi

MAX_SCROLLBACK_LINES = 10_000

_CSI_RE = re.compile(r"\x1b\[([0-9;?]*)([ -/]*)([@-~])")
_OSC_RE = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
_ESC_INTERMEDIATES = frozenset("()*+#%")
_ESC_INTERMEDIATE_RE = re.compile(r"\x1b[()*+#%][\x20-\x7e]")
_ESC_PAIR_RE = re.compile(r"\x1b[^\[\]]")
_MAX_PENDING_ESCAPE = 256


class TerminalBuffer:
    def __init__(self, max_lines: int = MAX_SCROLLBACK_LINES) -> None:
        self.max_lines = max(1, max_lines)
        self.lines: list[str] = [""]
        self.revision = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._pending_cr = False

    def clear(self) -> None:
        self.lines = [""]
        self._pending_cr = False
        self.revision += 1

    def set_text(self, text: str) -> None:
        """Replace the content with already-rendered text."""
        self.lines = text.splitlines() or [""]
        self._pending = ""
        self._pending_cr = False
        self.revision += 1

    def plain_line(self, index: int) -> str:
        if 0 <= index < len(self.lines):
            return strip_ansi(self.lines[index])
        return ""

    def line_count(self) -> int:
        """Return the number of lines, ignoring a trailing empty line."""
        if len(self.lines) > 1 and self.lines[-1] == "":
            return len(self.lines) - 1
        return len(self.lines)

    def feed(self, data: bytes | str) -> None:
        text = data if isinstance(data, str) else self._decoder.decode(data)
        if not text:
            return
        text = self._pending + text
        self._pending = ""
        self._consume(text)
        self.revision += 1

    def _newline(self) -> None:
        self.lines.append("")
        overflow = len(self.lines) - self.max_lines
        if overflow > 0:
            del self.lines[:overflow]

    def _append(self, chunk: str) -> None:
        if self._pending_cr:
            # A bare carriage return rewrites the line from column zero.
            self.lines[-1] = ""
            self._pending_cr = False
        self.lines[-1] += chunk

    def _consume(self, text: str) -> None:
        i = 0
        n = len(text)
        plain_start = 0

        def flush(end: int) -> None:
            if end > plain_start:
                self._append(text[plain_start:end])

        while i < n:
            ch = text[i]
            if ch == "\x1b":
                flush(i)
                consumed = self._consume_escape(text, i)
                if consumed is None:
                    self._pending = text[i:]
                    return
                i = consumed
                plain_start = i
                continue
            if ch == "\n":
                flush(i)
                self._pending_cr = False
                self._newline()
                i += 1
                plain_start = i
                continue
            if ch == "\r":
                flush(i)
                self._pending_cr = True
                i += 1
                plain_start = i
                continue
            if ch != "\t" and (ord(ch) < 0x20 or ord(ch) == 0x7F):
                flush(i)
                i += 1
                plain_start = i
                continue
            i += 1
        flush(n)

    def _consume_escape(self, text: str, start: int) -> int | None:
        """Apply the escape sequence at ``start``; ``None`` means incomplete."""
        csi = _CSI_RE.match(text, start)
        if csi:
            params, _intermediate, final = csi.groups()
            if final == "m":
                self._append(csi.group(0))
            elif final == "J" and params in {"2", "3"}:
                self.clear()
            return csi.end()
        osc = _OSC_RE.match(text, start)
        if osc:
            return osc.end()
        designation = _ESC_INTERMEDIATE_RE.match(text, start)
        if designation:
            return designation.end()
        if text[start + 1 : start + 2] in _ESC_INTERMEDIATES and len(text) - start < 3:
            return None
        pair = _ESC_PAIR_RE.match(text, start)
        if pair:
            if pair.group(0) == "\x1bc":
                self.clear()
            return pair.end()
        if len(text) - start < _MAX_PENDING_ESCAPE:
            return None
        return start + 1
