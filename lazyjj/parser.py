"""Line parsers for rendered ``jj log`` and ``jj status`` output.

Each parser looks at exactly one line and returns a small record, or
``None`` when the line carries nothing actionable (descriptions, graph
continuation rows, headers). Parsers are pure: no state, no I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from .ansi import strip_ansi

CONNECTOR_GLYPH = "│"
RENAME_SEPARATOR = " => "


@dataclass(frozen=True)
class NodeGlyph:
    """A graph node symbol that opens a commit line in ``jj log``."""

    name: str
    symbol: str


# Priority order: the first glyph whose pattern matches wins.
NODE_GLYPHS: tuple[NodeGlyph, ...] = (
    NodeGlyph("immutable", "◆"),
    NodeGlyph("commit", "○"),
    NodeGlyph("working_copy", "@"),
)


@dataclass(frozen=True)
class RevisionRecord:
    id: str


class FileStatus(str, Enum):
    MODIFIED = "M"
    ADDED = "A"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"


@dataclass(frozen=True)
class FileChangeRecord:
    status: FileStatus
    old_path: str
    new_path: str
    is_rename: bool = False

    @property
    def display_path(self) -> str:
        if self.old_path == self.new_path:
            return self.new_path
        return f"{self.old_path}{RENAME_SEPARATOR}{self.new_path}"


@lru_cache(maxsize=64)
def _glyph_pattern(symbol: str) -> re.Pattern[str]:
    # Optional leading whitespace, at most one branch connector, then the node.
    return re.compile(
        rf"^\s*(?:{re.escape(CONNECTOR_GLYPH)}\s*)?{re.escape(symbol)}\s+([0-9A-Za-z]+)"
    )


def parse_revision_from_log_line(
    line: str,
    glyphs: tuple[NodeGlyph, ...] = NODE_GLYPHS,
) -> RevisionRecord | None:
    """Extract the revision id from one graph-formatted log line.

    >>> parse_revision_from_log_line("◆ a1b2c3 some description")
    RevisionRecord(id='a1b2c3')
    >>> parse_revision_from_log_line("    some wrapped text") is None
    True

    Conflict markers and other decorations after the id are ignored.
    """
    plain = strip_ansi(line)
    for glyph in glyphs:
        match = _glyph_pattern(glyph.symbol).match(plain)
        if match:
            return RevisionRecord(id=match.group(1))
    return None


_STATUS_LINE_RE = re.compile(r"^([" + "".join(s.value for s in FileStatus) + r"]) (\S.*)$")
_BRACE_RENAME_RE = re.compile(r"^(?P<prefix>.*?)\{(?P<old>[^{}]*) => (?P<new>[^{}]*)\}(?P<suffix>.*)$")


def _join_rename_part(prefix: str, part: str, suffix: str) -> str:
    joined = f"{prefix}{part}{suffix}"
    while "//" in joined:
        joined = joined.replace("//", "/")
    return joined.lstrip("/") if not prefix else joined


def _split_rename(path_text: str) -> tuple[str, str] | None:
    brace = _BRACE_RENAME_RE.match(path_text)
    if brace:
        prefix, suffix = brace.group("prefix"), brace.group("suffix")
        return (
            _join_rename_part(prefix, brace.group("old"), suffix),
            _join_rename_part(prefix, brace.group("new"), suffix),
        )
    if RENAME_SEPARATOR in path_text:
        old, new = path_text.split(RENAME_SEPARATOR, 1)
        return old.strip(), new.strip()
    return None


def parse_file_change_from_status_line(line: str) -> FileChangeRecord | None:
    """Parse ``<letter> <path>`` or ``<letter> <old> => <new>`` status rows."""
    plain = strip_ansi(line).rstrip("\r\n")
    match = _STATUS_LINE_RE.match(plain)
    if not match:
        return None

    status = FileStatus(match.group(1))
    path_text = match.group(2).rstrip()
    renamed = _split_rename(path_text)
    if renamed is not None:
        old_path, new_path = renamed
        if old_path and new_path:
            return FileChangeRecord(status=status, old_path=old_path, new_path=new_path, is_rename=True)
        return None
    return FileChangeRecord(status=status, old_path=path_text, new_path=path_text)
