"""Command-line front door for lazyjj.

Parses CLI options, loads persisted settings, and configures file logging.
Then dispatches into the interactive runtime.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
from collections.abc import Sequence
from pathlib import Path

from .config import DESCRIBE_EDITORS, LOG_PATH, Settings, load_settings
from .runtime import run_app

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def configure_logging(level: str, log_path: Path = LOG_PATH) -> None:
    """Send log records to ``log_path``; the TUI owns stdout and stderr."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level))
    handler: logging.Handler
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Terminal front-end for the jj version control system."
    )
    parser.add_argument("path", nargs="?", default=None, help="File to view or directory to work in. Defaults to cwd.")
    parser.add_argument("--style", default=None, help="Pygments style name for the file viewer.")
    parser.add_argument("--no-color", action="store_true", help="Disable syntax highlighting in the viewer.")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="WARNING", help="Log file verbosity.")
    parser.add_argument("--log-limit", type=_positive_int, default=None, help="Entries shown by the log command.")
    parser.add_argument(
        "--describe-editor",
        choices=DESCRIBE_EDITORS,
        default=None,
        help="Edit descriptions in $EDITOR (buffer) or a one-line prompt (input).",
    )
    parser.add_argument("--command", metavar="ARGS", default=None, help="jj arguments to run on startup, as with :J.")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.style:
        overrides["style"] = args.style
    if args.log_limit is not None:
        overrides["log_limit"] = args.log_limit
    if args.describe_editor is not None:
        overrides["describe_editor"] = args.describe_editor
    return dataclasses.replace(settings, **overrides) if overrides else settings


def main(argv: Sequence[str] | None = None, default_path: Path | None = None) -> None:
    """Parse CLI arguments and launch lazyjj.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if default_path is None:
        default_path = Path.cwd()
    path = Path(args.path or default_path)
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")

    settings = apply_overrides(load_settings(), args)
    run_app(path, settings, no_color=args.no_color, command=args.command)
