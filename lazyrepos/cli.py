"""Command-line front door for lazyrepos.

Resolves settings from the config file and flags, runs one reconciliation
cycle in the foreground, and prints the filtered repository list.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path

from .app import create_session
from .config import load_settings, save_search_root
from .log import setup_logging
from .repository import Repository, RepoStatus
from .session import format_status_bar

_STATUS_COLORS = {
    RepoStatus.Clean: "38;5;42",
    RepoStatus.NeedPull: "38;5;39",
    RepoStatus.NeedPush: "38;5;214",
    RepoStatus.NeedCommit: "38;5;203",
    RepoStatus.Timeout: "38;5;244",
}
NAME_COLUMN_WIDTH = 24
STATUS_COLUMN_WIDTH = 12


def _positive_float(value: str) -> float:
    """argparse type for positive float values."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def format_repository_line(repo: Repository, colorize: bool) -> str:
    name = repo.name.ljust(NAME_COLUMN_WIDTH)
    label = repo.status.label.ljust(STATUS_COLUMN_WIDTH)
    if colorize:
        label = f"\033[{_STATUS_COLORS[repo.status]}m{label}\033[0m"
    return f"{name} {label} {repo.path}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Find git working trees under a directory and report their sync state."
    )
    parser.add_argument("root", nargs="?", default=None, help="Directory to search. Defaults to the configured root.")
    parser.add_argument(
        "-f",
        "--filter",
        default="",
        help="Filter query, e.g. '+NeedPush +path work'.",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument("--fresh", action="store_true", help="Ignore the cache and rediscover everything.")
    parser.add_argument("--fetch-timeout", type=_positive_float, default=None, help="Seconds allowed for each git fetch.")
    parser.add_argument("--cache", metavar="PATH", default=None, help="Cache file to read and write.")
    parser.add_argument("--save-root", action="store_true", help="Remember ROOT as the default search root.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, scan once, and print one line per matching repository."""
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "INFO", stderr=args.verbose)

    settings = load_settings()
    overrides: dict[str, object] = {}
    if args.root is not None:
        root = Path(args.root).expanduser()
        if not root.is_dir():
            raise SystemExit(f"Directory not found: {root}")
        overrides["search_root"] = root.resolve()
    if args.fetch_timeout is not None:
        overrides["fetch_timeout_seconds"] = args.fetch_timeout
    if args.cache is not None:
        overrides["cache_path"] = Path(args.cache).expanduser()
    settings = dataclasses.replace(settings, **overrides)

    if args.save_root:
        save_search_root(settings.search_root)

    session = create_session(settings, start=False)
    session.apply_scan_result(session.worker.run_cycle(fresh=args.fresh))
    session.set_filter_text(args.filter)

    colorize = not args.no_color and sys.stdout.isatty()
    for repo in session.state.visible:
        sys.stdout.write(format_repository_line(repo, colorize) + "\n")
    sys.stderr.write(format_status_bar(session.state) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
