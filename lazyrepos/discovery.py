"""Repository discovery under a search root.

Prefers ``fd`` when installed and falls back to ``os.walk`` otherwise.
Both paths return the parent of every dot-prefixed ``*git`` directory.
"""

from __future__ import annotations

import fnmatch
import os
import re
import shutil
from collections.abc import Iterable, Sequence
from pathlib import Path

from loguru import logger

from . import process
from .errors import FilesystemError, ProcessError

CONTROL_DIR_PATTERN = r"^\..*git$"
CONTROL_DIR_RE = re.compile(CONTROL_DIR_PATTERN)
DEFAULT_IGNORE_DIRS: tuple[str, ...] = (".cache", ".local", ".cargo", "clasp")
FD_EXECUTABLES: tuple[str, ...] = ("fd", "fdfind")


def is_control_dir_name(name: str) -> bool:
    return CONTROL_DIR_RE.match(name) is not None


def _is_ignored(name: str, ignore_dirs: Sequence[str]) -> bool:
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in ignore_dirs)


def _unique(paths: Iterable[Path]) -> list[Path]:
    seen: set[Path] = set()
    out: list[Path] = []
    for path in paths:
        if path in seen:
            continue
        seen.add(path)
        out.append(path)
    return out


def _find_fd() -> str | None:
    for name in FD_EXECUTABLES:
        found = shutil.which(name)
        if found is not None:
            return found
    return None


def _discover_fd(root: Path, ignore_dirs: Sequence[str]) -> list[Path] | None:
    fd = _find_fd()
    if fd is None:
        return None

    cmd = [fd, "--no-ignore", "--hidden", "--type", "d"]
    for pattern in ignore_dirs:
        cmd.extend(["--exclude", pattern])
    cmd.extend([CONTROL_DIR_PATTERN, str(root)])

    try:
        output = process.run(cmd)
    except ProcessError as exc:
        logger.warning("fd discovery failed under {}, walking instead: {}", root, exc)
        return None

    found: list[Path] = []
    for raw in output.splitlines():
        raw = raw.strip()
        if not raw:
            continue
        control_dir = Path(raw)
        if not control_dir.is_absolute():
            control_dir = root / control_dir
        found.append(control_dir.parent)
    return found


def _discover_walk(root: Path, ignore_dirs: Sequence[str]) -> list[Path]:
    def on_error(exc: OSError) -> None:
        logger.debug("skipping unreadable directory {}: {}", exc.filename, exc.strerror)

    found: list[Path] = []
    for dirpath, dirnames, _filenames in os.walk(root, onerror=on_error):
        base = Path(dirpath)
        kept: list[str] = []
        for name in dirnames:
            if _is_ignored(name, ignore_dirs):
                continue
            if is_control_dir_name(name):
                found.append(base)
                continue
            kept.append(name)
        kept.sort(key=str.lower)
        dirnames[:] = kept
    return found


def discover(root: Path, ignore_dirs: Sequence[str] = DEFAULT_IGNORE_DIRS) -> list[Path]:
    """Return the working-tree roots found beneath ``root``.

    Raises ``FilesystemError`` when ``root`` itself is not a readable directory;
    unreadable subtrees are skipped.
    """
    root = root.expanduser().resolve()
    if not root.is_dir():
        raise FilesystemError(f"search root is not a directory: {root}")

    found = _discover_fd(root, ignore_dirs)
    if found is None:
        found = _discover_walk(root, ignore_dirs)

    paths = sorted(_unique(found), key=lambda path: str(path).casefold())
    logger.debug("discovered {} repositories under {}", len(paths), root)
    return paths


__all__ = [
    "CONTROL_DIR_PATTERN",
    "DEFAULT_IGNORE_DIRS",
    "discover",
    "is_control_dir_name",
]
