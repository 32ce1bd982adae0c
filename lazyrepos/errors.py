"""Failure types raised by subprocess, filesystem, and cache helpers.

Callers decide how each failure degrades: the classifier maps them to
``RepoStatus.Timeout``, reconciliation drops the repository and counts it.
"""

from __future__ import annotations


class LazyReposError(Exception):
    """Base class for every failure raised inside ``lazyrepos``."""


class ProcessError(LazyReposError):
    """A subprocess failure carrying whatever output was captured."""

    def __init__(self, message: str, *, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class SpawnFailure(ProcessError):
    """The command could not be started at all."""


class NonZeroExit(ProcessError):
    """The command ran but exited with a non-zero status."""

    def __init__(self, message: str, returncode: int, *, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message, stdout=stdout, stderr=stderr)
        self.returncode = returncode


class TimedOut(ProcessError):
    """The deadline or an interrupt fired before the command finished."""


class ParseFailure(LazyReposError):
    """Persisted or tool-produced text could not be decoded."""


class FilesystemError(LazyReposError):
    """A path needed for a probe or walk is missing or unreadable."""


__all__ = [
    "FilesystemError",
    "LazyReposError",
    "NonZeroExit",
    "ParseFailure",
    "ProcessError",
    "SpawnFailure",
    "TimedOut",
]
