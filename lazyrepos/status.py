"""Working-tree status classification via ``git`` text output.

The classifier scrapes fixed English markers from ``git status``; callers only
see ``StatusClassifier.classify`` so a structured backend can replace it.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

from loguru import logger

from . import process
from .errors import FilesystemError, LazyReposError, NonZeroExit, ParseFailure
from .repository import Repository, RepoStatus

CLEAN_TREE_MARKER = "working tree clean"
NEED_PULL_MARKER = "git pull"
NEED_PUSH_MARKER = "git push"
DIVERGED_MARKER = "have diverged"
DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0
# Markers are matched in English; fetch must never block on a credential prompt.
GIT_ENV = {"LC_ALL": "C", "LANGUAGE": "C", "GIT_TERMINAL_PROMPT": "0"}


def divergence_markers(status_text: str) -> tuple[bool, bool]:
    """Return ``(need_pull, need_push)`` hints found in ``git status`` output.

    A diverged branch is both ahead and behind, although git only suggests
    ``git pull`` for it.
    """
    if DIVERGED_MARKER in status_text:
        return True, True
    return NEED_PULL_MARKER in status_text, NEED_PUSH_MARKER in status_text


def status_from_markers(need_pull: bool, need_push: bool) -> RepoStatus:
    # Ahead wins when both are set.
    if need_push:
        return RepoStatus.NeedPush
    if need_pull:
        return RepoStatus.NeedPull
    return RepoStatus.Clean


class StatusClassifier:
    """Resolve the ``RepoStatus`` of one working tree without raising."""

    git = "git"

    async def classify(self, path: Path) -> RepoStatus:
        raise NotImplementedError


class GitTextStatusClassifier(StatusClassifier):
    """Classify by running ``git status``, ``git remote`` and a bounded ``git fetch``."""

    def __init__(
        self,
        *,
        fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        interrupt: threading.Event | None = None,
        git: str = "git",
    ) -> None:
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.interrupt = interrupt
        self.git = git

    def _command(self, path: Path, *args: str) -> list[str]:
        return [self.git, "-C", str(path), *args]

    async def _probe(self, path: Path, *args: str) -> str:
        return await asyncio.to_thread(process.run, self._command(path, *args), env=GIT_ENV)

    async def _fetch(self, path: Path) -> None:
        await process.run_with_timeout(
            self._command(path, "fetch"),
            self.fetch_timeout_seconds,
            env=GIT_ENV,
            interrupt=self.interrupt,
        )

    async def _classify(self, path: Path) -> RepoStatus:
        status_text = await self._probe(path, "status")
        if CLEAN_TREE_MARKER not in status_text:
            return RepoStatus.NeedCommit

        remotes = await self._probe(path, "remote", "show")
        if not remotes.strip():
            return RepoStatus.Clean

        need_pull, need_push = divergence_markers(status_text)
        if not need_pull and not need_push:
            await self._fetch(path)
            need_pull, need_push = divergence_markers(await self._probe(path, "status"))
        return status_from_markers(need_pull, need_push)

    async def classify(self, path: Path) -> RepoStatus:
        try:
            return await self._classify(path)
        except LazyReposError as exc:
            logger.debug("classifying {} degraded to Timeout: {}", path, exc)
            return RepoStatus.Timeout


async def read_last_commit_time(path: Path, git: str = "git") -> int:
    """Return the committer timestamp of ``HEAD``, or ``0`` without history.

    Raises ``FilesystemError`` when ``path`` is gone and ``ParseFailure`` when
    git prints something that is not a timestamp.
    """
    if not path.is_dir():
        raise FilesystemError(f"repository directory is missing: {path}")
    try:
        output = await asyncio.to_thread(
            process.run,
            [git, "-C", str(path), "log", "-1", "--format=%ct"],
            env=GIT_ENV,
        )
    except NonZeroExit:
        # Unborn HEAD.
        return 0

    text = output.strip()
    if not text:
        return 0
    try:
        return int(text.splitlines()[0])
    except ValueError as exc:
        raise ParseFailure(f"unexpected commit time for {path}: {text!r}") from exc


async def probe_repository(path: Path, classifier: StatusClassifier) -> Repository:
    """Build a fresh ``Repository`` for ``path``.

    Only the commit-time probe can raise; status problems become ``Timeout``.
    """
    last_commit_time = await read_last_commit_time(path, classifier.git)
    status = await classifier.classify(path)
    return Repository.for_path(path, status, last_commit_time)


__all__ = [
    "CLEAN_TREE_MARKER",
    "DEFAULT_FETCH_TIMEOUT_SECONDS",
    "DIVERGED_MARKER",
    "GitTextStatusClassifier",
    "StatusClassifier",
    "divergence_markers",
    "probe_repository",
    "read_last_commit_time",
    "status_from_markers",
]
