"""Persisted repository list and per-cycle reconciliation.

The cache is a pretty-printed JSON array of repository records. A missing or
malformed file means "no previous cycle" and forces full discovery.
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import NamedTuple

from loguru import logger
from platformdirs import user_cache_dir

from .discovery import DEFAULT_IGNORE_DIRS, discover
from .errors import FilesystemError, ParseFailure
from .repository import Repository
from .status import StatusClassifier, probe_repository

APP_NAME = "lazyrepos"
CACHE_FILENAME = "repo.json"
DEFAULT_CACHE_PATH = Path(user_cache_dir(APP_NAME, appauthor=False)) / CACHE_FILENAME


class ReconcileResult(NamedTuple):
    repositories: list[Repository]
    error_count: int


def encode_repositories(repositories: Sequence[Repository]) -> str:
    return json.dumps([repo.to_dict() for repo in repositories], indent=2) + "\n"


def decode_repositories(text: str) -> list[Repository]:
    """Decode cache text, raising ``ParseFailure`` for anything but a record list."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseFailure(f"cache is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ParseFailure("cache does not contain a list of repositories")
    return [Repository.from_dict(item) for item in data]


def load_cache(cache_path: Path = DEFAULT_CACHE_PATH) -> list[Repository] | None:
    """Return cached repositories, or ``None`` when absent or unusable."""
    try:
        text = cache_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning("cannot read repository cache {}: {}", cache_path, exc)
        return None

    try:
        return decode_repositories(text)
    except ParseFailure as exc:
        logger.warning("ignoring malformed repository cache {}: {}", cache_path, exc)
        return None


def save_cache(repositories: Sequence[Repository], cache_path: Path = DEFAULT_CACHE_PATH) -> None:
    """Atomically replace the cache file with ``repositories``.

    Raises ``FilesystemError`` when the file or its directory cannot be written.
    """
    tmp_path = cache_path.with_name(cache_path.name + ".tmp")
    try:
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(encode_repositories(repositories), encoding="utf-8")
        os.replace(tmp_path, cache_path)
    except OSError as exc:
        raise FilesystemError(f"cannot write repository cache {cache_path}: {exc}") from exc


def plan_probes(previous: Sequence[Repository] | None, discovered: Sequence[Path]) -> list[Path]:
    """Return every path to probe this cycle, each exactly once.

    All previously known paths are re-probed, whatever their last status,
    followed by discovered paths the previous cycle did not know about.
    """
    planned: list[Path] = []
    seen: set[Path] = set()
    known = [repo.path for repo in previous] if previous is not None else []
    for path in [*known, *discovered]:
        if path in seen:
            continue
        seen.add(path)
        planned.append(path)
    return planned


class ReconciliationCache:
    """Owns the cache file and runs discovery plus probing for one root."""

    def __init__(
        self,
        classifier: StatusClassifier,
        *,
        cache_path: Path = DEFAULT_CACHE_PATH,
        ignore_dirs: Sequence[str] = DEFAULT_IGNORE_DIRS,
        discover_paths: Callable[[Path, Sequence[str]], list[Path]] = discover,
    ) -> None:
        self.classifier = classifier
        self.cache_path = cache_path
        self.ignore_dirs = tuple(ignore_dirs)
        self._discover_paths = discover_paths

    def load(self) -> list[Repository] | None:
        return load_cache(self.cache_path)

    def save(self, repositories: Sequence[Repository]) -> None:
        save_cache(repositories, self.cache_path)

    async def reconcile(self, root: Path, previous: Sequence[Repository] | None) -> ReconcileResult:
        """Probe known and newly discovered repositories concurrently and persist.

        Cached paths whose directory is gone are dropped before probing.
        Discovery failures propagate; per-repository failures are counted and
        the repository is left out. The result is ordered by most recent commit.
        """
        discovered = self._discover_paths(root, self.ignore_dirs)
        if previous is not None:
            # Deleted working trees leave the fleet without counting as failures.
            previous = [repo for repo in previous if repo.path.is_dir()]
        targets = plan_probes(previous, discovered)
        logger.debug(
            "reconciling {} paths ({} cached, {} discovered)",
            len(targets),
            0 if previous is None else len(previous),
            len(discovered),
        )

        outcomes = await asyncio.gather(
            *(probe_repository(path, self.classifier) for path in targets),
            return_exceptions=True,
        )

        repositories: list[Repository] = []
        error_count = 0
        for path, outcome in zip(targets, outcomes):
            if isinstance(outcome, Repository):
                repositories.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            error_count += 1
            logger.debug("dropping {} this cycle: {}", path, outcome)

        repositories.sort(key=lambda repo: repo.last_commit_time, reverse=True)

        try:
            self.save(repositories)
        except FilesystemError as exc:
            logger.error("{}", exc)

        return ReconcileResult(repositories, error_count)

    async def refresh(self, root: Path) -> ReconcileResult:
        """Load the previous cycle from disk and reconcile against it."""
        return await self.reconcile(root, self.load())


__all__ = [
    "DEFAULT_CACHE_PATH",
    "ReconcileResult",
    "ReconciliationCache",
    "decode_repositories",
    "encode_repositories",
    "load_cache",
    "plan_probes",
    "save_cache",
]
