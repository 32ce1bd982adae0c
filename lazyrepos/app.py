"""Wiring from resolved settings to a running worker and session."""

from __future__ import annotations

import threading
from pathlib import Path

from .cache import ReconciliationCache
from .config import Settings
from .session import RepoSession
from .state import AppState
from .status import GitTextStatusClassifier
from .worker import ScanWorker


def build_reconciler(settings: Settings, interrupt: threading.Event | None = None) -> ReconciliationCache:
    classifier = GitTextStatusClassifier(
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
        interrupt=interrupt,
    )
    return ReconciliationCache(
        classifier,
        cache_path=settings.cache_path,
        ignore_dirs=settings.ignore_dirs,
    )


def create_session(settings: Settings, *, start: bool = True) -> RepoSession:
    """Create a session whose worker scans ``settings.search_root``.

    With ``start`` the worker thread is launched and the first cycle queued,
    which is what an interactive client wants before its first render tick.
    """
    interrupt = threading.Event()
    root = Path(settings.search_root).expanduser()
    worker = ScanWorker(build_reconciler(settings, interrupt), root, interrupt=interrupt)
    session = RepoSession(AppState(search_root=root, refreshing=start), worker)
    if start:
        worker.start(scan_immediately=True)
    return session


__all__ = ["build_reconciler", "create_session"]
