"""Background scan worker.

One daemon thread owns discovery, probing, and the cache file. The foreground
talks to it only through a command queue and drains finished ``ScanResult``
values from a result queue without blocking.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from queue import Empty, Queue

from loguru import logger

from .cache import ReconciliationCache
from .repository import Repository


class WorkerCommand(Enum):
    REFRESH = "refresh"
    STOP = "stop"


@dataclass(frozen=True)
class ScanResult:
    """One completed reconciliation cycle, published as a whole."""

    repositories: tuple[Repository, ...]
    error_count: int
    duration_seconds: float


class ScanWorker:
    """Single-thread scan scheduler that drops refreshes while a cycle runs."""

    def __init__(
        self,
        reconciler: ReconciliationCache,
        root: Path,
        *,
        interrupt: threading.Event | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.reconciler = reconciler
        self.root = root
        self.interrupt = interrupt if interrupt is not None else threading.Event()
        self._monotonic = monotonic
        self._commands: Queue[WorkerCommand] = Queue()
        self._results: Queue[ScanResult] = Queue()
        self._lock = threading.Lock()
        self._busy = False
        self._thread: threading.Thread | None = None

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    def run_cycle(self, fresh: bool = False) -> ScanResult:
        """Run one reconciliation synchronously; failures yield an empty result.

        ``fresh`` ignores the cache file and rediscovers everything.
        """
        start = self._monotonic()
        try:
            if fresh:
                cycle = self.reconciler.reconcile(self.root, None)
            else:
                cycle = self.reconciler.refresh(self.root)
            repositories, error_count = asyncio.run(cycle)
        except Exception:
            logger.exception("scan of {} failed", self.root)
            repositories, error_count = [], 0
        duration = self._monotonic() - start
        logger.info(
            "scan of {} found {} repositories ({} failed) in {:.2f}s",
            self.root,
            len(repositories),
            error_count,
            duration,
        )
        return ScanResult(tuple(repositories), error_count, duration)

    def _worker(self) -> None:
        while True:
            command = self._commands.get()
            if command is WorkerCommand.STOP:
                return

            result = self.run_cycle()
            with self._lock:
                self._busy = False
            if self.interrupt.is_set():
                return
            self._results.put(result)

    def start(self, scan_immediately: bool = True) -> None:
        """Start the worker thread, optionally queueing the first cycle."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._worker,
            name="lazyrepos-scan",
            daemon=True,
        )
        self._thread.start()
        if scan_immediately:
            self.request_refresh()

    def request_refresh(self) -> bool:
        """Queue a cycle unless one is pending or running; return whether queued."""
        with self._lock:
            if self._busy:
                return False
            self._busy = True
        self._commands.put(WorkerCommand.REFRESH)
        return True

    def stop(self) -> None:
        """Ask the worker to exit and abort in-flight fetches; does not join."""
        self.interrupt.set()
        self._commands.put(WorkerCommand.STOP)

    def drain_results(self) -> list[ScanResult]:
        """Drain all completed results without blocking."""
        out: list[ScanResult] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except Empty:
                break
        return out


__all__ = ["ScanResult", "ScanWorker", "WorkerCommand"]
