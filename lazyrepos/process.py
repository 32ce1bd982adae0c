"""Subprocess execution with typed failures.

``run`` is for short local probes and blocks. ``run_with_timeout`` is for
network-bound commands: it races the child against a deadline and an optional
interrupt event, and always kills the child when it loses the race.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import subprocess
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path

from .errors import NonZeroExit, SpawnFailure, TimedOut

INTERRUPT_POLL_SECONDS = 0.05
# Children get their own process group so a kill reaches their descendants.
_NEW_SESSION = os.name == "posix"


def _merged_env(env: Mapping[str, str] | None) -> dict[str, str] | None:
    if not env:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


def _describe(command: Sequence[str]) -> str:
    return " ".join(command)


def run(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> str:
    """Run ``command`` to completion and return its stdout.

    Raises ``SpawnFailure`` when the executable cannot be started and
    ``NonZeroExit`` when it exits unsuccessfully; both carry captured output.
    """
    try:
        proc = subprocess.run(
            list(command),
            cwd=cwd,
            env=_merged_env(env),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise SpawnFailure(f"could not start {_describe(command)!r}: {exc}") from exc

    if proc.returncode != 0:
        raise NonZeroExit(
            f"{_describe(command)!r} exited with status {proc.returncode}",
            proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )
    return proc.stdout


def _kill_process_tree(proc: asyncio.subprocess.Process) -> None:
    if _NEW_SESSION:
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, signal.SIGKILL)
            return
    with contextlib.suppress(ProcessLookupError):
        proc.kill()


async def _wait_for_interrupt(interrupt: threading.Event, poll_seconds: float) -> None:
    while not interrupt.is_set():
        await asyncio.sleep(poll_seconds)


async def run_with_timeout(
    command: Sequence[str],
    deadline: float | None,
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    interrupt: threading.Event | None = None,
    poll_seconds: float = INTERRUPT_POLL_SECONDS,
) -> str:
    """Run ``command`` asynchronously, bounded by ``deadline`` seconds.

    stdout is captured and stderr discarded. Whichever of completion, deadline,
    or ``interrupt`` resolves first wins; on deadline or interrupt the child and
    every process in its group are killed, and the child is reaped before
    ``TimedOut`` is raised. A ``None`` deadline waits for completion or
    interrupt only.
    """
    if interrupt is not None and interrupt.is_set():
        raise TimedOut(f"{_describe(command)!r} interrupted before start")

    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=cwd,
            env=_merged_env(env),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=_NEW_SESSION,
        )
    except OSError as exc:
        raise SpawnFailure(f"could not start {_describe(command)!r}: {exc}") from exc

    communicate = asyncio.ensure_future(proc.communicate())
    waiters: set[asyncio.Future] = {communicate}
    interrupt_waiter: asyncio.Future | None = None
    if interrupt is not None:
        interrupt_waiter = asyncio.ensure_future(_wait_for_interrupt(interrupt, poll_seconds))
        waiters.add(interrupt_waiter)

    try:
        done, _pending = await asyncio.wait(
            waiters,
            timeout=deadline,
            return_when=asyncio.FIRST_COMPLETED,
        )
        if communicate not in done:
            if interrupt_waiter is not None and interrupt_waiter in done:
                raise TimedOut(f"{_describe(command)!r} interrupted")
            raise TimedOut(f"{_describe(command)!r} timed out after {deadline}s")
        stdout_bytes, _stderr = communicate.result()
    finally:
        if interrupt_waiter is not None:
            interrupt_waiter.cancel()
        if not communicate.done():
            communicate.cancel()
            _kill_process_tree(proc)
            await proc.wait()

    stdout = (stdout_bytes or b"").decode("utf-8", errors="replace")
    if proc.returncode != 0:
        raise NonZeroExit(
            f"{_describe(command)!r} exited with status {proc.returncode}",
            proc.returncode,
            stdout=stdout,
        )
    return stdout


__all__ = ["INTERRUPT_POLL_SECONDS", "run", "run_with_timeout"]
