"""Foreground state transitions at the presentation-client boundary.

The client forwards decoded key tokens and discrete ``AppAction`` intents.
``RepoSession`` applies them to its ``AppState`` and folds in finished scans
from the worker, so the client only ever reads a consistent snapshot.
"""

from __future__ import annotations

from collections.abc import Callable

from .clipboard import copy_text_to_clipboard
from .completion import accept_completion, completions_for_input
from .filter_query import filter_repositories
from .repository import Repository
from .state import AppAction, AppMode, AppState
from .worker import ScanResult, ScanWorker


def format_repo_counts(shown: int, total: int) -> str:
    if total == 0:
        return "repo: 0"
    return f"repo: {shown}/{total}"


def format_status_bar(state: AppState) -> str:
    """Return the right-hand status text: scan time and visible/total counts."""
    parts = [
        f"search time: {state.scan_duration_seconds:.2f}s",
        format_repo_counts(len(state.visible), len(state.repositories)),
    ]
    if state.error_count:
        parts.append(f"errors: {state.error_count}")
    if state.refreshing:
        parts.append("scanning...")
    return " | ".join(parts)


class RepoSession:
    """Owns ``AppState`` and applies key input, intents, and scan results to it."""

    def __init__(
        self,
        state: AppState,
        worker: ScanWorker,
        *,
        copy_to_clipboard: Callable[[str], bool] = copy_text_to_clipboard,
    ) -> None:
        self.state = state
        self.worker = worker
        self._copy_to_clipboard = copy_to_clipboard

    def selected_repository(self) -> Repository | None:
        idx = self.state.selected_idx
        if idx is None or not (0 <= idx < len(self.state.visible)):
            return None
        return self.state.visible[idx]

    def _refresh_view(self) -> None:
        state = self.state
        previous = self.selected_repository()
        state.visible = filter_repositories(state.repositories, state.filter_text)

        if not state.visible:
            state.selected_idx = None
        elif previous is not None:
            state.selected_idx = next(
                (idx for idx, repo in enumerate(state.visible) if repo.path == previous.path),
                min(state.selected_idx or 0, len(state.visible) - 1),
            )
        elif state.selected_idx is not None:
            state.selected_idx = min(state.selected_idx, len(state.visible) - 1)

        if state.mode is AppMode.EDITING:
            state.completions = completions_for_input(state.filter_text)
        else:
            state.completions = []
        state.completion_idx = 0 if state.completions else None
        state.dirty = True

    def apply_scan_result(self, result: ScanResult) -> None:
        state = self.state
        state.repositories = result.repositories
        state.error_count = result.error_count
        state.scan_duration_seconds = result.duration_seconds
        state.refreshing = False
        self._refresh_view()

    def poll(self) -> bool:
        """Fold in the newest finished scan, if any; return whether one arrived."""
        results = self.worker.drain_results()
        if not results:
            return False
        self.apply_scan_result(results[-1])
        return True

    def set_filter_text(self, text: str) -> None:
        if text == self.state.filter_text:
            return
        self.state.filter_text = text
        self._refresh_view()

    def handle_filter_key(self, key: str) -> bool:
        """Edit the filter text in editing mode; return whether ``key`` was used."""
        if self.state.mode is not AppMode.EDITING:
            return False
        if key == "BACKSPACE":
            self.set_filter_text(self.state.filter_text[:-1])
            return True
        if key == "CTRL_U":
            self.set_filter_text("")
            return True
        if len(key) == 1 and key.isprintable():
            self.set_filter_text(self.state.filter_text + key)
            return True
        return False

    def _move_selection(self, delta: int) -> None:
        state = self.state
        if not state.visible:
            state.selected_idx = None
            return
        if state.selected_idx is None:
            state.selected_idx = 0 if delta > 0 else len(state.visible) - 1
        else:
            state.selected_idx = (state.selected_idx + delta) % len(state.visible)
        state.dirty = True

    def _move_completion(self, delta: int) -> None:
        state = self.state
        if not state.completions:
            return
        current = state.completion_idx if state.completion_idx is not None else 0
        state.completion_idx = (current + delta) % len(state.completions)
        state.dirty = True

    def _accept_completion(self) -> None:
        state = self.state
        if state.completion_idx is None or not state.completions:
            return
        item = state.completions[state.completion_idx]
        self.set_filter_text(accept_completion(state.filter_text, item))

    def _copy_selected_path(self) -> None:
        repo = self.selected_repository()
        if repo is None:
            return
        if self._copy_to_clipboard(str(repo.path)):
            self.state.status_message = f"copied {repo.path}"
            self.state.dirty = True

    def handle_action(self, action: AppAction) -> bool:
        """Apply one intent; return ``False`` once the session should end."""
        state = self.state
        if action is AppAction.QUIT:
            self.worker.stop()
            state.running = False
        elif action is AppAction.REFRESH:
            if not state.refreshing and self.worker.request_refresh():
                state.refreshing = True
                state.dirty = True
        elif action is AppAction.START_FILTER:
            if not state.refreshing:
                state.mode = AppMode.EDITING
                self._refresh_view()
        elif action is AppAction.EXIT_FILTER:
            state.mode = AppMode.NORMAL
            self._refresh_view()
        elif action is AppAction.SELECT_NEXT:
            self._move_selection(1)
        elif action is AppAction.SELECT_PREVIOUS:
            self._move_selection(-1)
        elif action is AppAction.NEXT_COMPLETION:
            self._move_completion(1)
        elif action is AppAction.PREVIOUS_COMPLETION:
            self._move_completion(-1)
        elif action is AppAction.ACCEPT_COMPLETION:
            self._accept_completion()
        elif action is AppAction.COPY_PATH:
            self._copy_selected_path()
        return state.running


__all__ = ["RepoSession", "format_repo_counts", "format_status_bar"]
