from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .completion import CompletionItem
from .repository import Repository


class AppMode(Enum):
    NORMAL = "normal"
    EDITING = "editing"


class AppAction(Enum):
    REFRESH = "refresh"
    START_FILTER = "start_filter"
    EXIT_FILTER = "exit_filter"
    SELECT_NEXT = "select_next"
    SELECT_PREVIOUS = "select_previous"
    NEXT_COMPLETION = "next_completion"
    PREVIOUS_COMPLETION = "previous_completion"
    ACCEPT_COMPLETION = "accept_completion"
    COPY_PATH = "copy_path"
    QUIT = "quit"


@dataclass
class AppState:
    search_root: Path
    repositories: tuple[Repository, ...] = ()
    visible: list[Repository] = field(default_factory=list)
    selected_idx: int | None = None
    mode: AppMode = AppMode.NORMAL
    filter_text: str = ""
    completions: list[CompletionItem] = field(default_factory=list)
    completion_idx: int | None = None
    refreshing: bool = True
    scan_duration_seconds: float = 0.0
    error_count: int = 0
    status_message: str = ""
    running: bool = True
    dirty: bool = True
