"""Repository records and their synchronization status."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import ParseFailure


class RepoStatus(Enum):
    """Exclusive sync state of one working tree, named as persisted."""

    Clean = "Clean"
    NeedPull = "NeedPull"
    NeedPush = "NeedPush"
    NeedCommit = "NeedCommit"
    Timeout = "Timeout"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def from_name(cls, name: str) -> RepoStatus | None:
        """Return the status spelled exactly ``name``, or ``None``."""
        try:
            return cls[name]
        except KeyError:
            return None


_STATUS_LABELS = {
    RepoStatus.Clean: "clean",
    RepoStatus.NeedPull: "need pull",
    RepoStatus.NeedPush: "need push",
    RepoStatus.NeedCommit: "need commit",
    RepoStatus.Timeout: "timeout",
}


def repo_name_for_path(path: Path) -> str:
    return path.name or str(path)


@dataclass(frozen=True)
class Repository:
    """One discovered working tree; ``path`` is its identity across scans."""

    name: str
    path: Path
    status: RepoStatus
    last_commit_time: int = 0

    @classmethod
    def for_path(cls, path: Path, status: RepoStatus, last_commit_time: int = 0) -> Repository:
        return cls(
            name=repo_name_for_path(path),
            path=path,
            status=status,
            last_commit_time=last_commit_time,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "path": str(self.path),
            "status": self.status.value,
            "last_commit_time": self.last_commit_time,
        }

    @classmethod
    def from_dict(cls, raw: object) -> Repository:
        """Decode one persisted record, raising ``ParseFailure`` on any bad field."""
        if not isinstance(raw, dict):
            raise ParseFailure(f"repository record is not an object: {raw!r}")

        name = raw.get("name")
        path = raw.get("path")
        status_name = raw.get("status")
        last_commit_time = raw.get("last_commit_time", 0)
        if not isinstance(name, str) or not isinstance(path, str) or not path:
            raise ParseFailure(f"repository record has invalid name/path: {raw!r}")
        status = RepoStatus.from_name(status_name) if isinstance(status_name, str) else None
        if status is None:
            raise ParseFailure(f"repository record has unknown status: {status_name!r}")
        if isinstance(last_commit_time, bool) or not isinstance(last_commit_time, int):
            raise ParseFailure(f"repository record has invalid last_commit_time: {last_commit_time!r}")

        return cls(name=name, path=Path(path), status=status, last_commit_time=max(0, last_commit_time))


__all__ = ["RepoStatus", "Repository", "repo_name_for_path"]
