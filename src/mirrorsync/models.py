from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from .text_utils import path_key


class NodeType(str, Enum):
    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"
    SPECIAL = "special"


class CopyReason(str, Enum):
    MISSING = "missing"
    METADATA_DIFF = "metadata_diff"
    CONTENT_DIFF = "content_diff"


class ItemAction(str, Enum):
    CREATED_DIR = "created_dir"
    COPIED_FILE = "copied_file"
    DELETED_FILE = "deleted_file"
    DELETED_DIR = "deleted_dir"
    SKIPPED = "skipped"
    FAILED = "failed"


class Phase(str, Enum):
    CREATE_DIRS = "create_dirs"
    COPY_FILES = "copy_files"
    DELETE_FILES = "delete_files"
    DELETE_DIRS = "delete_dirs"


CHANGE_ACTIONS = frozenset(
    {
        ItemAction.CREATED_DIR,
        ItemAction.COPIED_FILE,
        ItemAction.DELETED_FILE,
        ItemAction.DELETED_DIR,
    }
)


@dataclass(frozen=True)
class FileRecord:
    relpath: str
    absolute_path: Path
    size: int
    mtime_ns: int
    node_type: NodeType = NodeType.FILE

    @property
    def last_modified_utc(self) -> datetime:
        return datetime.fromtimestamp(self.mtime_ns / 1_000_000_000, tz=UTC)


@dataclass(frozen=True)
class DirectorySnapshot:
    """Point-in-time view of one tree, keyed by path key."""

    root: Path
    case_sensitive: bool
    subdirectories: Mapping[str, str] = field(default_factory=dict)
    files: Mapping[str, FileRecord] = field(default_factory=dict)
    special: Mapping[str, FileRecord] = field(default_factory=dict)
    # path keys of entries whose listing or metadata could not be read
    incomplete: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "subdirectories", MappingProxyType(dict(self.subdirectories)))
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))
        object.__setattr__(self, "special", MappingProxyType(dict(self.special)))
        object.__setattr__(self, "incomplete", frozenset(self.incomplete))

    def key(self, relpath: str) -> str:
        return path_key(relpath, case_sensitive=self.case_sensitive)

    def has_subdirectory(self, relpath: str) -> bool:
        return self.key(relpath) in self.subdirectories

    def get_file(self, relpath: str) -> FileRecord | None:
        return self.files.get(self.key(relpath))

    def get_special(self, relpath: str) -> FileRecord | None:
        return self.special.get(self.key(relpath))

    def is_incomplete(self, relpath: str) -> bool:
        """True when relpath is at or below an entry the scan could not read."""
        key = self.key(relpath)
        return any(
            not prefix or key == prefix or key.startswith(prefix + "/")
            for prefix in self.incomplete
        )


@dataclass(frozen=True)
class ItemOutcome:
    relpath: str
    action: ItemAction
    phase: Phase
    reason: CopyReason | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.action != ItemAction.FAILED


@dataclass
class CycleResult:
    started_at: datetime
    outcomes: list[ItemOutcome] = field(default_factory=list)
    duration_seconds: float = 0.0

    def counts(self) -> dict[ItemAction, int]:
        counts = {action: 0 for action in ItemAction}
        for outcome in self.outcomes:
            counts[outcome.action] += 1
        return counts

    @property
    def changes(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action in CHANGE_ACTIONS)

    @property
    def failures(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.action == ItemAction.FAILED]

    def by_action(self, action: ItemAction) -> list[str]:
        return [outcome.relpath for outcome in self.outcomes if outcome.action == action]
