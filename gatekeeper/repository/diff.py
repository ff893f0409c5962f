"""
Working diff model for Gatekeeper.

A WorkingDiff is the set of changed paths of a task, each tagged with
where the change lives (committed, staged, unstaged, untracked).
Unified diffs are parsed with unidiff.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from unidiff import PatchSet, UnidiffParseError

from gatekeeper.errors import DiffParseError


class ChangeOrigin(str, Enum):
    COMMITTED = "committed"
    STAGED = "staged"
    UNSTAGED = "unstaged"
    UNTRACKED = "untracked"


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


WORKING_TREE_ORIGINS = (ChangeOrigin.STAGED, ChangeOrigin.UNSTAGED, ChangeOrigin.UNTRACKED)


def normalize_path(path: str) -> str:
    """Forward slashes, no leading slash or `./`."""
    normalized = path.replace("\\", "/").strip()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


@dataclass(frozen=True)
class ChangedFile:
    path: str
    kind: ChangeKind = ChangeKind.MODIFIED
    origin: ChangeOrigin = ChangeOrigin.COMMITTED
    added: int = 0
    removed: int = 0


@dataclass(frozen=True)
class WorkingDiff:
    files: tuple[ChangedFile, ...] = ()

    def paths(self, include_working_tree: bool = True) -> list[str]:
        """
        Changed paths in first-seen order, without duplicates.

        Args:
            include_working_tree: Also report staged/unstaged/untracked changes

        Returns:
            Normalized relative paths
        """
        seen = set()
        ordered = []
        for changed in self.files:
            if not include_working_tree and changed.origin in WORKING_TREE_ORIGINS:
                continue
            if changed.path not in seen:
                seen.add(changed.path)
                ordered.append(changed.path)
        return ordered

    def merge(self, other: "WorkingDiff") -> "WorkingDiff":
        return WorkingDiff(self.files + other.files)

    def __len__(self) -> int:
        return len(self.files)

    @classmethod
    def from_paths(
        cls,
        paths: Iterable[str],
        origin: ChangeOrigin = ChangeOrigin.COMMITTED,
        kind: ChangeKind = ChangeKind.MODIFIED,
    ) -> "WorkingDiff":
        return cls(tuple(
            ChangedFile(path=normalize_path(p), kind=kind, origin=origin)
            for p in paths
        ))


def parse_unified_diff(
    diff_text: str,
    origin: ChangeOrigin = ChangeOrigin.COMMITTED,
) -> WorkingDiff:
    """
    Parse a unified diff into a WorkingDiff.

    Args:
        diff_text: Unified diff string
        origin: Where the changes live

    Returns:
        WorkingDiff (empty for an empty diff)

    Raises:
        DiffParseError: If the text is not a valid unified diff
    """
    if not diff_text or not diff_text.strip():
        return WorkingDiff()

    try:
        patch = PatchSet(diff_text)
    except UnidiffParseError as e:
        raise DiffParseError(f"Invalid diff format: {e}") from e

    files = []
    for patched_file in patch:
        if patched_file.is_added_file:
            kind = ChangeKind.ADDED
        elif patched_file.is_removed_file:
            kind = ChangeKind.REMOVED
        elif patched_file.is_rename:
            kind = ChangeKind.RENAMED
        else:
            kind = ChangeKind.MODIFIED

        files.append(ChangedFile(
            path=normalize_path(patched_file.path),
            kind=kind,
            origin=origin,
            added=patched_file.added,
            removed=patched_file.removed,
        ))

    return WorkingDiff(tuple(files))
