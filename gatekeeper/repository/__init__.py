"""
Repository access for Gatekeeper.

Handles:
- Read-only file access (snapshot)
- Unified diff parsing
- Git change collection (committed and working tree)
"""

from gatekeeper.repository.diff import (
    ChangedFile,
    ChangeKind,
    ChangeOrigin,
    WorkingDiff,
    normalize_path,
    parse_unified_diff,
)
from gatekeeper.repository.git_changes import collect_changes
from gatekeeper.repository.snapshot import RepositorySnapshot

__all__ = [
    "ChangedFile",
    "ChangeKind",
    "ChangeOrigin",
    "WorkingDiff",
    "normalize_path",
    "parse_unified_diff",
    "collect_changes",
    "RepositorySnapshot",
]
