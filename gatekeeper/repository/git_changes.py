"""
Git change collection for Gatekeeper.

Builds a WorkingDiff from a git repository:
- Committed changes between a base and a target ref
- Staged, unstaged and untracked working tree changes
"""

from pathlib import Path
from typing import Union

from git import Repo
from git.exc import BadName, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from gatekeeper.errors import RepositoryAccessError
from gatekeeper.repository.diff import (
    ChangedFile,
    ChangeKind,
    ChangeOrigin,
    WorkingDiff,
    normalize_path,
)

_CHANGE_KINDS = {
    "A": ChangeKind.ADDED,
    "D": ChangeKind.REMOVED,
    "R": ChangeKind.RENAMED,
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
}


def _changed_file(diff, origin: ChangeOrigin) -> ChangedFile:
    kind = _CHANGE_KINDS.get(diff.change_type, ChangeKind.MODIFIED)
    path = diff.a_path if kind == ChangeKind.REMOVED else (diff.b_path or diff.a_path)
    return ChangedFile(path=normalize_path(path), kind=kind, origin=origin)


def collect_changes(
    repo_path: Union[str, Path],
    base_ref: str = "HEAD",
    target_ref: str = "HEAD",
    include_working_tree: bool = True,
) -> WorkingDiff:
    """
    Collect the changed files of a repository.

    Args:
        repo_path: Path to the git repository
        base_ref: Ref the task started from
        target_ref: Ref holding the committed task changes
        include_working_tree: Also collect staged/unstaged/untracked changes

    Returns:
        WorkingDiff with every changed path tagged by origin

    Raises:
        RepositoryAccessError: If the repository or refs cannot be read
    """
    try:
        repo = Repo(repo_path)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise RepositoryAccessError(str(repo_path), f"not a git repository: {e}") from e

    files: list[ChangedFile] = []

    try:
        if base_ref != target_ref:
            base = repo.commit(base_ref)
            target = repo.commit(target_ref)
            for diff in base.diff(target):
                files.append(_changed_file(diff, ChangeOrigin.COMMITTED))

        if include_working_tree:
            if repo.head.is_valid():
                # HEAD vs index
                for diff in repo.head.commit.diff():
                    files.append(_changed_file(diff, ChangeOrigin.STAGED))
            # Index vs working tree
            for diff in repo.index.diff(None):
                files.append(_changed_file(diff, ChangeOrigin.UNSTAGED))
            for path in repo.untracked_files:
                files.append(ChangedFile(
                    path=normalize_path(path),
                    kind=ChangeKind.ADDED,
                    origin=ChangeOrigin.UNTRACKED,
                ))
    except (BadName, GitCommandError, ValueError) as e:
        raise RepositoryAccessError(str(repo_path), f"git error: {e}") from e

    return WorkingDiff(tuple(files))
