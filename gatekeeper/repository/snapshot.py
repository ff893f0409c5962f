"""
Read-only repository snapshot for Gatekeeper.

Validators only ever read the repository; this class is the single
place that touches the filesystem on their behalf.
"""

import json
import os
from pathlib import Path
from typing import Any, Iterable, Iterator, Union

from gatekeeper.errors import RepositoryAccessError
from gatekeeper.repository.diff import normalize_path


class RepositorySnapshot:
    """Accessor over a checked-out repository rooted at `root`."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def __repr__(self) -> str:
        return f"RepositorySnapshot({str(self.root)!r})"

    def resolve(self, path: str) -> Path:
        """
        Absolute path for a repository-relative path.

        Raises:
            RepositoryAccessError: If the path leaves the repository root
        """
        resolved = (self.root / normalize_path(path)).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise RepositoryAccessError(normalize_path(path), "path is outside the repository")
        return resolved

    def contains(self, path: str) -> bool:
        """True when `path` stays inside the repository root."""
        try:
            self.resolve(path)
        except RepositoryAccessError:
            return False
        return True

    def relative(self, path: Union[str, Path]) -> str:
        """Repository-relative POSIX path for an absolute path."""
        absolute = Path(path).resolve()
        try:
            return absolute.relative_to(self.root).as_posix()
        except ValueError:
            return absolute.as_posix()

    def exists(self, path: str) -> bool:
        return self.contains(path) and self.resolve(path).exists()

    def is_file(self, path: str) -> bool:
        return self.contains(path) and self.resolve(path).is_file()

    def read_text(self, path: str) -> str:
        """
        Read a repository file as UTF-8.

        Raises:
            RepositoryAccessError: If the file is missing or unreadable
        """
        resolved = self.resolve(path)
        try:
            return resolved.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise RepositoryAccessError(normalize_path(path), str(e)) from e

    def read_json(self, path: str) -> Any:
        text = self.read_text(path)
        try:
            return json.loads(text)
        except ValueError as e:
            raise RepositoryAccessError(normalize_path(path), f"invalid JSON: {e}") from e

    def iter_files(
        self,
        extensions: Iterable[str] = (),
        ignore_dirs: Iterable[str] = (),
    ) -> Iterator[str]:
        """
        Walk the repository yielding relative paths.

        Args:
            extensions: Only yield files with these suffixes (all files if empty)
            ignore_dirs: Directory names pruned from the walk

        Yields:
            Repository-relative POSIX paths in sorted order
        """
        suffixes = tuple(extensions)
        ignored = set(ignore_dirs)

        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if d not in ignored)
            for filename in sorted(filenames):
                if suffixes and not filename.endswith(suffixes):
                    continue
                yield self.relative(Path(dirpath) / filename)
