"""
Glob matching over repository paths.

Semantics:
- Patterns match the full repository-relative path
- `**` matches zero or more whole path segments
- `*` and `?` match within a single segment
"""

from fnmatch import fnmatchcase
from functools import lru_cache
from typing import Iterable, Optional

from gatekeeper.repository.diff import normalize_path


@lru_cache(maxsize=1024)
def _split(value: str) -> tuple[str, ...]:
    return tuple(part for part in normalize_path(value).split("/") if part)


def glob_match(path: str, pattern: str) -> bool:
    """
    Check whether a path matches a glob pattern.

    Args:
        path: Repository-relative path
        pattern: Glob pattern such as `**/migrations/**` or `.env*`

    Returns:
        True if the whole path matches
    """
    path_parts = _split(path)
    pattern_parts = _split(pattern)

    def match_from(p_idx: int, path_idx: int) -> bool:
        if p_idx >= len(pattern_parts):
            return path_idx >= len(path_parts)

        current = pattern_parts[p_idx]

        if current == "**":
            # Trailing ** swallows the rest of the path
            if p_idx == len(pattern_parts) - 1:
                return True
            for i in range(path_idx, len(path_parts) + 1):
                if match_from(p_idx + 1, i):
                    return True
            return False

        if path_idx >= len(path_parts):
            return False

        if fnmatchcase(path_parts[path_idx], current):
            return match_from(p_idx + 1, path_idx + 1)

        return False

    return match_from(0, 0)


def first_match(path: str, patterns: Iterable[str]) -> Optional[str]:
    """Return the first pattern matching the path, if any."""
    for pattern in patterns:
        if glob_match(path, pattern):
            return pattern
    return None


def matches_exclusion(path: str, exclusion: str) -> bool:
    """An exclusion is a glob when it has wildcards, a plain substring otherwise."""
    if any(ch in exclusion for ch in "*?["):
        return glob_match(path, exclusion)
    return exclusion in path
