"""
Import extraction and resolution for JavaScript/TypeScript sources.

Only lexical analysis: import specifiers are found with regular
expressions and resolved against the repository layout.
"""

import posixpath
import re
from typing import Iterable, Optional

from gatekeeper.repository.diff import normalize_path
from gatekeeper.repository.snapshot import RepositorySnapshot

IMPORT_PATTERN = re.compile(r"""(?:import|from)\s+['"]([^'"]+)['"]""")
CALL_PATTERN = re.compile(r"""(?:require|import)\s*\(\s*['"]([^'"]+)['"]\s*\)""")


def extract_imports(source: str) -> list[str]:
    """
    Extract module specifiers from source text.

    Covers `import ... from 'x'`, `import 'x'`, `export ... from 'x'`,
    `require('x')` and dynamic `import('x')`.

    Returns:
        Unique specifiers in order of first appearance
    """
    found = []
    seen = set()
    for pattern in (IMPORT_PATTERN, CALL_PATTERN):
        for match in pattern.finditer(source):
            spec = match.group(1)
            if spec not in seen:
                seen.add(spec)
                found.append(spec)
    return found


def is_relative(spec: str) -> bool:
    return spec in (".", "..") or spec.startswith(("./", "../"))


def sort_aliases(pairs: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Longest alias first, so `@/lib/` wins over `@/`."""
    return sorted(pairs, key=lambda pair: len(pair[0]), reverse=True)


def match_alias(spec: str, aliases: Iterable[tuple[str, str]]) -> Optional[str]:
    for alias, target in aliases:
        if spec.startswith(alias):
            return normalize_path(posixpath.join(target, spec[len(alias):]))
    return None


def resolve_specifier(
    spec: str,
    importer: str,
    aliases: Iterable[tuple[str, str]],
) -> Optional[str]:
    """
    Resolve a specifier to a repository-relative base path.

    Args:
        spec: Module specifier as written in the source
        importer: Repository-relative path of the importing file
        aliases: (alias, target) pairs, longest first

    Returns:
        Base path without extension guessing, or None for a bare module
    """
    if is_relative(spec):
        joined = posixpath.join(posixpath.dirname(normalize_path(importer)), spec)
        return posixpath.normpath(joined)
    return match_alias(spec, aliases)


def candidate_paths(base: str, extensions: Iterable[str]) -> list[str]:
    """The file itself, with each extension, then `index` with each extension."""
    exts = list(extensions)
    candidates = [base]
    candidates.extend(base + ext for ext in exts)
    candidates.extend(f"{base}/index{ext}" for ext in exts)
    return candidates


def find_existing(repo: RepositorySnapshot, base: str, extensions: Iterable[str]) -> Optional[str]:
    for candidate in candidate_paths(base, extensions):
        if not candidate.startswith("../") and repo.is_file(candidate):
            return candidate
    return None


def strip_extension(path: str, extensions: Iterable[str]) -> str:
    for ext in extensions:
        if path.endswith(ext):
            return path[: -len(ext)]
    return path


def points_to(base: str, target: str, extensions: Iterable[str]) -> bool:
    """Whether an import resolved to `base` refers to the file `target`."""
    exts = list(extensions)
    target = normalize_path(target)
    if target in candidate_paths(base, exts):
        return True
    return strip_extension(base, exts) == strip_extension(target, exts)


def package_name(spec: str) -> str:
    """`@scope/pkg/sub` -> `@scope/pkg`, `lodash/fp` -> `lodash`."""
    parts = spec.split("/")
    if spec.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def is_builtin(spec: str, builtins: Iterable[str]) -> bool:
    if spec.startswith("node:"):
        return True
    names = set(builtins)
    return spec in names or package_name(spec) in names


def declared_dependencies(repo: RepositorySnapshot) -> set[str]:
    """
    Dependency names from the repository's package.json.

    Raises:
        RepositoryAccessError: If package.json exists but is unreadable
    """
    if not repo.is_file("package.json"):
        return set()
    data = repo.read_json("package.json")
    if not isinstance(data, dict):
        return set()
    names = set()
    for section in ("dependencies", "devDependencies", "peerDependencies", "optionalDependencies"):
        names.update((data.get(section) or {}).keys())
    return names
