"""
Task context for Gatekeeper.

A TaskContext is everything the validators may look at for one task:
- The task prompt and its manifest (files to create, edit or delete)
- The working diff and the task test file
- An optional contract listing the clauses the test must cover
- A read-only snapshot of the repository

The context is immutable; validators run concurrently over it.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

from gatekeeper.errors import ConfigTypeMismatch
from gatekeeper.models import GLOBAL_WORKSPACE
from gatekeeper.repository.diff import WorkingDiff, normalize_path
from gatekeeper.repository.snapshot import RepositorySnapshot
from gatekeeper.sandbox.base import ToolRunner

TokenCounter = Callable[[str], int]


class FileAction(str, Enum):
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, raw: str) -> "FileAction":
        value = raw.strip().upper()
        if value == "MODIFY":
            return cls.EDIT
        try:
            return cls(value)
        except ValueError:
            raise ConfigTypeMismatch("manifest.files.action", "CREATE|EDIT|DELETE", raw) from None


@dataclass(frozen=True)
class ManifestEntry:
    path: str
    action: FileAction = FileAction.EDIT
    reason: str = ""


@dataclass(frozen=True)
class Manifest:
    """The files a task declares it will touch, plus its test file."""

    files: tuple[ManifestEntry, ...] = ()
    test_file: Optional[str] = None

    def paths(self) -> list[str]:
        return [entry.path for entry in self.files]

    def entry(self, path: str) -> Optional[ManifestEntry]:
        normalized = normalize_path(path)
        for entry in self.files:
            if entry.path == normalized:
                return entry
        return None

    def with_action(self, *actions: FileAction) -> list[ManifestEntry]:
        return [entry for entry in self.files if entry.action in actions]

    @classmethod
    def from_dict(cls, data: dict) -> "Manifest":
        files = []
        for item in data.get("files") or ():
            if isinstance(item, str):
                files.append(ManifestEntry(path=normalize_path(item)))
                continue
            files.append(ManifestEntry(
                path=normalize_path(item["path"]),
                action=FileAction.parse(item.get("action", "EDIT")),
                reason=item.get("reason", ""),
            ))
        test_file = data.get("testFile") or data.get("test_file")
        return cls(
            files=tuple(files),
            test_file=normalize_path(test_file) if test_file else None,
        )


@dataclass(frozen=True)
class Contract:
    """Clause ids a task test is expected to cover."""

    clauses: tuple[str, ...] = ()
    mode: str = "STRICT"
    tag_pattern: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Contract":
        clauses = []
        for clause in data.get("clauses") or ():
            clauses.append(clause if isinstance(clause, str) else clause["id"])
        return cls(
            clauses=tuple(clauses),
            mode=data.get("mode", "STRICT"),
            tag_pattern=data.get("tagPattern") or data.get("tag_pattern"),
        )


@dataclass(frozen=True)
class TaskContext:
    prompt: str
    manifest: Optional[Manifest]
    repo: RepositorySnapshot
    diff: WorkingDiff = field(default_factory=WorkingDiff)
    test_file_path: Optional[str] = None
    test_file_content: Optional[str] = None
    contract: Optional[Contract] = None
    danger_mode: bool = False
    workspace_id: str = GLOBAL_WORKSPACE
    task_id: str = ""
    token_counter: Optional[TokenCounter] = None
    tool_runner: Optional[ToolRunner] = None
    base_ref: Optional[str] = None

    @property
    def test_path(self) -> Optional[str]:
        """Test file path, falling back to the one declared in the manifest."""
        if self.test_file_path:
            return normalize_path(self.test_file_path)
        if self.manifest is not None and self.manifest.test_file:
            return self.manifest.test_file
        return None

    def test_content(self) -> Optional[str]:
        """
        Test file content, read from the repository when not supplied.

        Raises:
            RepositoryAccessError: If the test file exists but cannot be read
        """
        if self.test_file_content is not None:
            return self.test_file_content
        path = self.test_path
        if path is None or not self.repo.is_file(path):
            return None
        return self.repo.read_text(path)


def _load_json(path: Union[str, Path]) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_manifest(path: Union[str, Path]) -> Manifest:
    return Manifest.from_dict(_load_json(path))


def load_contract(path: Union[str, Path]) -> Contract:
    return Contract.from_dict(_load_json(path))
