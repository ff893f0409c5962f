"""
Shared fixtures for Gatekeeper tests.

Repositories are throwaway directories under tmp_path; external tools
are replaced by FakeToolRunner so no test spawns a process.
"""

from pathlib import Path

import pytest
from git import Actor, Repo

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import Contract, Manifest, ManifestEntry, FileAction, TaskContext
from gatekeeper.repository.diff import WorkingDiff
from gatekeeper.repository.snapshot import RepositorySnapshot
from gatekeeper.sandbox.base import ToolResult


class FakeToolRunner:
    """ToolRunner double: answers by command substring and records calls."""

    def __init__(self):
        self.calls = []
        self.exit_codes = {}
        self.outputs = {}
        self.errors = {}
        self.in_place = []
        self.on_run = None

    def run(self, command, cwd, timeout_ms, in_place=False):
        self.calls.append((command, cwd, timeout_ms))
        self.in_place.append(in_place)
        if self.on_run is not None:
            self.on_run(command, cwd)
        for needle, error in self.errors.items():
            if needle in command:
                raise error
        exit_code = 0
        output = ""
        for needle, code in self.exit_codes.items():
            if needle in command:
                exit_code = code
        for needle, text in self.outputs.items():
            if needle in command:
                output = text
        return ToolResult(command=command, exit_code=exit_code, output=output, duration_seconds=0.01)


@pytest.fixture
def store():
    return ConfigurationStore()


@pytest.fixture
def fake_runner():
    return FakeToolRunner()


@pytest.fixture
def write_files(tmp_path):
    """Write {relative path: content} into the temporary repository."""
    def write(files: dict) -> Path:
        for rel, content in files.items():
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return tmp_path
    return write


@pytest.fixture
def repo(tmp_path):
    return RepositorySnapshot(tmp_path)


@pytest.fixture
def make_ctx(repo, fake_runner):
    """
    Build a TaskContext over the temporary repository.

    `files` takes (path, action) pairs; `changed` lists diff paths.
    """
    def make(
        prompt="Add a retry to the fetch service",
        files=None,
        test_file="src/services/fetchService.spec.ts",
        changed=None,
        test_content=None,
        contract=None,
        danger_mode=False,
        manifest=True,
        **kwargs,
    ):
        task_manifest = None
        if manifest:
            entries = tuple(
                ManifestEntry(path=path, action=FileAction(action))
                for path, action in (files or [])
            )
            task_manifest = Manifest(files=entries, test_file=test_file)
        return TaskContext(
            prompt=prompt,
            manifest=task_manifest,
            repo=repo,
            diff=WorkingDiff.from_paths(changed or []),
            test_file_path=test_file,
            test_file_content=test_content,
            contract=Contract(clauses=tuple(contract)) if contract is not None else None,
            danger_mode=danger_mode,
            tool_runner=kwargs.pop("tool_runner", fake_runner),
            **kwargs,
        )
    return make


AUTHOR = Actor("Gatekeeper Tests", "tests@example.com")


@pytest.fixture
def git_repo(tmp_path, write_files):
    """
    Git repository with two commits: the base (README.md, src/app.ts)
    and a task commit adding src/feature.ts.
    """
    repo = Repo.init(tmp_path)
    write_files({
        "README.md": "# app\n",
        "src/app.ts": "export const retries = 1\n",
    })
    repo.index.add(["README.md", "src/app.ts"])
    repo.index.commit("base", author=AUTHOR, committer=AUTHOR)

    write_files({"src/feature.ts": "export const feature = true\n"})
    repo.index.add(["src/feature.ts"])
    repo.index.commit("task", author=AUTHOR, committer=AUTHOR)
    return repo
