"""
Gate 1 - the task test must fail before the implementation exists.

The test file is dropped into a detached git worktree of the base ref,
dependencies are installed from the lockfile, and the test command runs
there. Only a genuine test failure proves the test exercises behavior
the change is about to add:
- Exit code 0 means the test already passes (nothing to implement)
- Missing modules, config or install errors are infrastructure failures
- Output nobody recognizes is treated as an infrastructure failure too
"""

import re
import shlex
import shutil
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import TaskContext
from gatekeeper.errors import RepositoryAccessError
from gatekeeper.models import CheckOutcome
from gatekeeper.policy.contract import read_test_file
from gatekeeper.policy.execution import get_runner
from gatekeeper.sandbox import excerpt


class FailureKind(str, Enum):
    VALID_TEST_FAILURE = "VALID_TEST_FAILURE"
    INFRA_FAILURE = "INFRA_FAILURE"
    UNKNOWN = "UNKNOWN"
    TEST_PASSED = "TEST_PASSED"


INFRA_PATTERNS = tuple(re.compile(p, re.IGNORECASE) for p in (
    r"Cannot find package",
    r"Cannot find module",
    r"ERR_MODULE_NOT_FOUND",
    r"failed to load config",
    r"Startup Error",
    r"npm ERR!",
    r"command not found",
    r"ENOENT",
    r"Unsupported engine",
    r"Test file not found",
))

TEST_FAILURE_PATTERNS = (
    re.compile(r"FAIL\s+.*\.(spec|test)\.(ts|tsx|js|jsx)", re.IGNORECASE),
    re.compile(r"AssertionError", re.IGNORECASE),
    re.compile(r"expect\(.*\)\.to", re.IGNORECASE),
    re.compile(r"\d+ failed", re.IGNORECASE),
    re.compile(r"Tests:\s+\d+ failed", re.IGNORECASE),
    re.compile(r"[✕×]"),
)


def classify_failure(output: str, exit_code: int) -> FailureKind:
    """Infrastructure patterns win over test failure patterns."""
    if exit_code == 0:
        return FailureKind.TEST_PASSED
    for pattern in INFRA_PATTERNS:
        if pattern.search(output):
            return FailureKind.INFRA_FAILURE
    for pattern in TEST_FAILURE_PATTERNS:
        if pattern.search(output):
            return FailureKind.VALID_TEST_FAILURE
    return FailureKind.UNKNOWN


def detect_install_command(worktree: Path, config: ConfigurationStore) -> Optional[tuple[str, str]]:
    """(lockfile, install command) for the first lockfile present, or None."""
    for lockfile, command in config.resolve_pairs("INSTALL_COMMANDS"):
        if (worktree / lockfile).is_file():
            return lockfile, command
    return None


class BaseWorktree:
    """
    Detached worktree of `base_ref`, removed again on exit.

    Raises:
        RepositoryAccessError: If the repository or the ref cannot be read
    """

    def __init__(self, repo_root: Path, base_ref: str):
        self.repo_root = repo_root
        self.base_ref = base_ref
        self.scratch = None
        self.path = None
        self._repo = None

    def __enter__(self) -> Path:
        try:
            self._repo = Repo(self.repo_root)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryAccessError(str(self.repo_root), f"not a git repository: {e}") from e

        self.scratch = tempfile.mkdtemp(prefix="gatekeeper-base-")
        self.path = Path(self.scratch) / "worktree"
        try:
            self._repo.git.worktree("add", "--detach", str(self.path), self.base_ref)
        except GitCommandError as e:
            shutil.rmtree(self.scratch, ignore_errors=True)
            raise RepositoryAccessError(self.base_ref, f"cannot check out base ref: {e}") from e
        return self.path

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self._repo.git.worktree("remove", "--force", str(self.path))
        except GitCommandError:
            # Stale worktree entry: delete the directory, then let git forget it
            shutil.rmtree(self.scratch, ignore_errors=True)
            self._repo.git.worktree("prune")
        else:
            shutil.rmtree(self.scratch, ignore_errors=True)


def check_test_fails_before_implementation(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    content = read_test_file(ctx)
    if isinstance(content, CheckOutcome):
        return content

    base_ref = ctx.base_ref or config.get_string("BASE_REF").strip()
    runner = get_runner(ctx, config)
    limit = config.get_int("TOOL_OUTPUT_EXCERPT_CHARS")
    details = {"base_ref": base_ref, "test_file": ctx.test_path}

    with BaseWorktree(ctx.repo.root, base_ref) as worktree:
        target = (worktree / ctx.test_path).resolve()
        if worktree.resolve() not in target.parents:
            raise RepositoryAccessError(ctx.test_path, "path is outside the repository")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

        install = detect_install_command(worktree, config)
        if install is None:
            return CheckOutcome.failed(
                "Infra failure: no lockfile found on the base ref",
                classification=FailureKind.INFRA_FAILURE.value,
                **details,
            )

        lockfile, install_command = install
        installed = runner.run(
            install_command, str(worktree), config.get_number("INSTALL_TIMEOUT_MS"), in_place=True
        )
        details["install"] = {
            "lockfile": lockfile,
            "command": install_command,
            "exit_code": installed.exit_code,
        }
        if not installed.success:
            return CheckOutcome.failed(
                f"Infra failure: `{install_command}` exited with code {installed.exit_code}",
                classification=FailureKind.INFRA_FAILURE.value,
                output=excerpt(installed.output, limit),
                **details,
            )

        command = config.get_string("TEST_COMMAND").replace("{testFile}", shlex.quote(ctx.test_path))
        result = runner.run(
            command, str(worktree), config.get_number("TEST_EXECUTION_TIMEOUT_MS"), in_place=True
        )

    kind = classify_failure(result.output, result.exit_code)
    details.update(
        command=command,
        exit_code=result.exit_code,
        classification=kind.value,
        output=excerpt(result.output, limit),
    )

    if kind == FailureKind.TEST_PASSED:
        return CheckOutcome.failed(f"Test passed on {base_ref} but should fail before implementation", **details)
    if kind != FailureKind.VALID_TEST_FAILURE:
        return CheckOutcome.failed(f"Infra failure detected: {kind.value}", **details)
    return CheckOutcome.passed(f"Test fails on {base_ref} as expected", **details)
