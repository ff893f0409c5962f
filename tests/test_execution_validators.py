"""
Tests for the validators backed by external tools.

A FakeToolRunner stands in for subprocess and Docker.
"""

import os
import subprocess

import docker
import pytest
import requests
from docker.errors import DockerException

from gatekeeper.errors import ExternalToolError, ExternalToolTimeout
from gatekeeper.models import Status
from gatekeeper.policy.execution import (
    check_full_regression,
    check_production_build,
    check_strict_compilation,
    check_style_lint,
    check_task_test_passes,
)
from gatekeeper.sandbox import LocalToolRunner, create_runner, excerpt
from gatekeeper.sandbox.docker_runner import DockerToolRunner


class TestToolValidators:
    def test_task_test_substitutes_test_file(self, make_ctx, store, fake_runner, repo):
        outcome = check_task_test_passes(make_ctx(), store)
        assert outcome.status == Status.PASSED
        command, cwd, timeout_ms = fake_runner.calls[0]
        assert command == "npx vitest run src/services/fetchService.spec.ts"
        assert cwd == str(repo.root)
        assert timeout_ms == 600000

    def test_non_zero_exit_fails_with_excerpt(self, make_ctx, store, fake_runner):
        store.set("TOOL_OUTPUT_EXCERPT_CHARS", 10)
        fake_runner.exit_codes["tsc"] = 2
        fake_runner.outputs["tsc"] = "error TS2304: Cannot find name 'foo'"
        outcome = check_strict_compilation(make_ctx(), store)
        assert outcome.status == Status.FAILED
        assert outcome.details["exit_code"] == 2
        assert outcome.details["output"].endswith("name 'foo'")

    def test_timeout_propagates(self, make_ctx, store, fake_runner):
        fake_runner.errors["build"] = ExternalToolTimeout("npm run build", 120000)
        with pytest.raises(ExternalToolTimeout):
            check_production_build(make_ctx(), store)

    def test_regression_uses_configured_command(self, make_ctx, store, fake_runner):
        store.set("REGRESSION_COMMAND", "npm test")
        check_full_regression(make_ctx(), store)
        assert fake_runner.calls[0][0] == "npm test"

    def test_no_test_path_fails(self, make_ctx, store):
        assert check_task_test_passes(make_ctx(test_file=None), store).status == Status.FAILED


class TestLint:
    def test_skipped_without_config(self, make_ctx, store, fake_runner):
        outcome = check_style_lint(make_ctx(changed=["src/a.ts"]), store)
        assert outcome.status == Status.SKIPPED
        assert fake_runner.calls == []

    def test_lints_changed_source_files(self, make_ctx, store, fake_runner, write_files):
        write_files({
            "eslint.config.js": "export default []\n",
            "src/a.ts": "export const a = 1\n",
            "README.md": "# readme\n",
        })
        check_style_lint(make_ctx(changed=["src/a.ts", "README.md", "src/gone.ts"]), store)
        assert fake_runner.calls[0][0] == "npx eslint src/a.ts"


class TestSandbox:
    def test_excerpt_keeps_tail(self):
        assert excerpt("abcdef", 3).endswith("def")
        assert excerpt("abc", 10) == "abc"

    def test_create_runner(self, store):
        assert isinstance(create_runner(store), LocalToolRunner)
        store.set("EXECUTION_SANDBOX", "docker")
        runner = create_runner(store)
        assert isinstance(runner, DockerToolRunner)
        assert runner.image == "node:20-slim"

    def test_local_runner_timeout(self, monkeypatch, tmp_path):
        def fake_run(*args, **kwargs):
            raise subprocess.TimeoutExpired(cmd=args[0], timeout=1, stderr=b"still running")
        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(ExternalToolTimeout) as exc_info:
            LocalToolRunner().run("npx vitest run", str(tmp_path), 1000)
        assert exc_info.value.stderr == "still running"

    def test_local_runner_missing_binary(self, tmp_path):
        with pytest.raises(ExternalToolError):
            LocalToolRunner().run("definitely-not-a-real-binary-xyz", str(tmp_path), 1000)

    def test_local_runner_captures_output(self, monkeypatch, tmp_path):
        def fake_run(*args, **kwargs):
            return subprocess.CompletedProcess(args[0], 1, stdout="out\n", stderr="err\n")
        monkeypatch.setattr(subprocess, "run", fake_run)

        result = LocalToolRunner().run("npx tsc --noEmit", str(tmp_path), 1000)
        assert result.exit_code == 1
        assert not result.success
        assert result.output == "out\nerr\n"


class FakeContainer:
    def __init__(self, wait_error=None, status_code=0):
        self.wait_error = wait_error
        self.status_code = status_code
        self.killed = False
        self.removed_with = None

    def wait(self, timeout=None):
        self.wait_timeout = timeout
        if self.wait_error is not None:
            raise self.wait_error
        return {"StatusCode": self.status_code}

    def kill(self):
        self.killed = True

    def logs(self, stdout=True, stderr=True):
        return b"vitest still running"

    def remove(self, force=False):
        self.removed_with = {"force": force}


class FakeDockerClient:
    """docker-py client double recording containers.run arguments."""

    def __init__(self, container):
        self.container = container
        self.run_kwargs = None
        self.workspace_files = None
        self.images = self
        self.containers = self

    def get(self, image):
        return image

    def run(self, **kwargs):
        self.run_kwargs = kwargs
        (workspace,) = kwargs["volumes"]
        self.workspace_files = sorted(os.listdir(workspace))
        # Tools write into the mounted copy
        with open(os.path.join(workspace, "dist.js"), "w") as f:
            f.write("built")
        return self.container


@pytest.fixture
def docker_client(monkeypatch):
    def install(container):
        client = FakeDockerClient(container)
        monkeypatch.setattr(docker, "from_env", lambda: client)
        return client
    return install


class TestDockerRunner:
    def test_runs_in_writable_copy(self, docker_client, write_files):
        root = write_files({"package.json": "{}", ".git/HEAD": "ref: refs/heads/main\n"})
        client = docker_client(FakeContainer(status_code=3))

        result = DockerToolRunner("node:20-slim").run("npm run build", str(root), 5000)

        assert result.exit_code == 3
        assert result.output == "vitest still running"
        (workspace, bind), = client.run_kwargs["volumes"].items()
        assert bind == {"bind": "/workspace", "mode": "rw"}
        assert workspace != str(root)
        assert client.workspace_files == ["package.json"]
        # The checkout is untouched and the copy is cleaned up
        assert not (root / "dist.js").exists()
        assert not os.path.exists(workspace)
        assert client.container.removed_with == {"force": True}

    def test_in_place_mounts_cwd(self, docker_client, write_files):
        """Throwaway directories are mounted directly so installs persist between commands."""
        root = write_files({"package-lock.json": "{}"})
        client = docker_client(FakeContainer())

        DockerToolRunner("node:20-slim").run("npm ci", str(root), 5000, in_place=True)

        assert list(client.run_kwargs["volumes"]) == [str(root)]
        assert (root / "dist.js").exists()

    def test_wait_timeout_kills_and_removes(self, docker_client, tmp_path):
        container = FakeContainer(wait_error=requests.exceptions.ReadTimeout("read timed out"))
        docker_client(container)

        with pytest.raises(ExternalToolTimeout) as exc_info:
            DockerToolRunner("node:20-slim").run("npx vitest run", str(tmp_path), 2000)

        assert exc_info.value.timeout_ms == 2000
        assert exc_info.value.stderr == "vitest still running"
        assert container.wait_timeout == 2.0
        assert container.killed
        assert container.removed_with == {"force": True}

    def test_docker_unavailable(self, monkeypatch, tmp_path):
        def unavailable():
            raise DockerException("no daemon")
        monkeypatch.setattr(docker, "from_env", unavailable)

        with pytest.raises(ExternalToolError):
            DockerToolRunner("node:20-slim").run("npx tsc --noEmit", str(tmp_path), 1000)
