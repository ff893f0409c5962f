"""
Docker Sandbox Runner for Gatekeeper.

Executes build/lint/test commands in isolated Docker containers to:
- Keep candidate changes away from the host
- Ensure reproducibility
- Bound execution time
"""

import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Iterable

import docker
import requests
from docker.errors import DockerException, ImageNotFound
from rich.console import Console

from gatekeeper.errors import ExternalToolError, ExternalToolTimeout
from gatekeeper.sandbox.base import ToolResult, decode_output

console = Console()


def is_docker_available() -> bool:
    """Check if Docker daemon is accessible."""
    try:
        client = docker.from_env()
        client.ping()
        return True
    except DockerException:
        return False


class DockerToolRunner:
    """
    Runs commands inside a throwaway container.

    The repository is copied to a temporary directory that is mounted
    read-write at /workspace, so builds and test caches can write while
    the checkout itself is never modified.
    """

    def __init__(
        self,
        image: str,
        network_disabled: bool = True,
        mem_limit: str = "1g",
        copy_ignore: Iterable[str] = (".git",),
        verbose: bool = False,
    ):
        self.image = image
        self.network_disabled = network_disabled
        self.mem_limit = mem_limit
        self.copy_ignore = tuple(copy_ignore)
        self.verbose = verbose

    def _ensure_image(self, client) -> None:
        try:
            client.images.get(self.image)
        except ImageNotFound:
            if self.verbose:
                console.print(f"[yellow]Pulling image: {self.image}[/yellow]")
            client.images.pull(self.image)

    def _copy_workspace(self, command: str, abs_repo: str, scratch: str) -> str:
        workspace = os.path.join(scratch, "workspace")
        try:
            shutil.copytree(
                abs_repo,
                workspace,
                symlinks=True,
                ignore=shutil.ignore_patterns(*self.copy_ignore),
            )
        except (OSError, shutil.Error) as e:
            raise ExternalToolError(command, f"could not copy repository into sandbox: {e}") from e
        return workspace

    def run(self, command: str, cwd: str, timeout_ms: float, in_place: bool = False) -> ToolResult:
        """
        Execute a command in a Docker sandbox.

        Args:
            command: Command to execute (e.g., "npx tsc --noEmit")
            cwd: Repository path copied into the container
            timeout_ms: Maximum execution time in milliseconds
            in_place: Mount `cwd` itself instead of a copy (throwaway directories only)

        Returns:
            ToolResult with exit code and combined output

        Raises:
            ExternalToolTimeout: If the container exceeds the timeout
            ExternalToolError: If Docker is unavailable or the run fails
        """
        abs_repo = os.path.abspath(cwd)
        if not Path(abs_repo).exists():
            raise ExternalToolError(command, f"repository path does not exist: {abs_repo}")

        try:
            client = docker.from_env()
            self._ensure_image(client)
        except DockerException as e:
            raise ExternalToolError(command, f"Docker is not available: {e}") from e

        if self.verbose:
            console.print(f"[dim]Running in sandbox: {command}[/dim]")

        scratch = tempfile.mkdtemp(prefix="gatekeeper-")
        container = None
        try:
            if in_place:
                workspace = abs_repo
            else:
                workspace = self._copy_workspace(command, abs_repo, scratch)
            start = time.monotonic()
            container = client.containers.run(
                image=self.image,
                command=["sh", "-c", command],
                volumes={workspace: {"bind": "/workspace", "mode": "rw"}},
                working_dir="/workspace",
                network_disabled=self.network_disabled,
                mem_limit=self.mem_limit,
                detach=True,
            )
            try:
                status = container.wait(timeout=timeout_ms / 1000.0)
            except (requests.exceptions.ReadTimeout, requests.exceptions.ConnectionError) as e:
                container.kill()
                partial = decode_output(container.logs(stdout=False, stderr=True))
                raise ExternalToolTimeout(command, timeout_ms, partial) from e

            output = decode_output(container.logs(stdout=True, stderr=True))
            return ToolResult(
                command=command,
                exit_code=int(status.get("StatusCode", 1)),
                output=output,
                duration_seconds=time.monotonic() - start,
            )
        except DockerException as e:
            raise ExternalToolError(command, f"Docker API error: {e}") from e
        finally:
            if container is not None:
                try:
                    container.remove(force=True)
                except DockerException as e:
                    if self.verbose:
                        console.print(f"[yellow]Could not remove container: {e}[/yellow]")
            shutil.rmtree(scratch, ignore_errors=True)
