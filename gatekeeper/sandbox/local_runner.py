"""
Local subprocess runner for Gatekeeper.

Runs external commands directly in the repository checkout.
"""

import shlex
import subprocess
import time

from rich.console import Console

from gatekeeper.errors import ExternalToolError, ExternalToolTimeout
from gatekeeper.sandbox.base import ToolResult, decode_output

console = Console()


class LocalToolRunner:
    """Runs commands with subprocess, bounded by a timeout."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def run(self, command: str, cwd: str, timeout_ms: float, in_place: bool = False) -> ToolResult:
        """
        Execute a command in `cwd`.

        Args:
            command: Command line (split with shlex, no shell)
            cwd: Working directory
            timeout_ms: Maximum execution time in milliseconds
            in_place: Accepted for the ToolRunner contract; local runs always use `cwd`

        Returns:
            ToolResult with exit code and combined stdout/stderr

        Raises:
            ExternalToolTimeout: If the command exceeds the timeout
            ExternalToolError: If the command cannot be started
        """
        if self.verbose:
            console.print(f"[dim]Running: {command}[/dim]")

        start = time.monotonic()
        try:
            result = subprocess.run(
                shlex.split(command),
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout_ms / 1000.0,
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolTimeout(command, timeout_ms, decode_output(e.stderr)) from e
        except (OSError, ValueError) as e:
            raise ExternalToolError(command, f"cannot start command: {e}") from e

        output = (result.stdout or "") + (result.stderr or "")
        return ToolResult(
            command=command,
            exit_code=result.returncode,
            output=output,
            duration_seconds=time.monotonic() - start,
        )
