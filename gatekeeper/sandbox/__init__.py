"""
External tool execution for Gatekeeper.

Build, lint, compile and test commands run either locally or inside
Docker containers, always bounded by a configured timeout.
"""

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.errors import ConfigTypeMismatch
from gatekeeper.sandbox.base import ToolResult, ToolRunner, excerpt
from gatekeeper.sandbox.docker_runner import DockerToolRunner, is_docker_available
from gatekeeper.sandbox.local_runner import LocalToolRunner


def create_runner(config: ConfigurationStore, verbose: bool = False) -> ToolRunner:
    """Build the runner selected by EXECUTION_SANDBOX."""
    mode = config.get_string("EXECUTION_SANDBOX").strip().lower()
    if mode == "local":
        return LocalToolRunner(verbose=verbose)
    if mode == "docker":
        return DockerToolRunner(
            config.get_string("SANDBOX_IMAGE"),
            network_disabled=not config.get_bool("SANDBOX_NETWORK"),
            verbose=verbose,
        )
    raise ConfigTypeMismatch("EXECUTION_SANDBOX", "local|docker", mode)


__all__ = [
    "ToolResult",
    "ToolRunner",
    "excerpt",
    "DockerToolRunner",
    "LocalToolRunner",
    "create_runner",
    "is_docker_available",
]
