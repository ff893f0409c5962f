"""
External tool execution contract for Gatekeeper.

Build, lint, compile and test commands run through a ToolRunner.
A runner reports the exit code and combined output, and raises
ExternalToolTimeout / ExternalToolError instead of hanging or crashing.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Union


@dataclass(frozen=True)
class ToolResult:
    command: str
    exit_code: int
    output: str
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ToolRunner(Protocol):
    """
    Runs one command line in `cwd`.

    `in_place` marks `cwd` as a throwaway directory the command may
    modify directly; otherwise a sandboxing runner works on a copy.
    """

    def run(self, command: str, cwd: str, timeout_ms: float, in_place: bool = False) -> ToolResult:
        ...


def decode_output(data: Optional[Union[bytes, str]]) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def excerpt(text: str, limit: int) -> str:
    """Keep the tail of long tool output, where errors usually are."""
    if limit <= 0 or len(text) <= limit:
        return text
    return f"... [{len(text) - limit} chars truncated] ...\n{text[-limit:]}"
