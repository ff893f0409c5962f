"""
Pipeline state for the Gatekeeper graph.

Carried between gate nodes by LangGraph. Nodes never mutate the
lists in place; each update assigns a new list.
"""

from dataclasses import dataclass, field
from typing import Optional

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import TaskContext
from gatekeeper.models import GateResult, PipelineVerdict


@dataclass
class PipelineState:
    """State of a single validation run."""

    # Inputs
    task: TaskContext
    settings: ConfigurationStore
    gates: list[int] = field(default_factory=lambda: [0, 1, 2, 3])

    # Progress
    gate_results: list[GateResult] = field(default_factory=list)
    stopped_at: Optional[int] = None
    aborted: bool = False

    # Output
    verdict: Optional[PipelineVerdict] = None
