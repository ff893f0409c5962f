"""
Gatekeeper

Gated validation engine for AI-generated code changes.
"""

__version__ = "0.1.0"

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import Contract, Manifest, ManifestEntry, TaskContext
from gatekeeper.graph import Pipeline, build_graph, run_pipeline
from gatekeeper.models import PipelineVerdict

__all__ = [
    "ConfigurationStore",
    "Contract",
    "Manifest",
    "ManifestEntry",
    "Pipeline",
    "PipelineVerdict",
    "TaskContext",
    "build_graph",
    "run_pipeline",
    "__version__",
]
