"""
Task context for Gatekeeper.

Handles:
- Task, manifest and contract models
- Context assembly for the token budget
- Token estimation
"""

from gatekeeper.context.assembly import assemble_context
from gatekeeper.context.task import (
    Contract,
    FileAction,
    Manifest,
    ManifestEntry,
    TaskContext,
    load_contract,
    load_manifest,
)
from gatekeeper.context.tokens import estimate_tokens, resolve_token_counter, tiktoken_counter

__all__ = [
    "assemble_context",
    "Contract",
    "FileAction",
    "Manifest",
    "ManifestEntry",
    "TaskContext",
    "load_contract",
    "load_manifest",
    "estimate_tokens",
    "resolve_token_counter",
    "tiktoken_counter",
]
