"""
Error taxonomy for Gatekeeper.

Two families:
- Engine defects (configuration, registry) abort the whole run
- Validator-level problems (repository access, external tools) are
  converted into a HARD failure of the single validator that hit them
"""

from typing import Optional


class GatekeeperError(Exception):
    """Base class for every error raised by Gatekeeper."""


# ============================================================================
# Engine defects (fatal)
# ============================================================================

class ConfigError(GatekeeperError):
    """Malformed or missing configuration. Always fatal to the run."""


class ConfigMissing(ConfigError):
    """A key has neither a live value nor a registered default."""

    def __init__(self, key: str):
        super().__init__(f"Configuration key not found: {key}")
        self.key = key


class ConfigTypeMismatch(ConfigError):
    """A stored value cannot be decoded as its declared type."""

    def __init__(self, key: str, expected: str, value: str):
        super().__init__(
            f"Configuration key {key} expected {expected}, got {value!r}"
        )
        self.key = key
        self.expected = expected
        self.value = value


class DuplicateValidatorError(GatekeeperError):
    """Two validators share a code or a (gate, order) slot."""


class UnknownValidatorError(GatekeeperError):
    """A validator code has no registered metadata."""


class DiffParseError(GatekeeperError):
    """A caller supplied a unified diff that cannot be parsed."""


class PipelineError(GatekeeperError):
    """The pipeline was asked to run gates it does not know."""


# ============================================================================
# Validator-level problems (degrade to a HARD failure)
# ============================================================================

class RepositoryAccessError(GatekeeperError):
    """A repository file could not be read."""

    def __init__(self, path: str, reason: str = ""):
        message = f"Cannot read repository file: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path
        self.reason = reason


class ExternalToolError(GatekeeperError):
    """An external build/lint/test command could not be executed."""

    def __init__(self, command: str, message: str, stderr: Optional[str] = None):
        super().__init__(f"{command}: {message}")
        self.command = command
        self.stderr = stderr or ""


class ExternalToolTimeout(ExternalToolError):
    """An external command exceeded its configured timeout."""

    def __init__(self, command: str, timeout_ms: float, stderr: Optional[str] = None):
        super().__init__(command, f"timed out after {timeout_ms:.0f} ms", stderr)
        self.timeout_ms = timeout_ms
