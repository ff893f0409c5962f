"""
Shared record and result types for Gatekeeper.

Records describe policy (validator metadata, toggles, sensitive files,
ambiguous terms, path conventions). Results describe what a run found
(check outcomes, validator results, gate results, the final verdict).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


GLOBAL_WORKSPACE = "__global__"


class ConfigType(str, Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"


class FailMode(str, Enum):
    HARD = "HARD"
    WARNING = "WARNING"


# Effective severity of a validator shares the fail mode vocabulary
Severity = FailMode


class Status(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    WARNING = "WARNING"
    SKIPPED = "SKIPPED"


class GateState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    PASSED = "PASSED"
    BLOCKED = "BLOCKED"


GATE_NAMES = {
    0: "Sanitization",
    1: "Contract",
    2: "Execution",
    3: "Integrity",
}


# ============================================================================
# Policy records
# ============================================================================

@dataclass
class ValidationConfig:
    """A single typed setting. The value is always stored as text."""

    key: str
    value: str
    type: ConfigType = ConfigType.STRING
    category: str = "GLOBAL"
    description: str = ""
    fail_mode: Optional[FailMode] = None


@dataclass(frozen=True)
class ValidatorMetadata:
    """Pipeline placement and default severity of a validator."""

    code: str
    display_name: str
    description: str
    category: str
    gate: int
    order: int
    is_hard_block: bool = True


@dataclass(frozen=True)
class ValidatorToggle:
    """Operator override: disable a validator or change its severity."""

    code: str
    enabled: bool = True
    fail_mode: Optional[FailMode] = None


@dataclass(frozen=True)
class SensitiveFileRule:
    pattern: str
    category: str
    description: str = ""
    severity: str = "BLOCK"


@dataclass(frozen=True)
class AmbiguousTerm:
    term: str
    category: str = "VAGUE_ACTION"


@dataclass(frozen=True)
class PathConvention:
    workspace_id: str
    test_type: str
    path_pattern: str
    description: str = ""


# ============================================================================
# Results
# ============================================================================

@dataclass(frozen=True)
class CheckOutcome:
    """
    What a single check function reports.

    Severity is not decided here: the gate runner attaches the validator's
    effective severity when it turns an outcome into a ValidatorResult.
    """

    status: Status
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def passed(cls, message: str, **details: Any) -> "CheckOutcome":
        return cls(Status.PASSED, message, details)

    @classmethod
    def failed(cls, message: str, **details: Any) -> "CheckOutcome":
        return cls(Status.FAILED, message, details)

    @classmethod
    def warning(cls, message: str, **details: Any) -> "CheckOutcome":
        return cls(Status.WARNING, message, details)

    @classmethod
    def skipped(cls, message: str, **details: Any) -> "CheckOutcome":
        return cls(Status.SKIPPED, message, details)


@dataclass(frozen=True)
class ValidatorResult:
    validator_code: str
    passed: bool
    severity: Severity
    status: Status
    message: str
    gate: int
    order: int
    blocking: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_warning(self) -> bool:
        """True for advisory outcomes: soft statuses or non-blocking failures."""
        if self.status == Status.WARNING:
            return True
        return self.status == Status.FAILED and not self.blocking

    def to_dict(self) -> dict[str, Any]:
        return {
            "validatorCode": self.validator_code,
            "passed": self.passed,
            "severity": self.severity.value,
            "status": self.status.value,
            "message": self.message,
            "gate": self.gate,
            "order": self.order,
            "blocking": self.blocking,
            "details": self.details,
        }


@dataclass(frozen=True)
class GateResult:
    gate: int
    name: str
    state: GateState
    results: tuple[ValidatorResult, ...] = ()
    disabled: tuple[str, ...] = ()

    @property
    def blocked(self) -> bool:
        return self.state == GateState.BLOCKED

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.status == Status.PASSED)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.status == Status.FAILED)

    @property
    def warnings(self) -> list[ValidatorResult]:
        return [r for r in self.results if r.is_warning]

    @property
    def blockers(self) -> list[ValidatorResult]:
        return [r for r in self.results if r.status == Status.FAILED and r.blocking]

    def to_dict(self) -> dict[str, Any]:
        return {
            "gate": self.gate,
            "name": self.name,
            "state": self.state.value,
            "blocked": self.blocked,
            "passedCount": self.passed_count,
            "failedCount": self.failed_count,
            "warningCount": len(self.warnings),
            "disabled": list(self.disabled),
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True)
class PipelineVerdict:
    final_gate: Optional[int]
    gate_results: tuple[GateResult, ...]
    overall_passed: bool
    stopped_at: Optional[int] = None
    aborted: bool = False

    @property
    def results(self) -> list[ValidatorResult]:
        return [r for gate in self.gate_results for r in gate.results]

    @property
    def warnings(self) -> list[ValidatorResult]:
        return [r for gate in self.gate_results for r in gate.warnings]

    @property
    def blockers(self) -> list[ValidatorResult]:
        return [r for gate in self.gate_results for r in gate.blockers]

    def gate(self, number: int) -> Optional[GateResult]:
        for gate_result in self.gate_results:
            if gate_result.gate == number:
                return gate_result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "finalGate": self.final_gate,
            "overallPassed": self.overall_passed,
            "stoppedAt": self.stopped_at,
            "aborted": self.aborted,
            "gateResults": [g.to_dict() for g in self.gate_results],
        }
