"""
Gate Runner for Gatekeeper.

Runs every enabled validator of one gate over the same task context,
in parallel, and folds the outcomes into a GateResult.

A gate never short-circuits: all enabled validators run even after
a blocking failure, so the report lists every problem at once.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from rich.console import Console

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import TaskContext
from gatekeeper.errors import (
    ConfigError,
    ExternalToolError,
    ExternalToolTimeout,
    RepositoryAccessError,
)
from gatekeeper.models import (
    GATE_NAMES,
    CheckOutcome,
    FailMode,
    GateResult,
    GateState,
    Status,
    ValidatorResult,
)
from gatekeeper.registry import ResolvedValidator, ValidatorRegistry, default_registry
from gatekeeper.sandbox.base import excerpt

console = Console()

STATUS_ICONS = {
    Status.PASSED: "[green]✓[/green]",
    Status.FAILED: "[red]✗[/red]",
    Status.WARNING: "[yellow]⚠[/yellow]",
    Status.SKIPPED: "[dim]-[/dim]",
}


class GateRunner:
    """
    Executes the validators of a gate.

    Args:
        registry: Validator registry (the full catalog if not provided)
        verbose: Print per-validator progress to the console
    """

    def __init__(self, registry: Optional[ValidatorRegistry] = None, verbose: bool = False):
        self.registry = registry or default_registry()
        self.verbose = verbose

    def run_gate(self, gate: int, ctx: TaskContext, config: ConfigurationStore) -> GateResult:
        """
        Run one gate.

        Args:
            gate: Gate number
            ctx: Task context shared by every validator
            config: Configuration store

        Returns:
            GateResult with results ordered by (order, code)

        Raises:
            ConfigError: If a validator hits a configuration defect
        """
        name = GATE_NAMES.get(gate, f"Gate {gate}")
        validators = self.registry.by_gate(gate, config)
        enabled = [v for v in validators if v.enabled]
        disabled = tuple(v.code for v in validators if not v.enabled)

        allow_soft_gates = config.get_bool("ALLOW_SOFT_GATES")
        concurrency = max(1, config.get_int("VALIDATOR_CONCURRENCY"))

        if self.verbose:
            console.print(
                f"[bold blue]Gate {gate} - {name}: {len(enabled)} validator(s)[/bold blue]"
            )
            if disabled:
                console.print(f"  [dim]disabled: {', '.join(disabled)}[/dim]")

        results = []
        if enabled:
            with ThreadPoolExecutor(max_workers=min(concurrency, len(enabled))) as pool:
                futures = [
                    pool.submit(self._run_validator, validator, ctx, config, allow_soft_gates)
                    for validator in enabled
                ]
                results = [future.result() for future in futures]

        results.sort(key=lambda r: (r.order, r.validator_code))

        blocked = any(r.status == Status.FAILED and r.blocking for r in results)
        state = GateState.BLOCKED if blocked else GateState.PASSED

        if self.verbose:
            for result in results:
                console.print(f"  {STATUS_ICONS[result.status]} {result.validator_code}: {result.message}")
            style = "red" if blocked else "green"
            console.print(f"[{style}]Gate {gate} {state.value}[/{style}]")

        return GateResult(
            gate=gate,
            name=name,
            state=state,
            results=tuple(results),
            disabled=disabled,
        )

    def _run_validator(
        self,
        validator: ResolvedValidator,
        ctx: TaskContext,
        config: ConfigurationStore,
        allow_soft_gates: bool,
    ) -> ValidatorResult:
        try:
            outcome = validator.check(ctx, config)
        except ConfigError:
            raise
        except RepositoryAccessError as e:
            return _build_result(
                validator, CheckOutcome.failed(str(e), path=e.path), allow_soft_gates, forced_hard=True
            )
        except ExternalToolTimeout as e:
            limit = config.get_int("TOOL_OUTPUT_EXCERPT_CHARS")
            outcome = CheckOutcome.failed(
                str(e), error="Timeout", command=e.command, stderr=excerpt(e.stderr, limit)
            )
            return _build_result(validator, outcome, allow_soft_gates, forced_hard=True)
        except ExternalToolError as e:
            limit = config.get_int("TOOL_OUTPUT_EXCERPT_CHARS")
            outcome = CheckOutcome.failed(
                str(e), error="ExternalToolError", command=e.command, stderr=excerpt(e.stderr, limit)
            )
            return _build_result(validator, outcome, allow_soft_gates, forced_hard=True)
        except Exception as e:
            outcome = CheckOutcome.failed(
                f"Validator execution error: {e}", error=type(e).__name__
            )
        return _build_result(validator, outcome, allow_soft_gates)


def _build_result(
    validator: ResolvedValidator,
    outcome: CheckOutcome,
    allow_soft_gates: bool,
    forced_hard: bool = False,
) -> ValidatorResult:
    failed = outcome.status == Status.FAILED
    return ValidatorResult(
        validator_code=validator.code,
        passed=not failed,
        severity=FailMode.HARD if forced_hard else validator.severity,
        status=outcome.status,
        message=outcome.message,
        gate=validator.gate,
        order=validator.order,
        blocking=failed and (forced_hard or validator.can_block(allow_soft_gates)),
        details=dict(outcome.details),
    )


def run_gate(
    gate: int,
    ctx: TaskContext,
    config: ConfigurationStore,
    verbose: bool = False,
) -> GateResult:
    """Run one gate with the default registry."""
    return GateRunner(verbose=verbose).run_gate(gate, ctx, config)
