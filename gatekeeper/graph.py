"""
LangGraph Orchestration for Gatekeeper.

Implements the gate sequence as a finite state machine with:
- One node per selected gate, in ascending order
- A stop edge after any blocked gate
- Cooperative abort between gates
- A single finalize node that builds the verdict
"""

import threading
from typing import Iterable, Literal, Optional

from langgraph.graph import END, StateGraph
from rich.console import Console

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import TaskContext
from gatekeeper.errors import PipelineError
from gatekeeper.models import PipelineVerdict
from gatekeeper.registry import ValidatorRegistry, default_registry
from gatekeeper.runner import GateRunner
from gatekeeper.state import PipelineState

console = Console()

DEFAULT_GATES = (0, 1, 2, 3)
CONTRACT_GATES = (0, 1)
EXECUTION_GATES = (2, 3)


def gate_node_name(gate: int) -> str:
    return f"gate_{gate}"


class Pipeline:
    """
    Runs selected gates in order and stops at the first blocked one.

    Args:
        registry: Validator registry (the full catalog if not provided)
        gates: Gate numbers to run, e.g. (0, 1) for the contract phase
        verbose: Print progress to the console
    """

    def __init__(
        self,
        registry: Optional[ValidatorRegistry] = None,
        gates: Iterable[int] = DEFAULT_GATES,
        verbose: bool = False,
    ):
        self.registry = registry or default_registry()
        self.gates = sorted(set(gates))
        self.verbose = verbose

        known = set(self.registry.gates())
        unknown = [g for g in self.gates if g not in known]
        if not self.gates:
            raise PipelineError("No gates selected")
        if unknown:
            raise PipelineError(f"Unknown gates: {', '.join(str(g) for g in unknown)}")

        self.runner = GateRunner(self.registry, verbose=verbose)
        self._abort = threading.Event()
        self.graph = self._build_graph()

    # ------------------------------------------------------------------
    # Abort
    # ------------------------------------------------------------------

    def abort(self) -> None:
        """
        Stop the run in progress before its next gate starts.

        A running gate completes. Every call to `run` starts with a fresh
        abort flag, so an abort never carries over into a later run.
        """
        self._abort.set()

    @property
    def abort_requested(self) -> bool:
        return self._abort.is_set()

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def _make_gate_node(self, gate: int):
        def run_gate(state: PipelineState) -> PipelineState:
            if self._abort.is_set():
                if self.verbose:
                    console.print(f"[yellow]Aborted before gate {gate}[/yellow]")
                state.aborted = True
                return state

            result = self.runner.run_gate(gate, state.task, state.settings)
            state.gate_results = state.gate_results + [result]
            if result.blocked:
                state.stopped_at = gate
            return state

        return run_gate

    def _finalize(self, state: PipelineState) -> PipelineState:
        results = tuple(state.gate_results)
        completed = len(results) == len(state.gates)
        aborted = state.aborted or (self._abort.is_set() and state.stopped_at is None and not completed)

        state.aborted = aborted
        state.verdict = PipelineVerdict(
            final_gate=results[-1].gate if results else None,
            gate_results=results,
            overall_passed=completed and not aborted and state.stopped_at is None,
            stopped_at=state.stopped_at,
            aborted=aborted,
        )

        if self.verbose:
            if state.verdict.overall_passed:
                console.print("[green]✅ All gates passed[/green]")
            elif aborted:
                console.print("[yellow]⚠ Pipeline aborted[/yellow]")
            else:
                console.print(f"[red]❌ Rejected at gate {state.stopped_at}[/red]")
        return state

    # ------------------------------------------------------------------
    # Conditional edges
    # ------------------------------------------------------------------

    def _route(self, state: PipelineState) -> Literal["advance", "stop"]:
        if state.aborted or state.stopped_at is not None or self._abort.is_set():
            return "stop"
        return "advance"

    # ------------------------------------------------------------------
    # Graph builder
    # ------------------------------------------------------------------

    def _build_graph(self):
        graph = StateGraph(PipelineState)

        for gate in self.gates:
            graph.add_node(gate_node_name(gate), self._make_gate_node(gate))
        graph.add_node("finalize", self._finalize)

        graph.set_entry_point(gate_node_name(self.gates[0]))

        for index, gate in enumerate(self.gates):
            if index + 1 < len(self.gates):
                next_node = gate_node_name(self.gates[index + 1])
            else:
                next_node = "finalize"
            graph.add_conditional_edges(
                gate_node_name(gate),
                self._route,
                {
                    "advance": next_node,
                    "stop": "finalize",
                },
            )

        graph.add_edge("finalize", END)
        return graph.compile()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, ctx: TaskContext, config: ConfigurationStore) -> PipelineVerdict:
        """
        Validate a task.

        Args:
            ctx: Task context
            config: Configuration store (copied, so the run sees a fixed snapshot)

        Returns:
            PipelineVerdict

        Raises:
            ConfigError: On configuration defects, which abort the run
        """
        self._abort = threading.Event()
        state = PipelineState(task=ctx, settings=config.copy(), gates=list(self.gates))
        result = self.graph.invoke(state)
        if isinstance(result, dict):
            return result["verdict"]
        return result.verdict


def build_graph(
    registry: Optional[ValidatorRegistry] = None,
    gates: Iterable[int] = DEFAULT_GATES,
    verbose: bool = False,
):
    """Compiled gate graph for the selected gates."""
    return Pipeline(registry, gates, verbose).graph


def run_pipeline(
    ctx: TaskContext,
    config: ConfigurationStore,
    gates: Iterable[int] = DEFAULT_GATES,
    verbose: bool = False,
) -> PipelineVerdict:
    """Run the selected gates over a task with the default registry."""
    return Pipeline(gates=gates, verbose=verbose).run(ctx, config)
