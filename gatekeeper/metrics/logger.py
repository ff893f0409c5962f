"""
Metrics Logger for Gatekeeper.

Stores one JSON line per validation run for later analysis.
"""

import json
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from gatekeeper.models import PipelineVerdict


@dataclass
class RunMetrics:
    """Metrics for a single validation run."""

    timestamp: str
    task_id: str

    # Outcome
    passed: bool
    aborted: bool
    stopped_at: Optional[int]
    gates_run: list[int] = field(default_factory=list)

    # Findings
    failed_validators: list[str] = field(default_factory=list)
    warning_validators: list[str] = field(default_factory=list)

    duration_seconds: Optional[float] = None


class MetricsLogger:
    """
    Persistent metrics logger.

    Writes JSON lines to a file for later analysis.
    """

    def __init__(self, path: str = "gatekeeper_metrics.jsonl"):
        self.path = Path(path)

    def log(self, metrics: RunMetrics) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(metrics)) + "\n")

    def read_all(self) -> list[RunMetrics]:
        if not self.path.exists():
            return []

        metrics = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    metrics.append(RunMetrics(**json.loads(line)))
        return metrics

    def summary(self, top: int = 5) -> dict:
        """
        Generate summary statistics.

        Args:
            top: How many of the most frequent blockers to report

        Returns:
            Dictionary of summary stats
        """
        all_metrics = self.read_all()
        if not all_metrics:
            return {"total_runs": 0}

        total = len(all_metrics)
        passed = sum(1 for m in all_metrics if m.passed)
        blockers = Counter(code for m in all_metrics for code in m.failed_validators)
        stops = Counter(m.stopped_at for m in all_metrics if m.stopped_at is not None)

        return {
            "total_runs": total,
            "passed": passed,
            "pass_rate": passed / total,
            "aborted": sum(1 for m in all_metrics if m.aborted),
            "stopped_at_gate": {str(gate): count for gate, count in sorted(stops.items())},
            "top_blockers": blockers.most_common(top),
        }


def metrics_from_verdict(
    verdict: PipelineVerdict,
    task_id: str = "",
    duration_seconds: Optional[float] = None,
) -> RunMetrics:
    return RunMetrics(
        timestamp=datetime.now(timezone.utc).isoformat(),
        task_id=task_id,
        passed=verdict.overall_passed,
        aborted=verdict.aborted,
        stopped_at=verdict.stopped_at,
        gates_run=[g.gate for g in verdict.gate_results],
        failed_validators=[r.validator_code for r in verdict.blockers],
        warning_validators=[r.validator_code for r in verdict.warnings],
        duration_seconds=duration_seconds,
    )


def log_run(
    verdict: PipelineVerdict,
    task_id: str = "",
    duration_seconds: Optional[float] = None,
    path: Optional[str] = None,
) -> RunMetrics:
    """
    Log metrics from a completed run.

    Args:
        verdict: Final verdict
        task_id: Identifier of the validated task
        duration_seconds: Optional run duration
        path: Metrics file (default: gatekeeper_metrics.jsonl in the working directory)

    Returns:
        The logged RunMetrics
    """
    metrics = metrics_from_verdict(verdict, task_id, duration_seconds)
    logger = MetricsLogger(path) if path else MetricsLogger()
    logger.log(metrics)
    return metrics
