"""
Verdict reporting for Gatekeeper.

Two renderings of a PipelineVerdict:
- A rich table for the terminal
- A plain-text rejection report handed to the Fixer phase
"""

import json

from rich.console import Console
from rich.table import Table

from gatekeeper.models import PipelineVerdict, Status, ValidatorResult

STATUS_STYLES = {
    Status.PASSED: "green",
    Status.FAILED: "red",
    Status.WARNING: "yellow",
    Status.SKIPPED: "dim",
}


def build_results_table(verdict: PipelineVerdict) -> Table:
    table = Table(title="Gatekeeper Verdict", show_lines=False)
    table.add_column("Gate", justify="right")
    table.add_column("Validator")
    table.add_column("Status")
    table.add_column("Severity")
    table.add_column("Message", overflow="fold")

    for gate in verdict.gate_results:
        for result in gate.results:
            style = STATUS_STYLES[result.status]
            status = result.status.value
            if result.blocking:
                status += " (blocking)"
            table.add_row(
                f"{gate.gate} {gate.name}",
                result.validator_code,
                f"[{style}]{status}[/{style}]",
                result.severity.value,
                result.message,
            )
        for code in gate.disabled:
            table.add_row(f"{gate.gate} {gate.name}", code, "[dim]DISABLED[/dim]", "", "")
    return table


def print_verdict(verdict: PipelineVerdict, console: Console) -> None:
    console.print(build_results_table(verdict))


def _format_details(result: ValidatorResult) -> list[str]:
    lines = []
    for key, value in result.details.items():
        if value in (None, "", [], {}):
            continue
        if isinstance(value, (list, dict)):
            value = json.dumps(value, ensure_ascii=False)
        text = str(value)
        if "\n" in text:
            lines.append(f"    {key}:")
            lines.extend(f"      {line}" for line in text.splitlines())
        else:
            lines.append(f"    {key}: {text}")
    return lines


def build_rejection_report(verdict: PipelineVerdict) -> str:
    """
    Plain-text report of why a task was rejected.

    Lists blocking failures first, then warnings, each with its details,
    so a follow-up fix attempt knows exactly what to change.

    Args:
        verdict: Pipeline verdict

    Returns:
        Report text (a short confirmation when the task passed)
    """
    if verdict.overall_passed:
        lines = ["All gates passed."]
        if verdict.warnings:
            lines.append("")
            lines.append("Warnings:")
            for result in verdict.warnings:
                lines.append(f"  - [{result.validator_code}] {result.message}")
        return "\n".join(lines)

    lines = []
    if verdict.aborted:
        lines.append("Validation aborted before all gates ran.")
    else:
        gate = verdict.gate(verdict.stopped_at) if verdict.stopped_at is not None else None
        name = f" ({gate.name})" if gate else ""
        lines.append(f"Task rejected at gate {verdict.stopped_at}{name}.")

    if verdict.blockers:
        lines.append("")
        lines.append("Blocking failures:")
        for result in verdict.blockers:
            lines.append(f"  - [{result.validator_code}] {result.message}")
            lines.extend(_format_details(result))

    if verdict.warnings:
        lines.append("")
        lines.append("Warnings:")
        for result in verdict.warnings:
            lines.append(f"  - [{result.validator_code}] {result.message}")

    return "\n".join(lines)


def verdict_to_json(verdict: PipelineVerdict) -> str:
    return json.dumps(verdict.to_dict(), indent=2, ensure_ascii=False, default=str)
