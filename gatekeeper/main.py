"""
Gatekeeper CLI Entry Point.

Usage:
    gatekeeper --repo . --prompt-file task.md --manifest manifest.json
    gatekeeper --repo . --prompt-file task.md --manifest manifest.json --gates 0,1
    gatekeeper --repo . --prompt-file task.md --manifest manifest.json --diff change.diff --json
    gatekeeper --help

Exit codes:
    0  all selected gates passed
    1  the task was rejected (or the run was aborted)
    2  configuration or input defect
"""

import argparse
import sys
import time
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from gatekeeper import __version__
from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import TaskContext, load_contract, load_manifest
from gatekeeper.errors import GatekeeperError
from gatekeeper.graph import DEFAULT_GATES, Pipeline
from gatekeeper.metrics import log_run
from gatekeeper.report import build_rejection_report, print_verdict, verdict_to_json
from gatekeeper.repository import RepositorySnapshot, WorkingDiff, collect_changes, parse_unified_diff

# Load environment
load_dotenv()

console = Console()

EXIT_PASSED = 0
EXIT_REJECTED = 1
EXIT_DEFECT = 2


def parse_gates(value: str) -> list[int]:
    try:
        gates = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid gate list: {value!r}") from None
    if not gates:
        raise argparse.ArgumentTypeError("at least one gate is required")
    return gates


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gatekeeper",
        description="Gatekeeper - gated validation of AI-generated code changes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gatekeeper --repo . --prompt-file task.md --manifest manifest.json
  gatekeeper --repo . --prompt "Add a retry to the fetch service" --manifest m.json --gates 0,1
  gatekeeper --repo . --prompt-file task.md --manifest m.json --base-ref main --json
        """,
    )

    parser.add_argument("--repo", required=True, help="Path to the repository under validation")

    prompt = parser.add_mutually_exclusive_group(required=True)
    prompt.add_argument("--prompt", help="Task prompt text")
    prompt.add_argument("--prompt-file", help="File holding the task prompt")

    parser.add_argument("--manifest", help="Manifest JSON (files, testFile)")
    parser.add_argument("--contract", help="Contract JSON (clauses, tagPattern)")
    parser.add_argument("--test-file", help="Task test file (default: the manifest testFile)")

    diff = parser.add_mutually_exclusive_group()
    diff.add_argument("--diff", help="Unified diff file describing the change")
    diff.add_argument("--base-ref", default="HEAD", help="Git ref the change is compared against (default: HEAD)")
    parser.add_argument("--target-ref", default="HEAD", help="Git ref holding the change (default: HEAD)")

    parser.add_argument("--config", help="Configuration JSON overlaying the defaults")
    parser.add_argument(
        "--gates",
        type=parse_gates,
        default=list(DEFAULT_GATES),
        help="Comma-separated gates to run (default: 0,1,2,3)",
    )
    parser.add_argument("--danger-mode", action="store_true", help="Allow changes to sensitive files")
    parser.add_argument("--workspace", default="__global__", help="Workspace id for path conventions")
    parser.add_argument("--task-id", default="", help="Identifier recorded in metrics")

    parser.add_argument("--json", action="store_true", help="Print the verdict as JSON")
    parser.add_argument("--metrics-file", default="gatekeeper_metrics.jsonl", help="Metrics JSONL file")
    parser.add_argument("--no-metrics", action="store_true", help="Do not record run metrics")
    parser.add_argument("--quiet", action="store_true", help="Reduce output verbosity")
    parser.add_argument("--version", action="version", version=f"Gatekeeper {__version__}")
    return parser


def load_store(config_path) -> ConfigurationStore:
    store = ConfigurationStore.from_file(config_path) if config_path else ConfigurationStore()
    return store.apply_env()


def load_diff(args, repo_path: Path) -> WorkingDiff:
    if args.diff:
        return parse_unified_diff(Path(args.diff).read_text(encoding="utf-8"))
    if not (repo_path / ".git").exists():
        console.print("[yellow]⚠ Not a git repository: validating with an empty diff[/yellow]")
        return WorkingDiff()
    return collect_changes(str(repo_path), base_ref=args.base_ref, target_ref=args.target_ref)


def build_context(args, repo_path: Path) -> TaskContext:
    prompt = args.prompt if args.prompt is not None else Path(args.prompt_file).read_text(encoding="utf-8")
    return TaskContext(
        prompt=prompt,
        manifest=load_manifest(args.manifest) if args.manifest else None,
        repo=RepositorySnapshot(repo_path),
        diff=load_diff(args, repo_path),
        test_file_path=args.test_file,
        contract=load_contract(args.contract) if args.contract else None,
        danger_mode=args.danger_mode,
        workspace_id=args.workspace,
        task_id=args.task_id,
        base_ref=None if args.diff else args.base_ref,
    )


def main():
    """Main CLI entry point."""
    args = build_parser().parse_args()

    repo_path = Path(args.repo).resolve()
    if not repo_path.exists():
        console.print(f"[red]Error: Repository path does not exist: {repo_path}[/red]")
        sys.exit(EXIT_DEFECT)

    try:
        store = load_store(args.config)
        ctx = build_context(args, repo_path)
        pipeline = Pipeline(gates=args.gates, verbose=not args.quiet and not args.json)
    except (GatekeeperError, OSError, ValueError, KeyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(EXIT_DEFECT)

    if not args.quiet and not args.json:
        console.print(Panel.fit(
            f"[bold]Repository:[/bold] {repo_path}\n"
            f"[bold]Gates:[/bold] {', '.join(str(g) for g in pipeline.gates)}\n"
            f"[bold]Changed files:[/bold] {len(ctx.diff.paths())}\n"
            f"[bold]Danger mode:[/bold] {'Yes' if ctx.danger_mode else 'No'}",
            title="Gatekeeper",
        ))

    start_time = time.time()
    try:
        verdict = pipeline.run(ctx, store)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except GatekeeperError as e:
        console.print(f"\n[red]Configuration error: {e}[/red]")
        sys.exit(EXIT_DEFECT)
    duration = time.time() - start_time

    if not args.no_metrics:
        log_run(verdict, task_id=args.task_id, duration_seconds=duration, path=args.metrics_file)

    if args.json:
        console.print_json(verdict_to_json(verdict))
        sys.exit(EXIT_PASSED if verdict.overall_passed else EXIT_REJECTED)

    if not args.quiet:
        print_verdict(verdict, console)

    if verdict.overall_passed:
        console.print(Panel.fit(
            f"[bold green]✅ Task accepted[/bold green]\n\n"
            f"[bold]Gates passed:[/bold] {len(verdict.gate_results)}\n"
            f"[bold]Warnings:[/bold] {len(verdict.warnings)}\n"
            f"[bold]Duration:[/bold] {duration:.1f}s",
            title="Passed",
            border_style="green",
        ))
        sys.exit(EXIT_PASSED)

    console.print(Panel.fit(
        f"[bold red]❌ Task rejected[/bold red]\n\n"
        f"[bold]Stopped at gate:[/bold] {verdict.stopped_at if verdict.stopped_at is not None else '-'}\n"
        f"[bold]Aborted:[/bold] {'Yes' if verdict.aborted else 'No'}\n"
        f"[bold]Blocking failures:[/bold] {len(verdict.blockers)}\n"
        f"[bold]Duration:[/bold] {duration:.1f}s",
        title="Rejected",
        border_style="red",
    ))
    if not args.quiet:
        console.print("\n[bold]Rejection Report:[/bold]")
        console.print(build_rejection_report(verdict), markup=False)
    sys.exit(EXIT_REJECTED)


if __name__ == "__main__":
    main()
