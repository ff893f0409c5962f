"""
Gate 2 and Gate 3 - validators backed by external tools.

Each validator runs one configured command (test, compile, lint,
regression, build) through the task's ToolRunner and passes on exit
code 0. Timeouts and launch failures are raised to the gate runner,
which turns them into HARD failures.
"""

import shlex

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import TaskContext
from gatekeeper.models import CheckOutcome
from gatekeeper.policy.diff_guard import changed_paths
from gatekeeper.sandbox import ToolRunner, create_runner, excerpt


def get_runner(ctx: TaskContext, config: ConfigurationStore) -> ToolRunner:
    if ctx.tool_runner is not None:
        return ctx.tool_runner
    return create_runner(config)


def run_tool(
    ctx: TaskContext,
    config: ConfigurationStore,
    command: str,
    timeout_key: str,
) -> CheckOutcome:
    """
    Run a command in the repository and map its exit code to an outcome.

    Args:
        ctx: Task context (repository root, optional runner)
        config: Configuration store
        command: Fully substituted command line
        timeout_key: Setting holding the timeout in milliseconds

    Returns:
        PASSED on exit code 0, FAILED with an output excerpt otherwise
    """
    timeout_ms = config.get_number(timeout_key)
    result = get_runner(ctx, config).run(command, str(ctx.repo.root), timeout_ms)

    details = {
        "command": command,
        "exit_code": result.exit_code,
        "duration_seconds": round(result.duration_seconds, 3),
    }
    if result.success:
        return CheckOutcome.passed(f"`{command}` succeeded", **details)

    limit = config.get_int("TOOL_OUTPUT_EXCERPT_CHARS")
    return CheckOutcome.failed(
        f"`{command}` exited with code {result.exit_code}",
        output=excerpt(result.output, limit),
        **details,
    )


def check_task_test_passes(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    if not ctx.test_path:
        return CheckOutcome.failed("No test file path provided")
    command = config.get_string("TEST_COMMAND").replace("{testFile}", shlex.quote(ctx.test_path))
    return run_tool(ctx, config, command, "TEST_EXECUTION_TIMEOUT_MS")


def check_strict_compilation(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    return run_tool(ctx, config, config.get_string("COMPILE_COMMAND"), "COMPILATION_TIMEOUT_MS")


def check_style_lint(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    config_files = config.resolve_list("ESLINT_CONFIG_FILES")
    found = [name for name in config_files if ctx.repo.is_file(name)]
    if not found and config.get_bool("SKIP_LINT_IF_NO_CONFIG"):
        return CheckOutcome.skipped("No lint configuration found", searched=config_files)

    extensions = tuple(config.resolve_list("SOURCE_EXTENSIONS"))
    files = [
        path for path in changed_paths(ctx, config)
        if path.endswith(extensions) and ctx.repo.is_file(path)
    ]
    if not files:
        return CheckOutcome.skipped("No changed source files to lint")

    command = config.get_string("LINT_COMMAND").replace(
        "{files}", " ".join(shlex.quote(f) for f in files)
    )
    return run_tool(ctx, config, command, "LINT_TIMEOUT_MS")


def check_full_regression(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    return run_tool(ctx, config, config.get_string("REGRESSION_COMMAND"), "TEST_EXECUTION_TIMEOUT_MS")


def check_production_build(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    return run_tool(ctx, config, config.get_string("BUILD_COMMAND"), "BUILD_TIMEOUT_MS")
