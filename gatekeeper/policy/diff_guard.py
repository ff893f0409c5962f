"""
Diff Guard for Gatekeeper.

Compares what a task actually changed against what it declared.
No change outside the manifest gets through, and test files other
than the task's own stay read-only.
"""

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import FileAction, TaskContext
from gatekeeper.models import CheckOutcome, FailMode
from gatekeeper.policy.globs import first_match, matches_exclusion


def changed_paths(ctx: TaskContext, config: ConfigurationStore) -> list[str]:
    """Changed paths minus the global exclusions."""
    include_working_tree = config.get_bool("DIFF_SCOPE_INCLUDE_WORKING_TREE")
    exclusions = config.resolve_list("DIFF_SCOPE_GLOBAL_EXCLUSIONS")
    return [
        path for path in ctx.diff.paths(include_working_tree=include_working_tree)
        if not any(matches_exclusion(path, exclusion) for exclusion in exclusions)
    ]


def find_incomplete(ctx: TaskContext, changed: set[str]) -> list[dict]:
    """
    Declared files the diff does not reflect.

    CREATE/EDIT entries must appear in the diff; DELETE entries must
    either appear in the diff or be gone from the repository.
    """
    incomplete = []
    for entry in ctx.manifest.files:
        if entry.path == ctx.test_path:
            continue
        if entry.action == FileAction.DELETE:
            if entry.path not in changed and ctx.repo.exists(entry.path):
                incomplete.append({"path": entry.path, "action": entry.action.value})
        elif entry.path not in changed:
            incomplete.append({"path": entry.path, "action": entry.action.value})
    return incomplete


def check_diff_scope(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    if ctx.manifest is None or not ctx.manifest.files:
        return CheckOutcome.failed("No manifest provided: diff scope cannot be validated")

    changed = changed_paths(ctx, config)
    declared = set(ctx.manifest.paths())
    test_path = ctx.test_path

    test_only = bool(changed) and all(path == test_path for path in changed)
    if test_only and not config.get_bool("DIFF_SCOPE_ALLOW_TEST_ONLY_DIFF"):
        return CheckOutcome.failed(
            "Diff only contains the test file",
            changed=changed,
            test_file=test_path,
        )

    scope_creep = [p for p in changed if p not in declared and p != test_path]
    if scope_creep:
        return CheckOutcome.failed(
            f"Files changed outside the manifest: {', '.join(scope_creep)}",
            scope_creep=scope_creep,
            changed=changed,
        )

    incomplete = find_incomplete(ctx, set(changed))
    if incomplete:
        paths = ", ".join(item["path"] for item in incomplete)
        details = {"incomplete": incomplete, "changed": changed}
        if config.get_fail_mode("DIFF_SCOPE_INCOMPLETE_FAIL_MODE") == FailMode.WARNING:
            return CheckOutcome.warning(f"Declared files not changed: {paths}", **details)
        return CheckOutcome.failed(f"Incomplete implementation, declared files not changed: {paths}", **details)

    if test_only:
        return CheckOutcome.passed("Diff only contains the test file", changed=changed)
    return CheckOutcome.passed(f"All {len(changed)} changed file(s) are declared", changed=changed)


def check_test_read_only(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    test_patterns = config.resolve_list("TEST_FILE_PATTERNS")
    excluded = config.resolve_list("TEST_READ_ONLY_EXCLUDED_PATHS")
    include_working_tree = config.get_bool("DIFF_SCOPE_INCLUDE_WORKING_TREE")

    modified = []
    for path in ctx.diff.paths(include_working_tree=include_working_tree):
        if path == ctx.test_path:
            continue
        if first_match(path, excluded):
            continue
        if first_match(path, test_patterns):
            modified.append(path)

    if modified:
        return CheckOutcome.failed(
            f"Existing test files were modified: {', '.join(modified)}",
            modified_tests=modified,
        )
    return CheckOutcome.passed("No existing test files were modified")
