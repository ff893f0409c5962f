"""
Gate 0 - Sanitization validators.

These checks look at the task input before anything is executed:
- Is the context small enough to fit the model budget?
- Is the task scoped and clearly worded?
- Does it touch sensitive files, and was that explicitly allowed?
- Does the test live where conventions say it should?
- Would deleting files leave dangling imports behind?
"""

import posixpath
import re
from typing import Optional

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.assembly import assemble_context
from gatekeeper.context.task import FileAction, TaskContext
from gatekeeper.context.tokens import resolve_token_counter
from gatekeeper.errors import ConfigTypeMismatch
from gatekeeper.models import CheckOutcome
from gatekeeper.policy.globs import first_match, glob_match
from gatekeeper.policy.imports import extract_imports, points_to, resolve_specifier, sort_aliases


# ============================================================================
# Helpers
# ============================================================================

def scope_paths(ctx: TaskContext) -> list[str]:
    """Changed paths (working tree included) followed by manifest paths."""
    paths = list(ctx.diff.paths(include_working_tree=True))
    if ctx.manifest is not None:
        for path in ctx.manifest.paths():
            if path not in paths:
                paths.append(path)
    return paths


def find_sensitive_files(ctx: TaskContext, config: ConfigurationStore) -> list[dict]:
    found = []
    for path in scope_paths(ctx):
        for rule in config.sensitive_rules:
            if glob_match(path, rule.pattern):
                found.append({"path": path, "pattern": rule.pattern, "category": rule.category})
                break
    return found


def compile_type_patterns(config: ConfigurationStore) -> list[tuple[str, re.Pattern]]:
    compiled = []
    for name, regex in config.resolve_pairs("TYPE_DETECTION_PATTERNS"):
        try:
            compiled.append((name, re.compile(regex, re.IGNORECASE)))
        except re.error:
            raise ConfigTypeMismatch("TYPE_DETECTION_PATTERNS", "type:regex", f"{name}:{regex}") from None
    return compiled


def detect_artifact_type(path: str, patterns: list[tuple[str, re.Pattern]]) -> Optional[str]:
    """First pattern whose regex matches the path wins."""
    candidate = "/" + path
    for name, regex in patterns:
        if regex.search(candidate):
            return name
    return None


def _in_ignored_dir(path: str, ignored: set[str]) -> bool:
    return any(part in ignored for part in path.split("/")[:-1])


# ============================================================================
# Validators
# ============================================================================

def check_token_budget(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    max_budget = config.get_number("MAX_TOKEN_BUDGET")
    margin = config.get_number("TOKEN_SAFETY_MARGIN")
    limit = max_budget * margin

    counter = ctx.token_counter or resolve_token_counter(config)
    estimate = counter(assemble_context(ctx))

    details = {
        "estimated_tokens": estimate,
        "limit": limit,
        "max_budget": max_budget,
        "safety_margin": margin,
    }
    if estimate > limit:
        return CheckOutcome.failed(
            f"Context exceeds token budget: {estimate} > {limit:.0f}", **details
        )
    return CheckOutcome.passed(f"Context fits token budget: {estimate} <= {limit:.0f}", **details)


def check_task_scope_size(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    if ctx.manifest is None:
        return CheckOutcome.skipped("No manifest provided")

    limit = config.get_int("MAX_FILES_PER_TASK")
    count = len(ctx.manifest.files)
    if count > limit:
        return CheckOutcome.failed(
            f"Task touches too many files: {count} > {limit}",
            file_count=count,
            limit=limit,
            files=ctx.manifest.paths(),
        )
    return CheckOutcome.passed(f"Task scope is {count} file(s)", file_count=count, limit=limit)


def check_task_clarity(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    found = []
    for term in config.ambiguous_terms:
        pattern = re.compile(r"(?<!\w)" + re.escape(term.term) + r"(?!\w)", re.IGNORECASE)
        if pattern.search(ctx.prompt):
            found.append(term.term)

    if found:
        return CheckOutcome.failed(
            f"Prompt contains ambiguous terms: {', '.join(found)}",
            ambiguous_terms=found,
        )
    return CheckOutcome.passed("No ambiguous terms found in prompt")


def check_sensitive_files(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    found = find_sensitive_files(ctx, config)
    if not found:
        return CheckOutcome.passed("No sensitive files in scope")

    paths = [item["path"] for item in found]
    if ctx.danger_mode:
        return CheckOutcome.passed(
            f"Danger mode allows {len(found)} sensitive file(s): {', '.join(paths)}",
            sensitive_files=found,
        )
    return CheckOutcome.failed(
        f"Sensitive files modified without danger mode: {', '.join(paths)}",
        sensitive_files=found,
    )


def check_danger_mode(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    found = find_sensitive_files(ctx, config)

    if ctx.danger_mode and not found:
        return CheckOutcome.failed("Danger mode enabled but no sensitive files are in scope")
    if found and not ctx.danger_mode:
        return CheckOutcome.failed(
            "Sensitive files in scope require danger mode",
            sensitive_files=found,
        )
    if ctx.danger_mode:
        return CheckOutcome.passed("Danger mode is justified by sensitive files", sensitive_files=found)
    return CheckOutcome.passed("Danger mode not needed")


def check_path_convention(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    test_path = ctx.test_path
    if ctx.manifest is None or not test_path:
        return CheckOutcome.skipped("No manifest or test file path provided")

    test_patterns = config.resolve_list("TEST_FILE_PATTERNS")
    type_patterns = compile_type_patterns(config)

    artifact = None
    artifact_type = None
    for entry in ctx.manifest.files:
        if entry.action == FileAction.DELETE or entry.path == test_path:
            continue
        if first_match(entry.path, test_patterns):
            continue
        detected = detect_artifact_type(entry.path, type_patterns)
        if detected:
            artifact, artifact_type = entry.path, detected
            break

    if artifact_type is None:
        return CheckOutcome.failed(
            "Could not detect the artifact type of any implementation file",
            files=ctx.manifest.paths(),
        )

    convention = config.find_convention(ctx.workspace_id, artifact_type)
    if convention is None:
        return CheckOutcome.failed(
            f"No path convention for type '{artifact_type}'",
            artifact=artifact,
            test_type=artifact_type,
            workspace_id=ctx.workspace_id,
        )

    name = posixpath.splitext(posixpath.basename(artifact))[0]
    expected = convention.path_pattern.replace("{name}", name)
    details = {
        "artifact": artifact,
        "test_type": artifact_type,
        "expected": expected,
        "actual": test_path,
        "convention_workspace": convention.workspace_id,
    }

    if glob_match(test_path, expected) or glob_match(test_path, "**/" + expected):
        return CheckOutcome.passed(f"Test path follows the '{artifact_type}' convention", **details)
    return CheckOutcome.failed(
        f"Test path {test_path} does not match convention {expected}", **details
    )


def check_delete_dependencies(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    if ctx.manifest is None:
        return CheckOutcome.skipped("No manifest provided")

    deletes = ctx.manifest.with_action(FileAction.DELETE)
    if not deletes:
        return CheckOutcome.passed("No DELETE operations in manifest")

    extensions = config.resolve_list("SOURCE_EXTENSIONS")
    ignored = set(config.resolve_list("DELETE_CHECK_IGNORE_DIRS"))
    aliases = sort_aliases(config.resolve_pairs("PATH_ALIASES"))
    scope = config.get_string("DELETE_CHECK_SCOPE").strip().lower()

    if scope == "repository":
        candidates = list(ctx.repo.iter_files(extensions, ignored))
    elif scope == "diff":
        candidates = [
            path for path in ctx.diff.paths(include_working_tree=True)
            if path.endswith(tuple(extensions))
            and not _in_ignored_dir(path, ignored)
            and ctx.repo.is_file(path)
        ]
    else:
        raise ConfigTypeMismatch("DELETE_CHECK_SCOPE", "repository|diff", scope)

    deleted_paths = {entry.path for entry in deletes}
    covered = {
        entry.path for entry in ctx.manifest.files
        if entry.action in (FileAction.EDIT, FileAction.DELETE)
    }

    uncovered = []
    for importer in candidates:
        if importer in deleted_paths:
            continue
        source = ctx.repo.read_text(importer)
        for spec in extract_imports(source):
            base = resolve_specifier(spec, importer, aliases)
            if base is None:
                continue
            for deleted in sorted(deleted_paths):
                if points_to(base, deleted, extensions) and importer not in covered:
                    uncovered.append({"importer": importer, "deleted": deleted, "import": spec})

    if uncovered:
        importers = sorted({item["importer"] for item in uncovered})
        return CheckOutcome.failed(
            f"Files import deleted files but are not in the manifest: {', '.join(importers)}",
            uncovered=uncovered,
            scanned=len(candidates),
        )
    return CheckOutcome.passed(
        f"All importers of {len(deleted_paths)} deleted file(s) are covered",
        scanned=len(candidates),
    )
