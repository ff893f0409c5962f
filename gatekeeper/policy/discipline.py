"""
Gate 1 - file discipline validators.

A task must name every file it touches:
- The manifest lists concrete paths with valid actions and a real test file
- The prompt does not defer to "other files" or "etc."
"""

import re

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import FileAction, TaskContext
from gatekeeper.models import CheckOutcome
from gatekeeper.repository.diff import normalize_path

GLOB_CHARACTERS = ("*", "?", "[", "{")


def _term_pattern(term: str) -> re.Pattern:
    """Whole-word match for word terms, plain substring for punctuation like '...'."""
    escaped = re.escape(term)
    if term[:1].isalnum():
        escaped = r"(?<!\w)" + escaped
    if term[-1:].isalnum():
        escaped = escaped + r"(?!\w)"
    return re.compile(escaped, re.IGNORECASE)


def check_manifest_file_lock(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    manifest = ctx.manifest
    if manifest is None:
        return CheckOutcome.failed("No manifest provided")
    if not manifest.files:
        return CheckOutcome.failed("Manifest.files cannot be empty", issues=["Manifest.files cannot be empty"])

    vague = {segment.lower() for segment in config.resolve_list("MANIFEST_VAGUE_SEGMENTS")}
    issues = []
    seen = set()

    for entry in manifest.files:
        path = entry.path
        if not path:
            issues.append("Manifest entry with an empty path")
            continue
        if any(ch in path for ch in GLOB_CHARACTERS):
            issues.append(f"{path}: glob patterns are not allowed, list each file")
        segments = path.split("/")
        if any(segment.lower() in vague for segment in segments):
            issues.append(f"{path}: vague references are not allowed")
        if ".." in segments:
            issues.append(f"{path}: path leaves the repository")
        try:
            FileAction(entry.action)
        except ValueError:
            issues.append(f"{path}: invalid action {entry.action!r}, expected CREATE, EDIT or DELETE")
        if path in seen:
            issues.append(f"{path}: listed more than once")
        seen.add(path)

    test_file = manifest.test_file or ctx.test_path
    markers = config.resolve_list("MANIFEST_TEST_FILE_MARKERS")
    if not test_file:
        issues.append("Manifest.testFile is missing")
    elif markers and not any(marker in test_file.rsplit("/", 1)[-1] for marker in markers):
        issues.append(f"{normalize_path(test_file)}: testFile must use a .test or .spec extension")

    if issues:
        return CheckOutcome.failed(f"Manifest has {len(issues)} issue(s)", issues=issues)

    counts = {action.value.lower(): len(manifest.with_action(action)) for action in FileAction}
    return CheckOutcome.passed(f"Manifest lists {len(manifest.files)} explicit file(s)", **counts)


def check_no_implicit_files(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    prompt = ctx.prompt or ""
    found = [
        term for term in config.resolve_list("IMPLICIT_FILE_TERMS")
        if _term_pattern(term).search(prompt)
    ]
    if found:
        return CheckOutcome.failed(
            f"Prompt references files implicitly: {', '.join(found)}", found_terms=found
        )
    return CheckOutcome.passed("Prompt names its files explicitly")
