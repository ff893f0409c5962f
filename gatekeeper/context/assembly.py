"""
Context assembly for the token budget check.

Builds the text an implementing agent would receive for a task:
the prompt, the manifest, the current content of every referenced
file that exists, and the test file.
"""

from gatekeeper.context.task import Manifest, TaskContext


def format_manifest(manifest: Manifest) -> str:
    lines = ["## Manifest"]
    for entry in manifest.files:
        line = f"- {entry.action.value} {entry.path}"
        if entry.reason:
            line += f": {entry.reason}"
        lines.append(line)
    if manifest.test_file:
        lines.append(f"- TEST {manifest.test_file}")
    return "\n".join(lines)


def load_referenced_files(ctx: TaskContext) -> dict[str, str]:
    """
    Read every manifest file that currently exists in the repository.

    Raises:
        RepositoryAccessError: If an existing file cannot be read
    """
    snippets = {}
    if ctx.manifest is None:
        return snippets
    for path in ctx.manifest.paths():
        if path in snippets or not ctx.repo.is_file(path):
            continue
        snippets[path] = ctx.repo.read_text(path)
    return snippets


def assemble_context(ctx: TaskContext) -> str:
    """
    Assemble the full context text of a task.

    Args:
        ctx: Task context

    Returns:
        Prompt, manifest, referenced files and test file as one string
    """
    parts = [f"## Task\n{ctx.prompt}"]

    if ctx.manifest is not None:
        parts.append(format_manifest(ctx.manifest))

    for path, content in load_referenced_files(ctx).items():
        parts.append(f"### {path}\n```\n{content}\n```")

    test_content = ctx.test_content()
    if test_content:
        parts.append(f"### {ctx.test_path}\n```\n{test_content}\n```")

    return "\n\n".join(parts)
