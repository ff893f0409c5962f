"""
Gate 1 - Contract validators.

These checks read the task test file (never run it) and decide whether
it is a trustworthy contract for the implementation:
- It asserts something real, for both success and failure scenarios
- Its test names describe the task it was written for
- It tests behavior rather than DOM internals
- Everything it imports exists or is declared
- Each test block is traceable to a contract clause
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import FileAction, TaskContext
from gatekeeper.models import CheckOutcome
from gatekeeper.policy.imports import (
    candidate_paths,
    declared_dependencies,
    extract_imports,
    find_existing,
    is_builtin,
    package_name,
    resolve_specifier,
    sort_aliases,
)

COMMENT_PREFIXES = ("//", "/*", "*")


@dataclass(frozen=True)
class ParsedTest:
    name: str
    line: int
    tags: tuple[tuple[str, Optional[str]], ...] = ()


# ============================================================================
# Test file parsing
# ============================================================================

def build_block_pattern(keywords: Iterable[str]) -> re.Pattern:
    names = "|".join(re.escape(k) for k in keywords)
    return re.compile(
        r"^\s*(?:" + names + r")(?:\.(?:only|skip|each\([^)]*\)))?\s*\(\s*(['\"`])(.*?)\1"
    )


def clause_tag_pattern(tag: str) -> re.Pattern:
    return re.compile(re.escape(tag) + r"(?![\w-])[ \t:]*([\w.\-]+)?")


def _preceding_comments(lines: list[str], index: int) -> list[str]:
    comments = []
    i = index - 1
    while i >= 0:
        stripped = lines[i].strip()
        if not stripped.startswith(COMMENT_PREFIXES):
            break
        comments.append(stripped)
        i -= 1
    comments.reverse()
    return comments


def extract_test_blocks(
    source: str,
    keywords: Iterable[str] = ("it", "test"),
    tag: str = "@clause",
) -> list[ParsedTest]:
    """
    Find test blocks and the clause tags in the comments right above them.

    Args:
        source: Test file content
        keywords: Functions that open a test block
        tag: Marker preceding a clause id

    Returns:
        ParsedTest per test, with (raw tag, clause id or None) pairs
    """
    block_re = build_block_pattern(keywords)
    tag_re = clause_tag_pattern(tag)
    lines = source.splitlines()

    blocks = []
    for index, line in enumerate(lines):
        match = block_re.match(line)
        if not match:
            continue
        tags = []
        for comment in _preceding_comments(lines, index):
            for found in tag_re.finditer(comment):
                tags.append((found.group(0).strip(), found.group(1)))
        blocks.append(ParsedTest(name=match.group(2), line=index + 1, tags=tuple(tags)))
    return blocks


@dataclass(frozen=True)
class BlockBody:
    name: str
    line: int
    body: str


def _skip_string(source: str, start: int) -> int:
    """Index just past the string literal opening at `start`."""
    quote = source[start]
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            return i
        i += 1
    return len(source)


def matching_bracket(source: str, open_index: int) -> Optional[int]:
    """
    Index of the bracket closing the one at `open_index`.

    String literals and comments are skipped. Returns None when the
    brackets are unbalanced.
    """
    closers = {"(": ")", "{": "}", "[": "]"}
    stack = []
    i = open_index
    while i < len(source):
        ch = source[i]
        if ch in "'\"`":
            i = _skip_string(source, i)
            continue
        if source.startswith("//", i):
            end = source.find("\n", i)
            i = len(source) if end < 0 else end
            continue
        if source.startswith("/*", i):
            end = source.find("*/", i + 2)
            i = len(source) if end < 0 else end + 2
            continue
        if ch in closers:
            stack.append(closers[ch])
        elif ch in ")}]":
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return i
        i += 1
    return None


def strip_comments(code: str) -> str:
    code = re.sub(r"/\*.*?\*/", "", code, flags=re.DOTALL)
    return re.sub(r"(?m)^\s*//.*$", "", code)


def _callback_body(source: str, start: int, end: int) -> str:
    """Body of the callback passed as the second argument of a test block."""
    rest = source[start:end]
    arrow = rest.find("=>")
    function = re.search(r"\bfunction\b[^(]*\([^)]*\)\s*\{", rest)
    if arrow >= 0 and (function is None or arrow < function.start()):
        head = start + arrow + 2
    elif function is not None:
        head = start + function.end() - 1
    else:
        return ""

    while head < end and source[head].isspace():
        head += 1
    if head < end and source[head] == "{":
        close = matching_bracket(source, head)
        if close is not None:
            return source[head + 1:close]
    return source[head:end]


def extract_test_bodies(source: str, keywords: Iterable[str] = ("it", "test")) -> list[BlockBody]:
    """Test blocks with the source of their callback bodies."""
    block_re = build_block_pattern(keywords)
    bodies = []
    offset = 0
    for index, line in enumerate(source.splitlines(keepends=True)):
        match = block_re.match(line)
        if match:
            paren = line.rfind("(", 0, match.start(1))
            close = matching_bracket(source, offset + paren)
            end = close if close is not None else len(source)
            body = _callback_body(source, offset + match.end(), end)
            bodies.append(BlockBody(name=match.group(2), line=index + 1, body=body))
        offset += len(line)
    return bodies


def read_test_file(ctx: TaskContext) -> Union[str, CheckOutcome]:
    """Test content, or the FAILED outcome explaining why there is none."""
    if not ctx.test_path:
        return CheckOutcome.failed("No test file path provided")
    content = ctx.test_content()
    if content is None:
        return CheckOutcome.failed(f"Test file not found: {ctx.test_path}", test_file=ctx.test_path)
    return content


def _keyword_regex(keywords: Iterable[str]) -> Optional[re.Pattern]:
    words = [re.escape(k) for k in keywords]
    if not words:
        return None
    return re.compile(r"(?<!\w)(?:" + "|".join(words) + r")(?!\w)", re.IGNORECASE)


# ============================================================================
# Validators
# ============================================================================

def check_test_has_assertions(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    content = read_test_file(ctx)
    if isinstance(content, CheckOutcome):
        return content

    counts = {}
    for marker in config.resolve_list("ASSERTION_PATTERNS"):
        found = content.count(marker)
        if found:
            counts[marker] = found

    if not counts:
        return CheckOutcome.failed("Test file contains no assertions", test_file=ctx.test_path)
    return CheckOutcome.passed(
        f"Test file contains {sum(counts.values())} assertion(s)", assertions=counts
    )


def check_happy_and_sad_path(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    content = read_test_file(ctx)
    if isinstance(content, CheckOutcome):
        return content

    blocks = extract_test_blocks(content, config.resolve_list("TEST_BLOCK_KEYWORDS"))
    if not blocks:
        return CheckOutcome.failed("No test blocks found", test_file=ctx.test_path)

    happy_re = _keyword_regex(config.resolve_list("HAPPY_PATH_KEYWORDS"))
    sad_re = _keyword_regex(config.resolve_list("SAD_PATH_KEYWORDS"))
    happy = [b.name for b in blocks if happy_re and happy_re.search(b.name)]
    sad = [b.name for b in blocks if sad_re and sad_re.search(b.name)]

    details = {"happy_path_tests": happy, "sad_path_tests": sad}
    missing = []
    if not happy:
        missing.append("happy path (success scenarios)")
    if not sad:
        missing.append("sad path (error scenarios)")

    if missing:
        return CheckOutcome.failed(f"Test missing coverage: {', '.join(missing)}", **details)
    return CheckOutcome.passed("Test covers both happy and sad paths", **details)


def check_test_resilience(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    content = read_test_file(ctx)
    if isinstance(content, CheckOutcome):
        return content

    marker = config.get_string("RESILIENCE_SKIP_MARKER").strip()
    if marker and marker in content:
        return CheckOutcome.skipped(f"Resilience check opted out with {marker}")

    fragile = [p for p in config.resolve_list("FRAGILE_PATTERNS") if p in content]
    resilient = {p: content.count(p) for p in config.resolve_list("RESILIENT_PATTERNS") if p in content}
    indicators = [i for i in config.resolve_list("UI_TEST_INDICATORS") if i in content]

    is_ui = bool(indicators or resilient or fragile)
    if not is_ui and config.get_bool("SKIP_NON_UI_TESTS"):
        return CheckOutcome.skipped("Not a UI test file")

    details = {"fragile_patterns": fragile, "resilient_patterns": sorted(resilient)}
    required = config.get_int("RESILIENT_PATTERNS_REQUIRED")

    if fragile:
        resilient_total = sum(resilient.values())
        if required > 0 and resilient_total >= required:
            return CheckOutcome.warning(
                f"Fragile patterns offset by {resilient_total} resilient usage(s): {', '.join(fragile)}",
                **details,
            )
        return CheckOutcome.failed(
            f"Test depends on implementation details: {', '.join(fragile)}", **details
        )

    if resilient:
        return CheckOutcome.passed("Test uses behavior-based queries", **details)
    return CheckOutcome.warning("UI test uses neither resilient nor fragile patterns", **details)


def check_import_reality(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    content = read_test_file(ctx)
    if isinstance(content, CheckOutcome):
        return content

    extensions = config.resolve_list("SOURCE_EXTENSIONS")
    aliases = sort_aliases(config.resolve_pairs("PATH_ALIASES"))
    builtins = config.resolve_list("BUILTIN_MODULES") + config.resolve_list("EXTRA_BUILTIN_MODULES")
    dependencies = declared_dependencies(ctx.repo)

    planned = set()
    if ctx.manifest is not None:
        planned = {
            entry.path for entry in ctx.manifest.files
            if entry.action in (FileAction.CREATE, FileAction.EDIT)
        }

    missing = []
    imports = extract_imports(content)
    for spec in imports:
        base = resolve_specifier(spec, ctx.test_path, aliases)
        if base is not None:
            if find_existing(ctx.repo, base, extensions):
                continue
            if planned.intersection(candidate_paths(base, extensions)):
                continue
            missing.append({"import": spec, "kind": "file", "resolved": base})
            continue
        if is_builtin(spec, builtins) or package_name(spec) in dependencies:
            continue
        missing.append({"import": spec, "kind": "package", "package": package_name(spec)})

    if missing:
        names = [item["import"] for item in missing]
        return CheckOutcome.failed(f"Unresolvable imports: {', '.join(names)}", missing=missing)
    return CheckOutcome.passed(f"All {len(imports)} import(s) resolve", imports=imports)


def check_clause_mapping(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    if ctx.contract is None:
        return CheckOutcome.skipped("No contract provided")

    content = read_test_file(ctx)
    if isinstance(content, CheckOutcome):
        return content

    tag = ctx.contract.tag_pattern or config.get_string("CLAUSE_TAG_PATTERN")
    blocks = extract_test_blocks(content, config.resolve_list("TEST_BLOCK_KEYWORDS"), tag)
    if not blocks:
        return CheckOutcome.failed("No test blocks found", test_file=ctx.test_path)

    valid_ids = set(ctx.contract.clauses)
    referenced = set()
    untagged, invalid, malformed = [], [], []

    for block in blocks:
        if not block.tags:
            untagged.append(block.name)
            continue
        for raw, clause_id in block.tags:
            if clause_id is None:
                malformed.append({"test": block.name, "line": block.line, "tag": raw})
            elif clause_id not in valid_ids:
                invalid.append({"test": block.name, "line": block.line, "clause": clause_id})
            else:
                referenced.add(clause_id)

    orphans = [c for c in ctx.contract.clauses if c not in referenced]
    details = {
        "tests": len(blocks),
        "untagged": untagged,
        "invalid": invalid,
        "malformed": malformed,
        "orphan_clauses": orphans,
    }

    problems = []
    if invalid:
        problems.append(f"unknown clause ids: {', '.join(i['clause'] for i in invalid)}")
    if malformed:
        problems.append(f"{len(malformed)} malformed {tag} tag(s)")
    if untagged and not config.get_bool("ALLOW_UNTAGGED_TESTS"):
        problems.append(f"{len(untagged)} untagged test(s)")
    if problems:
        return CheckOutcome.failed(f"Clause mapping invalid: {'; '.join(problems)}", **details)

    notes = []
    if untagged:
        notes.append(f"{len(untagged)} untagged test(s)")
    if orphans:
        notes.append(f"clauses without tests: {', '.join(orphans)}")
    if notes:
        return CheckOutcome.warning(f"Clause mapping incomplete: {'; '.join(notes)}", **details)
    return CheckOutcome.passed(f"All {len(blocks)} test(s) map to contract clauses", **details)


def check_no_decorative_tests(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    """
    Every test block must assert something real.

    Flags blocks with an empty body, blocks without any assertion (a
    bare render, a lone function call) and blocks whose every `expect`
    targets a literal value.
    """
    content = read_test_file(ctx)
    if isinstance(content, CheckOutcome):
        return content

    blocks = extract_test_bodies(content, config.resolve_list("TEST_BLOCK_KEYWORDS"))
    if not blocks:
        return CheckOutcome.failed("No test blocks found", test_file=ctx.test_path)

    markers = config.resolve_list("ASSERTION_PATTERNS")
    literal_re = re.compile(config.get_string("DECORATIVE_ASSERTION_PATTERNS"))

    issues = []
    for block in blocks:
        body = strip_comments(block.body).strip()
        where = f"'{block.name}' (line {block.line})"
        if not body:
            issues.append(f"empty test: {where}")
            continue
        if not any(marker in body for marker in markers):
            issues.append(f"no assertions: {where}")
            continue
        expects = body.count("expect(")
        if expects and len(literal_re.findall(body)) >= expects:
            issues.append(f"only asserts literal values: {where}")

    details = {"total_tests": len(blocks), "issues": issues}
    if issues:
        return CheckOutcome.failed(f"{len(issues)} decorative test(s) found", **details)
    return CheckOutcome.passed(f"All {len(blocks)} test(s) make real assertions", **details)


def _intent_keywords(text: str, stop_words: set[str]) -> set[str]:
    words = re.sub(r"[^\w\s]", " ", text.lower()).split()
    return {word for word in words if len(word) > 3 and word not in stop_words}


def check_test_intent_alignment(ctx: TaskContext, config: ConfigurationStore) -> CheckOutcome:
    content = read_test_file(ctx)
    if isinstance(content, CheckOutcome):
        return content

    names = "|".join(re.escape(k) for k in config.resolve_list("INTENT_DESCRIPTION_KEYWORDS"))
    description_re = re.compile(r"(?<![\w.])(?:" + names + r")(?:\.\w+)?\s*\(\s*(['\"`])(.*?)\1")
    descriptions = [match.group(2) for match in description_re.finditer(content)]

    stop_words = {word.lower() for word in config.resolve_list("INTENT_STOP_WORDS")}
    prompt_keywords = _intent_keywords(ctx.prompt or "", stop_words)
    test_keywords = _intent_keywords(" ".join(descriptions), stop_words)
    common = sorted(prompt_keywords & test_keywords)

    ratio = len(common) / len(prompt_keywords) if prompt_keywords else 0.0
    threshold = config.get_number("INTENT_ALIGNMENT_THRESHOLD")
    details = {
        "alignment_ratio": round(ratio, 2),
        "prompt_keyword_count": len(prompt_keywords),
        "test_keyword_count": len(test_keywords),
        "common_keywords": common,
        "threshold": threshold,
    }

    percent = round(ratio * 100)
    if ratio < threshold:
        return CheckOutcome.warning(f"Low alignment between prompt and test ({percent}%)", **details)
    return CheckOutcome.passed(f"Good alignment between prompt and test ({percent}%)", **details)
