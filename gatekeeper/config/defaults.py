"""
Default Policy Configuration for Gatekeeper.

Every tunable a validator reads lives here as a named, typed key.
No validator hard-codes a policy constant outside this surface.
"""

from gatekeeper.models import (
    GLOBAL_WORKSPACE,
    AmbiguousTerm,
    ConfigType,
    FailMode,
    PathConvention,
    SensitiveFileRule,
    ValidationConfig,
)

N = ConfigType.NUMBER
B = ConfigType.BOOLEAN
S = ConfigType.STRING


FRAGILE_PATTERNS = (
    ".querySelector(",
    ".querySelectorAll(",
    ".getElementsByClassName(",
    ".getElementsByTagName(",
    ".getElementById(",
    ".className",
    ".innerHTML",
    ".outerHTML",
    ".style.",
    "container.firstChild",
    "container.children",
    "wrapper.find(",
    ".dive()",
    "toMatchSnapshot()",
    "toMatchInlineSnapshot()",
)

RESILIENT_PATTERNS = (
    "getByRole(",
    "getByText(",
    "getByLabelText(",
    "getByPlaceholderText(",
    "getByDisplayValue(",
    "getByAltText(",
    "getByTitle(",
    "getByTestId(",
    "findByRole(",
    "findByText(",
    "userEvent.",
    "screen.",
    "toBeVisible()",
    "toBeInTheDocument()",
    "toHaveTextContent(",
    "toHaveAccessibleName(",
    "toHaveAttribute(",
)

UI_TEST_INDICATORS = (
    "render(",
    "screen.",
    "@testing-library",
    "mount(",
    "shallow(",
    "fireEvent",
    "userEvent",
)

TYPE_DETECTION_PATTERNS = (
    "component:/(components?|ui|widgets?|layout|views?)/",
    "hook:/hooks?/",
    "lib:/lib/",
    "util:/utils?/",
    "service:/services?/",
    "context:/contexts?/",
    "page:/pages?/",
    "store:/stores?/",
    "api:/api/",
    "validator:/validators?/",
)

INTENT_STOP_WORDS = (
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "should",
    "could", "would", "test", "tests", "it",
)

IMPLICIT_FILE_TERMS = (
    "other files",
    "etc",
    "...",
    "outros arquivos",
    "e tal",
    "among others",
    "all files",
    "any file",
    "related files",
    "necessary files",
    "e outros",
    "arquivos relacionados",
)

NODE_BUILTIN_MODULES = (
    "assert", "buffer", "child_process", "crypto", "events", "fs",
    "http", "https", "net", "os", "path", "process", "stream",
    "string_decoder", "timers", "tty", "url", "util", "worker_threads",
    "zlib",
)


def _join(items) -> str:
    return ",".join(items)


DEFAULT_CONFIGS = (
    # Global
    ValidationConfig("ALLOW_SOFT_GATES", "false", B, "GLOBAL",
                     "Only validators marked hard-block (without a WARNING override) can block a gate"),
    ValidationConfig("VALIDATOR_CONCURRENCY", "4", N, "GLOBAL",
                     "Maximum validators evaluated in parallel inside a gate"),

    # Gate 0 - Sanitization
    ValidationConfig("MAX_TOKEN_BUDGET", "100000", N, "GATE0",
                     "Maximum token budget for context"),
    ValidationConfig("TOKEN_SAFETY_MARGIN", "0.8", N, "GATE0",
                     "Safety margin multiplier for token budget"),
    ValidationConfig("TOKENIZER", "chars", S, "GATE0",
                     "Token estimator: 'chars' (characters / 4) or 'tiktoken:<encoding>'"),
    ValidationConfig("MAX_FILES_PER_TASK", "20", N, "GATE0",
                     "Maximum files allowed per task"),
    ValidationConfig("TYPE_DETECTION_PATTERNS", _join(TYPE_DETECTION_PATTERNS), S, "GATE0",
                     "Comma-separated type:regex patterns for PathConvention detection (first match wins)"),
    ValidationConfig("DELETE_CHECK_IGNORE_DIRS", "node_modules,.git,dist,build,coverage,.next,.cache", S, "GATE0",
                     "Comma-separated directories ignored by DeleteDependencyCheck"),
    ValidationConfig("DELETE_CHECK_SCOPE", "repository", S, "GATE0",
                     "Importer scan scope for DeleteDependencyCheck: 'repository' or 'diff'"),
    ValidationConfig("SOURCE_EXTENSIONS", ".ts,.tsx,.js,.jsx,.mjs,.cjs", S, "GATE0",
                     "Extensions treated as importable source files"),

    # Gate 1 - Contract
    ValidationConfig("PATH_ALIASES", "@/:src/", S, "GATE1",
                     "Comma-separated path aliases in the format alias:path"),
    ValidationConfig("BUILTIN_MODULES", _join(NODE_BUILTIN_MODULES), S, "GATE1",
                     "Module names always treated as existing"),
    ValidationConfig("EXTRA_BUILTIN_MODULES", "", S, "GATE1",
                     "Comma-separated module names treated as built-in for import validation"),
    ValidationConfig("ALLOW_UNTAGGED_TESTS", "false", B, "GATE1",
                     "Allow tests without @clause tags (true = warning only, false = fail)"),
    ValidationConfig("CLAUSE_TAG_PATTERN", "@clause", S, "GATE1",
                     "Marker that precedes a clause id in test comments"),
    ValidationConfig("TEST_BLOCK_KEYWORDS", "it,test", S, "GATE1",
                     "Function names that open a test block"),
    ValidationConfig("ASSERTION_PATTERNS", "expect(,assert(,assert.,.should", S, "GATE1",
                     "Substrings that count as an assertion"),
    ValidationConfig("HAPPY_PATH_KEYWORDS", "success,succeeds,should,valid,passes,correctly,works,returns", S, "GATE1",
                     "Comma-separated keywords for happy path detection in tests"),
    ValidationConfig("SAD_PATH_KEYWORDS", "error,errors,fail,fails,throws,invalid,not,reject,rejects,deny,block", S, "GATE1",
                     "Comma-separated keywords for sad path detection in tests"),
    ValidationConfig("FRAGILE_PATTERNS", _join(FRAGILE_PATTERNS), S, "GATE1",
                     "Patterns indicating fragile implementation-dependent tests"),
    ValidationConfig("RESILIENT_PATTERNS", _join(RESILIENT_PATTERNS), S, "GATE1",
                     "Patterns indicating resilient behavior-based tests"),
    ValidationConfig("RESILIENT_PATTERNS_REQUIRED", "0", N, "GATE1",
                     "Resilient occurrences that offset fragile ones (0 = never offset)"),
    ValidationConfig("SKIP_NON_UI_TESTS", "true", B, "GATE1",
                     "Skip TestResilienceCheck for non-UI test files"),
    ValidationConfig("UI_TEST_INDICATORS", _join(UI_TEST_INDICATORS), S, "GATE1",
                     "Markers identifying a UI test file"),
    ValidationConfig("RESILIENCE_SKIP_MARKER", "@resilience-skip", S, "GATE1",
                     "Comment marker that opts a test file out of TestResilienceCheck"),
    ValidationConfig("DECORATIVE_ASSERTION_PATTERNS",
                     r"expect\(\s*(?:true|false|null|undefined|-?\d+(?:\.\d+)?|'[^']*'|\"[^\"]*\")\s*\)",
                     S, "GATE1", "Regex matching assertions on a literal value, which prove nothing"),
    ValidationConfig("INTENT_ALIGNMENT_THRESHOLD", "0.3", N, "GATE1",
                     "Minimum share of prompt keywords found in test descriptions"),
    ValidationConfig("INTENT_STOP_WORDS", _join(INTENT_STOP_WORDS), S, "GATE1",
                     "Words ignored when comparing the prompt with test descriptions"),
    ValidationConfig("INTENT_DESCRIPTION_KEYWORDS", "describe,it,test", S, "GATE1",
                     "Functions whose first argument describes test intent"),
    ValidationConfig("IMPLICIT_FILE_TERMS", _join(IMPLICIT_FILE_TERMS), S, "GATE1",
                     "Prompt phrases that reference files without naming them"),
    ValidationConfig("MANIFEST_VAGUE_SEGMENTS", "etc,other,others,misc,...", S, "GATE1",
                     "Path segments that make a manifest entry vague"),
    ValidationConfig("MANIFEST_TEST_FILE_MARKERS", ".test.,.spec.", S, "GATE1",
                     "Substrings a manifest testFile name must contain"),
    ValidationConfig("BASE_REF", "HEAD", S, "GATE1",
                     "Git ref the task test must fail against when no base ref is given"),
    ValidationConfig("INSTALL_COMMANDS",
                     "package-lock.json:npm ci,pnpm-lock.yaml:pnpm install --frozen-lockfile,"
                     "yarn.lock:yarn install --frozen-lockfile",
                     S, "GATE1", "Comma-separated lockfile:install command pairs, first present lockfile wins"),

    # Gate 2 - Execution
    ValidationConfig("DIFF_SCOPE_GLOBAL_EXCLUSIONS", "package-lock.json,yarn.lock,pnpm-lock.yaml", S, "GATE2",
                     "Glob patterns or plain substrings never considered in scope validation"),
    ValidationConfig("DIFF_SCOPE_INCOMPLETE_FAIL_MODE", "HARD", S, "GATE2",
                     "How to handle incomplete implementation: HARD (fail) or WARNING (warn only)"),
    ValidationConfig("DIFF_SCOPE_ALLOW_TEST_ONLY_DIFF", "true", B, "GATE2",
                     "Allow diffs that only contain the test file"),
    ValidationConfig("DIFF_SCOPE_INCLUDE_WORKING_TREE", "true", B, "GATE2",
                     "Include staged, unstaged and untracked changes in diff scope validation"),
    ValidationConfig("TEST_FILE_PATTERNS", "**/*.spec.*,**/*.test.*,**/__tests__/**", S, "GATE2",
                     "Globs identifying test files"),
    ValidationConfig("TEST_READ_ONLY_EXCLUDED_PATHS", "artifacts/**", S, "GATE2",
                     "Globs excluded from test read-only enforcement"),
    ValidationConfig("ESLINT_CONFIG_FILES",
                     "eslint.config.js,eslint.config.mjs,eslint.config.cjs,.eslintrc.js,.eslintrc.json,.eslintrc",
                     S, "GATE2", "Lint config filenames to search for"),
    ValidationConfig("SKIP_LINT_IF_NO_CONFIG", "true", B, "GATE2",
                     "Skip linting when no lint config is found"),

    # External tools
    ValidationConfig("EXECUTION_SANDBOX", "local", S, "EXECUTION",
                     "Where external tools run: 'local' or 'docker'"),
    ValidationConfig("SANDBOX_IMAGE", "node:20-slim", S, "EXECUTION",
                     "Docker image used when EXECUTION_SANDBOX is 'docker'"),
    ValidationConfig("SANDBOX_NETWORK", "false", B, "EXECUTION",
                     "Give sandbox containers network access (needed to install dependencies)"),
    ValidationConfig("TEST_COMMAND", "npx vitest run {testFile}", S, "EXECUTION",
                     "Command running the task test"),
    ValidationConfig("COMPILE_COMMAND", "npx tsc --noEmit", S, "EXECUTION",
                     "Command running strict compilation"),
    ValidationConfig("LINT_COMMAND", "npx eslint {files}", S, "EXECUTION",
                     "Command linting the changed files"),
    ValidationConfig("REGRESSION_COMMAND", "npx vitest run", S, "EXECUTION",
                     "Command running the full test suite"),
    ValidationConfig("BUILD_COMMAND", "npm run build", S, "EXECUTION",
                     "Command running the production build"),
    ValidationConfig("TOOL_OUTPUT_EXCERPT_CHARS", "2000", N, "EXECUTION",
                     "Characters of tool output kept in failure details"),

    # Timeouts
    ValidationConfig("TEST_EXECUTION_TIMEOUT_MS", "600000", N, "TIMEOUTS",
                     "Timeout in ms for running tests"),
    ValidationConfig("COMPILATION_TIMEOUT_MS", "60000", N, "TIMEOUTS",
                     "Timeout in ms for compilation"),
    ValidationConfig("BUILD_TIMEOUT_MS", "120000", N, "TIMEOUTS",
                     "Timeout in ms for production build"),
    ValidationConfig("LINT_TIMEOUT_MS", "30000", N, "TIMEOUTS",
                     "Timeout in ms for linting"),
    ValidationConfig("INSTALL_TIMEOUT_MS", "300000", N, "TIMEOUTS",
                     "Timeout in ms for installing dependencies in the base worktree"),
)


# Validator toggles: key = validator code, value = enabled flag
DEFAULT_TOGGLES = (
    ("TOKEN_BUDGET_FIT", False, FailMode.HARD),
    ("TASK_SCOPE_SIZE", True, None),
    ("TASK_CLARITY_CHECK", False, FailMode.HARD),
    ("SENSITIVE_FILES_LOCK", True, None),
    ("DANGER_MODE_EXPLICIT", False, FailMode.HARD),
    ("PATH_CONVENTION", False, FailMode.HARD),
    ("DELETE_DEPENDENCY_CHECK", True, None),
    ("TEST_HAS_ASSERTIONS", True, None),
    ("TEST_COVERS_HAPPY_AND_SAD_PATH", True, None),
    ("TEST_FAILS_BEFORE_IMPLEMENTATION", False, None),
    ("NO_DECORATIVE_TESTS", True, None),
    ("TEST_RESILIENCE_CHECK", True, None),
    ("MANIFEST_FILE_LOCK", False, FailMode.HARD),
    ("NO_IMPLICIT_FILES", False, FailMode.HARD),
    ("IMPORT_REALITY_CHECK", True, None),
    ("TEST_INTENT_ALIGNMENT", False, FailMode.HARD),
    ("TEST_CLAUSE_MAPPING_VALID", True, None),
    ("DIFF_SCOPE_ENFORCEMENT", True, None),
    ("TEST_READ_ONLY_ENFORCEMENT", False, FailMode.HARD),
    ("TASK_TEST_PASSES", True, None),
    ("STRICT_COMPILATION", True, None),
    ("STYLE_CONSISTENCY_LINT", True, None),
    ("FULL_REGRESSION_PASS", False, None),
    ("PRODUCTION_BUILD_PASS", True, None),
)


DEFAULT_SENSITIVE_RULES = (
    SensitiveFileRule(".env*", "ENV", "Environment files with secrets"),
    SensitiveFileRule("**/.env", "ENV", "Environment files in any directory"),
    SensitiveFileRule("**/migrations/**", "MIGRATION", "Database migration files"),
    SensitiveFileRule("**/.github/**", "CI_CD", "GitHub workflows and config"),
    SensitiveFileRule("**/*.pem", "SECURITY", "PEM certificate files"),
    SensitiveFileRule("**/*.key", "SECURITY", "Private key files"),
)

DEFAULT_AMBIGUOUS_TERMS = (
    AmbiguousTerm("melhore"),
    AmbiguousTerm("otimize"),
    AmbiguousTerm("refatore"),
    AmbiguousTerm("arrume"),
    AmbiguousTerm("ajuste"),
    AmbiguousTerm("talvez", "UNCERTAINTY"),
)

DEFAULT_PATH_CONVENTIONS = (
    PathConvention(GLOBAL_WORKSPACE, "component", "src/components/{name}.spec.tsx"),
    PathConvention(GLOBAL_WORKSPACE, "hook", "src/hooks/{name}.spec.ts"),
    PathConvention(GLOBAL_WORKSPACE, "lib", "src/lib/{name}.spec.ts"),
    PathConvention(GLOBAL_WORKSPACE, "util", "src/lib/utils/{name}.spec.ts"),
    PathConvention(GLOBAL_WORKSPACE, "service", "src/services/{name}.spec.ts"),
    PathConvention(GLOBAL_WORKSPACE, "context", "src/context/{name}.spec.tsx"),
    PathConvention(GLOBAL_WORKSPACE, "page", "src/pages/{name}.spec.tsx"),
    PathConvention(GLOBAL_WORKSPACE, "store", "src/store/{name}.spec.ts"),
    PathConvention(GLOBAL_WORKSPACE, "api", "src/api/{name}.spec.ts"),
    PathConvention(GLOBAL_WORKSPACE, "validator", "src/validators/{name}.spec.ts"),
)
