"""
Validator catalog for Gatekeeper.

The closed set of validators: their codes, pipeline placement
(gate, order), default severity, and the check implementing each one.
"""

from enum import Enum

from gatekeeper.models import ValidatorMetadata
from gatekeeper.policy import baseline, contract, diff_guard, discipline, execution, sanitization


class ValidatorCode(str, Enum):
    # Gate 0 - Sanitization
    TOKEN_BUDGET_FIT = "TOKEN_BUDGET_FIT"
    TASK_SCOPE_SIZE = "TASK_SCOPE_SIZE"
    TASK_CLARITY_CHECK = "TASK_CLARITY_CHECK"
    SENSITIVE_FILES_LOCK = "SENSITIVE_FILES_LOCK"
    DANGER_MODE_EXPLICIT = "DANGER_MODE_EXPLICIT"
    PATH_CONVENTION = "PATH_CONVENTION"
    DELETE_DEPENDENCY_CHECK = "DELETE_DEPENDENCY_CHECK"
    # Gate 1 - Contract
    TEST_HAS_ASSERTIONS = "TEST_HAS_ASSERTIONS"
    TEST_COVERS_HAPPY_AND_SAD_PATH = "TEST_COVERS_HAPPY_AND_SAD_PATH"
    TEST_FAILS_BEFORE_IMPLEMENTATION = "TEST_FAILS_BEFORE_IMPLEMENTATION"
    NO_DECORATIVE_TESTS = "NO_DECORATIVE_TESTS"
    TEST_RESILIENCE_CHECK = "TEST_RESILIENCE_CHECK"
    MANIFEST_FILE_LOCK = "MANIFEST_FILE_LOCK"
    NO_IMPLICIT_FILES = "NO_IMPLICIT_FILES"
    IMPORT_REALITY_CHECK = "IMPORT_REALITY_CHECK"
    TEST_INTENT_ALIGNMENT = "TEST_INTENT_ALIGNMENT"
    TEST_CLAUSE_MAPPING_VALID = "TEST_CLAUSE_MAPPING_VALID"
    # Gate 2 - Execution
    DIFF_SCOPE_ENFORCEMENT = "DIFF_SCOPE_ENFORCEMENT"
    TEST_READ_ONLY_ENFORCEMENT = "TEST_READ_ONLY_ENFORCEMENT"
    TASK_TEST_PASSES = "TASK_TEST_PASSES"
    STRICT_COMPILATION = "STRICT_COMPILATION"
    STYLE_CONSISTENCY_LINT = "STYLE_CONSISTENCY_LINT"
    # Gate 3 - Integrity
    FULL_REGRESSION_PASS = "FULL_REGRESSION_PASS"
    PRODUCTION_BUILD_PASS = "PRODUCTION_BUILD_PASS"


V = ValidatorCode

VALIDATORS = (
    ValidatorMetadata(V.TOKEN_BUDGET_FIT.value, "Token Budget Fit",
                      "Context fits the model token budget with a safety margin",
                      "INPUT_SCOPE", 0, 1),
    ValidatorMetadata(V.TASK_SCOPE_SIZE.value, "Task Scope Size",
                      "Manifest does not exceed the maximum files per task",
                      "INPUT_SCOPE", 0, 2),
    ValidatorMetadata(V.TASK_CLARITY_CHECK.value, "Task Clarity Check",
                      "Prompt contains no ambiguous terms",
                      "INPUT_SCOPE", 0, 3),
    ValidatorMetadata(V.SENSITIVE_FILES_LOCK.value, "Sensitive Files Lock",
                      "Sensitive files are only touched in danger mode",
                      "SECURITY", 0, 4),
    ValidatorMetadata(V.DANGER_MODE_EXPLICIT.value, "Danger Mode Explicit",
                      "Danger mode is enabled exactly when sensitive files are in scope",
                      "SECURITY", 0, 5),
    ValidatorMetadata(V.PATH_CONVENTION.value, "Path Convention",
                      "Test file lives where the artifact type convention expects",
                      "FILE_DISCIPLINE", 0, 6),
    ValidatorMetadata(V.DELETE_DEPENDENCY_CHECK.value, "Delete Dependency Check",
                      "Files importing deleted files are covered by the manifest",
                      "FILE_DISCIPLINE", 0, 7),

    ValidatorMetadata(V.TEST_HAS_ASSERTIONS.value, "Test Has Assertions",
                      "Test file contains at least one assertion",
                      "TESTS_CONTRACTS", 1, 2),
    ValidatorMetadata(V.TEST_COVERS_HAPPY_AND_SAD_PATH.value, "Test Covers Happy and Sad Path",
                      "Tests cover success and failure scenarios",
                      "TESTS_CONTRACTS", 1, 3),
    ValidatorMetadata(V.TEST_FAILS_BEFORE_IMPLEMENTATION.value, "Test Fails Before Implementation",
                      "The task test fails on the base ref for a real assertion, not for infrastructure",
                      "TESTS_CONTRACTS", 1, 4),
    ValidatorMetadata(V.NO_DECORATIVE_TESTS.value, "No Decorative Tests",
                      "No empty test blocks and no blocks without real assertions",
                      "TESTS_CONTRACTS", 1, 5),
    ValidatorMetadata(V.TEST_RESILIENCE_CHECK.value, "Test Resilience Check",
                      "UI tests query behavior, not implementation details",
                      "TESTS_CONTRACTS", 1, 6),
    ValidatorMetadata(V.MANIFEST_FILE_LOCK.value, "Manifest File Lock",
                      "Manifest lists explicit files with valid actions and a real test file",
                      "FILE_DISCIPLINE", 1, 7),
    ValidatorMetadata(V.NO_IMPLICIT_FILES.value, "No Implicit Files",
                      "Prompt does not reference files implicitly",
                      "FILE_DISCIPLINE", 1, 8),
    ValidatorMetadata(V.IMPORT_REALITY_CHECK.value, "Import Reality Check",
                      "Every test import resolves to a file, built-in or declared dependency",
                      "TECHNICAL_QUALITY", 1, 9),
    ValidatorMetadata(V.TEST_INTENT_ALIGNMENT.value, "Test Intent Alignment",
                      "Test descriptions share keywords with the task prompt",
                      "TESTS_CONTRACTS", 1, 10, is_hard_block=False),
    ValidatorMetadata(V.TEST_CLAUSE_MAPPING_VALID.value, "Test Clause Mapping Valid",
                      "Every test is tagged with a valid contract clause",
                      "TESTS_CONTRACTS", 1, 11),

    ValidatorMetadata(V.DIFF_SCOPE_ENFORCEMENT.value, "Diff Scope Enforcement",
                      "Changed files match the manifest",
                      "FILE_DISCIPLINE", 2, 1),
    ValidatorMetadata(V.TEST_READ_ONLY_ENFORCEMENT.value, "Test Read-Only Enforcement",
                      "Existing test files other than the task test are not modified",
                      "TESTS_CONTRACTS", 2, 2),
    ValidatorMetadata(V.TASK_TEST_PASSES.value, "Task Test Passes",
                      "The task test passes against the implementation",
                      "TESTS_CONTRACTS", 2, 5),
    ValidatorMetadata(V.STRICT_COMPILATION.value, "Strict Compilation",
                      "The project compiles without errors",
                      "TECHNICAL_QUALITY", 2, 6),
    ValidatorMetadata(V.STYLE_CONSISTENCY_LINT.value, "Style Consistency Lint",
                      "Changed files pass the project linter",
                      "TECHNICAL_QUALITY", 2, 7),

    ValidatorMetadata(V.FULL_REGRESSION_PASS.value, "Full Regression Pass",
                      "The full test suite passes",
                      "TESTS_CONTRACTS", 3, 1),
    ValidatorMetadata(V.PRODUCTION_BUILD_PASS.value, "Production Build Pass",
                      "The production build succeeds",
                      "TECHNICAL_QUALITY", 3, 2),
)

CHECKS = {
    V.TOKEN_BUDGET_FIT: sanitization.check_token_budget,
    V.TASK_SCOPE_SIZE: sanitization.check_task_scope_size,
    V.TASK_CLARITY_CHECK: sanitization.check_task_clarity,
    V.SENSITIVE_FILES_LOCK: sanitization.check_sensitive_files,
    V.DANGER_MODE_EXPLICIT: sanitization.check_danger_mode,
    V.PATH_CONVENTION: sanitization.check_path_convention,
    V.DELETE_DEPENDENCY_CHECK: sanitization.check_delete_dependencies,
    V.TEST_HAS_ASSERTIONS: contract.check_test_has_assertions,
    V.TEST_COVERS_HAPPY_AND_SAD_PATH: contract.check_happy_and_sad_path,
    V.TEST_FAILS_BEFORE_IMPLEMENTATION: baseline.check_test_fails_before_implementation,
    V.NO_DECORATIVE_TESTS: contract.check_no_decorative_tests,
    V.TEST_RESILIENCE_CHECK: contract.check_test_resilience,
    V.MANIFEST_FILE_LOCK: discipline.check_manifest_file_lock,
    V.NO_IMPLICIT_FILES: discipline.check_no_implicit_files,
    V.IMPORT_REALITY_CHECK: contract.check_import_reality,
    V.TEST_INTENT_ALIGNMENT: contract.check_test_intent_alignment,
    V.TEST_CLAUSE_MAPPING_VALID: contract.check_clause_mapping,
    V.DIFF_SCOPE_ENFORCEMENT: diff_guard.check_diff_scope,
    V.TEST_READ_ONLY_ENFORCEMENT: diff_guard.check_test_read_only,
    V.TASK_TEST_PASSES: execution.check_task_test_passes,
    V.STRICT_COMPILATION: execution.check_strict_compilation,
    V.STYLE_CONSISTENCY_LINT: execution.check_style_lint,
    V.FULL_REGRESSION_PASS: execution.check_full_regression,
    V.PRODUCTION_BUILD_PASS: execution.check_production_build,
}
