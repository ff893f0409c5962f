"""
Tests for Gatekeeper Diff Guard.

These tests verify that diff scope enforcement correctly:
- Blocks changes outside the manifest
- Allows test-only diffs when configured
- Reports declared files the diff never touched
- Keeps existing test files read-only
"""

from gatekeeper.context.task import Manifest, ManifestEntry, FileAction, TaskContext
from gatekeeper.models import Status
from gatekeeper.policy.diff_guard import check_diff_scope, check_test_read_only
from gatekeeper.repository.diff import ChangeOrigin, WorkingDiff

TEST_FILE = "src/services/fetchService.spec.ts"


class TestDiffScope:
    """Scope enforcement against the manifest."""

    def test_declared_changes_pass(self, make_ctx, store):
        ctx = make_ctx(
            files=[("src/services/fetchService.ts", "CREATE")],
            changed=["src/services/fetchService.ts", TEST_FILE],
        )
        assert check_diff_scope(ctx, store).status == Status.PASSED

    def test_scope_creep_fails(self, make_ctx, store):
        ctx = make_ctx(
            files=[("src/services/fetchService.ts", "CREATE")],
            changed=["src/services/fetchService.ts", "src/app.ts"],
        )
        outcome = check_diff_scope(ctx, store)
        assert outcome.status == Status.FAILED
        assert outcome.details["scope_creep"] == ["src/app.ts"]

    def test_global_exclusions_ignored(self, make_ctx, store):
        ctx = make_ctx(
            files=[("src/services/fetchService.ts", "CREATE")],
            changed=["src/services/fetchService.ts", "package-lock.json"],
        )
        assert check_diff_scope(ctx, store).status == Status.PASSED

    def test_test_only_diff_allowed(self, make_ctx, store):
        """A diff with only the test file passes when the flag is on and nothing is pending."""
        ctx = make_ctx(files=[(TEST_FILE, "CREATE")], changed=[TEST_FILE])
        assert check_diff_scope(ctx, store).status == Status.PASSED

    def test_test_only_diff_rejected_when_disallowed(self, make_ctx, store):
        store.set("DIFF_SCOPE_ALLOW_TEST_ONLY_DIFF", False)
        ctx = make_ctx(files=[(TEST_FILE, "CREATE")], changed=[TEST_FILE])
        assert check_diff_scope(ctx, store).status == Status.FAILED

    def test_incomplete_hard_fails(self, make_ctx, store):
        ctx = make_ctx(
            files=[("src/services/fetchService.ts", "CREATE"), ("src/app.ts", "EDIT")],
            changed=["src/services/fetchService.ts"],
        )
        outcome = check_diff_scope(ctx, store)
        assert outcome.status == Status.FAILED
        assert outcome.details["incomplete"] == [{"path": "src/app.ts", "action": "EDIT"}]

    def test_incomplete_warning_mode(self, make_ctx, store):
        store.set("DIFF_SCOPE_INCOMPLETE_FAIL_MODE", "WARNING")
        ctx = make_ctx(files=[("src/services/fetchService.ts", "CREATE")], changed=[TEST_FILE])
        assert check_diff_scope(ctx, store).status == Status.WARNING

    def test_deleted_file_gone_counts_as_done(self, make_ctx, store):
        ctx = make_ctx(files=[("src/lib/old.ts", "DELETE")], changed=[TEST_FILE])
        assert check_diff_scope(ctx, store).status == Status.PASSED

    def test_deleted_file_still_present_is_incomplete(self, make_ctx, store, write_files):
        write_files({"src/lib/old.ts": "export {}\n"})
        ctx = make_ctx(files=[("src/lib/old.ts", "DELETE")], changed=[TEST_FILE])
        assert check_diff_scope(ctx, store).status == Status.FAILED

    def test_missing_manifest_fails(self, make_ctx, store):
        ctx = make_ctx(manifest=False, changed=["src/a.ts"])
        assert check_diff_scope(ctx, store).status == Status.FAILED

    def test_working_tree_toggle(self, repo, store):
        diff = WorkingDiff.from_paths(["src/a.ts"]).merge(
            WorkingDiff.from_paths(["src/scratch.ts"], origin=ChangeOrigin.UNTRACKED)
        )
        ctx = TaskContext(
            prompt="Edit a",
            manifest=Manifest(files=(ManifestEntry("src/a.ts", FileAction.EDIT),)),
            repo=repo,
            diff=diff,
        )
        assert check_diff_scope(ctx, store).status == Status.FAILED

        store.set("DIFF_SCOPE_INCLUDE_WORKING_TREE", False)
        assert check_diff_scope(ctx, store).status == Status.PASSED


class TestTestReadOnly:
    def test_own_test_file_may_change(self, make_ctx, store):
        ctx = make_ctx(changed=[TEST_FILE, "src/services/fetchService.ts"])
        assert check_test_read_only(ctx, store).status == Status.PASSED

    def test_other_test_file_fails(self, make_ctx, store):
        ctx = make_ctx(changed=[TEST_FILE, "src/lib/format.test.ts", "src/__tests__/a.ts"])
        outcome = check_test_read_only(ctx, store)
        assert outcome.status == Status.FAILED
        assert outcome.details["modified_tests"] == ["src/lib/format.test.ts", "src/__tests__/a.ts"]

    def test_excluded_paths(self, make_ctx, store):
        ctx = make_ctx(changed=["artifacts/run-1/generated.spec.tsx"])
        assert check_test_read_only(ctx, store).status == Status.PASSED
