"""
End-to-end tests for the Gatekeeper pipeline.

These tests run the LangGraph state machine with the full validator
catalog over a throwaway repository, with external tools faked.
"""

import pytest

from gatekeeper.errors import ConfigTypeMismatch, PipelineError
from gatekeeper.graph import Pipeline, run_pipeline
from gatekeeper.models import GateState, Status

TEST_FILE = "src/services/fetchService.spec.ts"
IMPL_FILE = "src/services/fetchService.ts"

TEST_SOURCE = """import { it, expect } from 'vitest'
import { fetchWithRetry } from './fetchService'

it('returns data when the request succeeds', async () => {
  expect(await fetchWithRetry('/ok')).toEqual({ ok: true })
})

it('throws an error when every attempt fails', async () => {
  await expect(fetchWithRetry('/down')).rejects.toThrow()
})
"""


@pytest.fixture
def task_repo(write_files):
    return write_files({
        "package.json": '{"devDependencies": {"vitest": "^1.6.0"}}',
        TEST_FILE: TEST_SOURCE,
    })


@pytest.fixture
def ctx_factory(make_ctx, task_repo):
    def make(**kwargs):
        kwargs.setdefault("files", [(IMPL_FILE, "CREATE")])
        kwargs.setdefault("test_file", TEST_FILE)
        kwargs.setdefault("changed", [IMPL_FILE, TEST_FILE])
        return make_ctx(**kwargs)
    return make


class TestHappyPath:
    def test_all_gates_pass(self, ctx_factory, store):
        verdict = run_pipeline(ctx_factory(), store)

        assert verdict.overall_passed
        assert verdict.final_gate == 3
        assert verdict.stopped_at is None
        assert [g.gate for g in verdict.gate_results] == [0, 1, 2, 3]
        assert all(g.state == GateState.PASSED for g in verdict.gate_results)

    def test_gate_subset(self, ctx_factory, store, fake_runner):
        """The contract phase runs gates 0 and 1 only, and never spawns tools."""
        verdict = Pipeline(gates=(1, 0)).run(ctx_factory(), store)

        assert verdict.overall_passed
        assert [g.gate for g in verdict.gate_results] == [0, 1]
        assert fake_runner.calls == []

    def test_unknown_gate_rejected(self):
        with pytest.raises(PipelineError):
            Pipeline(gates=(0, 7))


class TestBlocking:
    def test_ambiguous_term_blocks_gate_zero(self, ctx_factory, store):
        store.set_toggle("TASK_CLARITY_CHECK", enabled=True)
        verdict = run_pipeline(ctx_factory(prompt="Talvez adicionar retry no servico"), store)

        assert not verdict.overall_passed
        assert verdict.stopped_at == 0
        assert [g.gate for g in verdict.gate_results] == [0]
        assert [r.validator_code for r in verdict.blockers] == ["TASK_CLARITY_CHECK"]

    def test_hard_failure_halts_pipeline(self, ctx_factory, store, fake_runner):
        fake_runner.exit_codes["vitest"] = 1
        verdict = run_pipeline(ctx_factory(), store)

        assert verdict.stopped_at == 2
        assert verdict.final_gate == 2
        assert verdict.gate(3) is None
        assert not any("build" in call[0] for call in fake_runner.calls)

    def test_warning_override_does_not_stop_pipeline(self, ctx_factory, store):
        store.set("MAX_FILES_PER_TASK", 0)
        store.set("ALLOW_SOFT_GATES", True)
        store.set_toggle("TASK_SCOPE_SIZE", fail_mode="WARNING")

        verdict = run_pipeline(ctx_factory(), store)

        assert verdict.overall_passed
        scope = [r for r in verdict.warnings if r.validator_code == "TASK_SCOPE_SIZE"]
        assert scope and scope[0].status == Status.FAILED

    def test_timeout_is_reported_as_blocking(self, ctx_factory, store, fake_runner):
        from gatekeeper.errors import ExternalToolTimeout

        fake_runner.errors["tsc"] = ExternalToolTimeout("npx tsc --noEmit", 60000)
        verdict = run_pipeline(ctx_factory(), store)

        assert verdict.stopped_at == 2
        blocker = verdict.blockers[0]
        assert blocker.validator_code == "STRICT_COMPILATION"
        assert blocker.details["error"] == "Timeout"


class TestIncompleteImplementation:
    def test_warning_mode_passes_gate_two_with_one_warning(self, ctx_factory, store):
        store.set("DIFF_SCOPE_INCOMPLETE_FAIL_MODE", "WARNING")
        verdict = run_pipeline(ctx_factory(changed=[TEST_FILE]), store)

        gate2 = verdict.gate(2)
        assert gate2.state == GateState.PASSED
        assert [r.validator_code for r in gate2.warnings] == ["DIFF_SCOPE_ENFORCEMENT"]
        assert verdict.overall_passed

    def test_hard_mode_blocks_gate_two(self, ctx_factory, store):
        verdict = run_pipeline(ctx_factory(changed=[TEST_FILE]), store)
        assert verdict.stopped_at == 2


class TestAbort:
    def test_abort_lets_running_gate_finish(self, ctx_factory, store, fake_runner):
        pipeline = Pipeline()
        fake_runner.on_run = lambda command, cwd: pipeline.abort()

        verdict = pipeline.run(ctx_factory(), store)

        assert verdict.aborted
        assert not verdict.overall_passed
        assert verdict.final_gate == 2
        assert verdict.gate(2).state == GateState.PASSED
        assert verdict.gate(3) is None

    def test_next_run_is_not_aborted(self, ctx_factory, store, fake_runner):
        """An abort stops only the run in progress."""
        pipeline = Pipeline()
        fake_runner.on_run = lambda command, cwd: pipeline.abort()
        assert pipeline.run(ctx_factory(), store).aborted

        fake_runner.on_run = None
        verdict = pipeline.run(ctx_factory(), store)

        assert not verdict.aborted
        assert verdict.overall_passed
        assert verdict.final_gate == 3

    def test_abort_between_runs_is_discarded(self, ctx_factory, store):
        pipeline = Pipeline(gates=(0,))
        pipeline.abort()
        verdict = pipeline.run(ctx_factory(), store)

        assert not verdict.aborted
        assert verdict.overall_passed
        assert not pipeline.abort_requested


class TestConfigDefects:
    def test_config_error_aborts_run(self, ctx_factory, store):
        store.set("MAX_FILES_PER_TASK", "many")
        with pytest.raises(ConfigTypeMismatch):
            run_pipeline(ctx_factory(), store)

    def test_run_uses_a_config_snapshot(self, ctx_factory, store):
        run_pipeline(ctx_factory(), store)
        assert store.get_int("MAX_FILES_PER_TASK") == 20
