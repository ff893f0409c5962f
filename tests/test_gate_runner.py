"""
Tests for the Gate Runner.

These tests verify that a gate:
- Runs every enabled validator without short-circuiting
- Orders results by (order, code)
- Applies the blocking rules with and without soft gates
- Converts validator-level errors into HARD failures
- Lets configuration errors abort the run
"""

import pytest

from gatekeeper.errors import ConfigMissing, ExternalToolTimeout, RepositoryAccessError
from gatekeeper.models import CheckOutcome, FailMode, GateState, Status, ValidatorMetadata
from gatekeeper.policy.contract import check_test_intent_alignment
from gatekeeper.registry import ValidatorRegistry
from gatekeeper.runner import GateRunner


def _meta(code, order, gate=0, hard=True):
    return ValidatorMetadata(code, code.title(), "", "TEST", gate, order, is_hard_block=hard)


def _returns(outcome):
    def check(ctx, config):
        return outcome
    return check


def _raises(error):
    def check(ctx, config):
        raise error
    return check


@pytest.fixture
def calls():
    return []


@pytest.fixture
def registry(calls):
    def recording(code, outcome):
        def check(ctx, config):
            calls.append(code)
            return outcome
        return check

    reg = ValidatorRegistry()
    reg.register(_meta("B_SECOND", 2), recording("B_SECOND", CheckOutcome.passed("ok")))
    reg.register(_meta("A_FIRST", 1), recording("A_FIRST", CheckOutcome.failed("broken")))
    reg.register(_meta("C_SOFT", 3, hard=False), recording("C_SOFT", CheckOutcome.failed("meh")))
    return reg


class TestGateExecution:
    def test_no_short_circuit_and_ordering(self, registry, calls, make_ctx, store):
        result = GateRunner(registry).run_gate(0, make_ctx(), store)

        assert sorted(calls) == ["A_FIRST", "B_SECOND", "C_SOFT"]
        assert [r.validator_code for r in result.results] == ["A_FIRST", "B_SECOND", "C_SOFT"]
        assert result.state == GateState.BLOCKED
        assert result.passed_count == 1
        assert result.failed_count == 2

    def test_soft_validator_does_not_block(self, registry, make_ctx, store):
        result = GateRunner(registry).run_gate(0, make_ctx(), store)
        soft = [r for r in result.results if r.validator_code == "C_SOFT"][0]
        assert soft.severity == FailMode.WARNING
        assert soft.blocking is False
        assert soft in result.warnings
        assert [r.validator_code for r in result.blockers] == ["A_FIRST"]

    def test_disabled_validators_are_listed_not_run(self, registry, calls, make_ctx, store):
        store.set_toggle("A_FIRST", enabled=False)
        result = GateRunner(registry).run_gate(0, make_ctx(), store)

        assert "A_FIRST" not in calls
        assert result.disabled == ("A_FIRST",)
        assert result.state == GateState.PASSED
        assert result.failed_count == 1

    def test_warning_override_unblocks(self, registry, make_ctx, store):
        store.set_toggle("A_FIRST", fail_mode="WARNING")
        result = GateRunner(registry).run_gate(0, make_ctx(), store)
        assert result.state == GateState.PASSED
        assert len(result.warnings) == 2

    def test_hard_override_on_soft_validator(self, registry, make_ctx, store):
        """With soft gates off a HARD override blocks; with soft gates on it does not."""
        store.set_toggle("A_FIRST", enabled=False)
        store.set_toggle("C_SOFT", fail_mode="HARD")
        assert GateRunner(registry).run_gate(0, make_ctx(), store).state == GateState.BLOCKED

        store.set("ALLOW_SOFT_GATES", True)
        assert GateRunner(registry).run_gate(0, make_ctx(), store).state == GateState.PASSED

    def test_empty_gate_passes(self, registry, make_ctx, store):
        result = GateRunner(registry).run_gate(5, make_ctx(), store)
        assert result.state == GateState.PASSED
        assert result.results == ()


class TestErrorConversion:
    def _single(self, check, hard=True):
        reg = ValidatorRegistry()
        reg.register(_meta("ONLY", 1, hard=hard), check)
        return reg

    def test_repository_error_is_hard_failure(self, make_ctx, store):
        reg = self._single(_raises(RepositoryAccessError("src/a.ts", "permission denied")), hard=False)
        result = GateRunner(reg).run_gate(0, make_ctx(), store).results[0]
        assert result.status == Status.FAILED
        assert result.severity == FailMode.HARD
        assert result.blocking is True
        assert result.details["path"] == "src/a.ts"
        assert "src/a.ts" in result.message

    def test_timeout_is_hard_failure(self, make_ctx, store):
        reg = self._single(_raises(ExternalToolTimeout("npm run build", 1000, "partial log")))
        result = GateRunner(reg).run_gate(0, make_ctx(), store).results[0]
        assert result.status == Status.FAILED
        assert result.details["error"] == "Timeout"
        assert result.details["stderr"] == "partial log"
        assert result.blocking is True

    def test_unexpected_exception_becomes_failed_result(self, make_ctx, store):
        reg = self._single(_raises(ZeroDivisionError("division by zero")))
        result = GateRunner(reg).run_gate(0, make_ctx(), store).results[0]
        assert result.status == Status.FAILED
        assert result.message.startswith("Validator execution error:")

    def test_config_error_aborts(self, make_ctx, store):
        reg = self._single(_raises(ConfigMissing("SOME_KEY")))
        with pytest.raises(ConfigMissing):
            GateRunner(reg).run_gate(0, make_ctx(), store)


class TestSoftIntentAlignment:
    @pytest.fixture
    def intent_registry(self, store):
        store.set_toggle("TEST_INTENT_ALIGNMENT", enabled=True)
        reg = ValidatorRegistry()
        reg.register(_meta("TEST_INTENT_ALIGNMENT", 10, gate=1, hard=False), check_test_intent_alignment)
        return reg

    def test_failure_blocks_without_soft_gates(self, intent_registry, make_ctx, store):
        result = GateRunner(intent_registry).run_gate(1, make_ctx(test_file=None), store)
        assert result.state == GateState.BLOCKED
        assert result.results[0].severity == FailMode.HARD

    def test_failure_is_advisory_with_soft_gates(self, intent_registry, make_ctx, store):
        store.set("ALLOW_SOFT_GATES", True)
        result = GateRunner(intent_registry).run_gate(1, make_ctx(test_file=None), store)

        assert result.state == GateState.PASSED
        assert result.results[0].status == Status.FAILED
        assert result.results[0] in result.warnings

    def test_low_alignment_never_blocks(self, intent_registry, make_ctx, store):
        content = "it('paginates invoices', () => { expect(page(2)).toHaveLength(10) })\n"
        result = GateRunner(intent_registry).run_gate(1, make_ctx(test_content=content), store)

        assert result.state == GateState.PASSED
        assert result.results[0].status == Status.WARNING
