"""
Tests for the Gatekeeper Configuration Store.

These tests verify that the store:
- Decodes values strictly by their declared type
- Splits list and pair settings predictably
- Resolves validator toggles and path conventions
- Loads documents and environment overrides
"""

import json

import pytest

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.errors import ConfigMissing, ConfigTypeMismatch
from gatekeeper.models import GLOBAL_WORKSPACE, FailMode, PathConvention


class TestTypedAccess:
    """Typed reads of stored text values."""

    def test_defaults_are_typed(self, store):
        """Seed values decode to their declared types."""
        assert store.get("MAX_TOKEN_BUDGET") == 100000.0
        assert store.get("ALLOW_SOFT_GATES") is False
        assert store.get("CLAUSE_TAG_PATTERN") == "@clause"
        assert store.get_int("MAX_FILES_PER_TASK") == 20

    def test_unknown_key_raises_missing(self, store):
        with pytest.raises(ConfigMissing):
            store.get("NOT_A_SETTING")

    def test_malformed_number_raises_mismatch(self, store):
        store.set("MAX_FILES_PER_TASK", "twenty")
        with pytest.raises(ConfigTypeMismatch):
            store.get_number("MAX_FILES_PER_TASK")

    def test_boolean_parsing_is_case_insensitive(self, store):
        store.set("ALLOW_SOFT_GATES", "TRUE")
        assert store.get_bool("ALLOW_SOFT_GATES") is True
        store.set("ALLOW_SOFT_GATES", "yes")
        with pytest.raises(ConfigTypeMismatch):
            store.get_bool("ALLOW_SOFT_GATES")

    def test_getter_checks_declared_type(self, store):
        """A typed getter never reads a key declared with another type."""
        with pytest.raises(ConfigTypeMismatch) as excinfo:
            store.get_string("MAX_TOKEN_BUDGET")
        assert excinfo.value.expected == "STRING"
        with pytest.raises(ConfigTypeMismatch):
            store.get_number("ALLOW_SOFT_GATES")
        with pytest.raises(ConfigTypeMismatch):
            store.get_bool("CLAUSE_TAG_PATTERN")
        with pytest.raises(ConfigTypeMismatch):
            store.get_int("TOKENIZER")

    def test_changes_are_seen_on_next_read(self, store):
        """Values are decoded on every read, never cached."""
        store.set("MAX_FILES_PER_TASK", 3)
        assert store.get_int("MAX_FILES_PER_TASK") == 3
        store.set("MAX_FILES_PER_TASK", 7)
        assert store.get_int("MAX_FILES_PER_TASK") == 7

    def test_fail_mode_setting(self, store):
        assert store.get_fail_mode("DIFF_SCOPE_INCOMPLETE_FAIL_MODE") == FailMode.HARD
        store.set("DIFF_SCOPE_INCOMPLETE_FAIL_MODE", "sometimes")
        with pytest.raises(ConfigTypeMismatch):
            store.get_fail_mode("DIFF_SCOPE_INCOMPLETE_FAIL_MODE")


class TestListsAndPairs:
    """Delimited settings."""

    def test_resolve_list_strips_and_drops_empty(self, store):
        store.set("EXTRA_BUILTIN_MODULES", " vitest , ,react ")
        assert store.resolve_list("EXTRA_BUILTIN_MODULES") == ["vitest", "react"]

    def test_resolve_pairs_splits_on_first_colon(self, store):
        pairs = store.resolve_pairs("TYPE_DETECTION_PATTERNS")
        assert pairs[0][0] == "component"
        assert dict(pairs)["service"] == "/services?/"

    def test_aliases_default(self, store):
        assert store.resolve_pairs("PATH_ALIASES") == [("@/", "src/")]

    def test_malformed_pair_raises(self, store):
        store.set("PATH_ALIASES", "@/src/")
        with pytest.raises(ConfigTypeMismatch):
            store.resolve_pairs("PATH_ALIASES")


class TestToggles:
    """Validator toggles stored as VALIDATOR config entries."""

    def test_seeded_toggles(self, store):
        assert store.toggle("TASK_SCOPE_SIZE").enabled is True
        assert store.toggle("TASK_CLARITY_CHECK").enabled is False
        assert store.toggle("TOKEN_BUDGET_FIT").fail_mode == FailMode.HARD

    def test_unknown_code_is_enabled(self, store):
        assert store.toggle("SOMETHING_NEW").enabled is True

    def test_set_toggle_overrides_fail_mode(self, store):
        store.set_toggle("TASK_SCOPE_SIZE", fail_mode="warning")
        toggle = store.toggle("TASK_SCOPE_SIZE")
        assert toggle.enabled is True
        assert toggle.fail_mode == FailMode.WARNING

        store.set_toggle("TASK_SCOPE_SIZE", clear_fail_mode=True)
        assert store.toggle("TASK_SCOPE_SIZE").fail_mode is None

    def test_set_toggle_rejects_unknown_fail_mode(self, store):
        with pytest.raises(ConfigTypeMismatch):
            store.set_toggle("TASK_SCOPE_SIZE", fail_mode="SOFT")


class TestRecords:
    """Sensitive rules, ambiguous terms and path conventions."""

    def test_defaults_include_talvez(self, store):
        assert "talvez" in [t.term for t in store.ambiguous_terms]

    def test_convention_falls_back_to_global(self):
        store = ConfigurationStore(path_conventions=[
            PathConvention(GLOBAL_WORKSPACE, "service", "src/services/{name}.spec.ts"),
            PathConvention("web", "service", "apps/web/services/{name}.test.ts"),
        ])
        assert store.find_convention("web", "service").path_pattern.startswith("apps/web")
        assert store.find_convention("api", "service").workspace_id == GLOBAL_WORKSPACE
        assert store.find_convention("api", "hook") is None

    def test_copy_is_isolated(self, store):
        clone = store.copy()
        clone.set("MAX_FILES_PER_TASK", 1)
        assert store.get_int("MAX_FILES_PER_TASK") == 20
        assert clone.get_int("MAX_FILES_PER_TASK") == 1


class TestLoading:
    """Configuration documents and environment overrides."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "gatekeeper.json"
        path.write_text(json.dumps({
            "settings": {"MAX_FILES_PER_TASK": 5, "ALLOW_SOFT_GATES": True},
            "validators": {
                "TASK_CLARITY_CHECK": True,
                "TASK_SCOPE_SIZE": {"failMode": "WARNING"},
            },
            "ambiguousTerms": ["maybe", {"term": "somehow", "category": "UNCERTAINTY"}],
        }), encoding="utf-8")

        store = ConfigurationStore.from_file(path)

        assert store.get_int("MAX_FILES_PER_TASK") == 5
        assert store.get_bool("ALLOW_SOFT_GATES") is True
        assert store.toggle("TASK_CLARITY_CHECK").enabled is True
        assert store.toggle("TASK_SCOPE_SIZE").fail_mode == FailMode.WARNING
        assert sorted(t.term for t in store.ambiguous_terms) == ["maybe", "somehow"]
        # Records not in the document keep their defaults
        assert len(store.sensitive_rules) == 6

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GATEKEEPER_MAX_FILES_PER_TASK", "9")
        store = ConfigurationStore.from_env()
        assert store.get_int("MAX_FILES_PER_TASK") == 9
