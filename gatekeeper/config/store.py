"""
Configuration Store for Gatekeeper.

Typed key/value settings plus the read-only policy records
(sensitive files, ambiguous terms, path conventions).

Values are stored as text and decoded on every read, so a setting
changed between runs is picked up by the next run.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from dotenv import load_dotenv

from gatekeeper.config.defaults import (
    DEFAULT_AMBIGUOUS_TERMS,
    DEFAULT_CONFIGS,
    DEFAULT_PATH_CONVENTIONS,
    DEFAULT_SENSITIVE_RULES,
    DEFAULT_TOGGLES,
)
from gatekeeper.errors import ConfigMissing, ConfigTypeMismatch
from gatekeeper.models import (
    GLOBAL_WORKSPACE,
    AmbiguousTerm,
    ConfigType,
    FailMode,
    PathConvention,
    SensitiveFileRule,
    ValidationConfig,
    ValidatorToggle,
)

ENV_PREFIX = "GATEKEEPER_"
VALIDATOR_CATEGORY = "VALIDATOR"


def _encode(value: Any) -> str:
    """Encode a Python value the way values are stored: as text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def parse_bool(key: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ConfigTypeMismatch(key, ConfigType.BOOLEAN.value, raw)


def parse_number(key: str, raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError:
        raise ConfigTypeMismatch(key, ConfigType.NUMBER.value, raw) from None


def parse_fail_mode(key: str, raw: Optional[str]) -> Optional[FailMode]:
    if raw is None or raw == "":
        return None
    try:
        return FailMode(raw.strip().upper())
    except ValueError:
        raise ConfigTypeMismatch(key, "HARD|WARNING", raw) from None


class ConfigurationStore:
    """
    Live typed settings consumed by validators.

    The store is passed explicitly into every check; nothing reads
    configuration from module globals.
    """

    def __init__(
        self,
        entries: Optional[Iterable[ValidationConfig]] = None,
        sensitive_rules: Optional[Iterable[SensitiveFileRule]] = None,
        ambiguous_terms: Optional[Iterable[AmbiguousTerm]] = None,
        path_conventions: Optional[Iterable[PathConvention]] = None,
        with_defaults: bool = True,
    ):
        self._defaults: dict[str, ValidationConfig] = {}
        self._entries: dict[str, ValidationConfig] = {}

        if with_defaults:
            for entry in DEFAULT_CONFIGS:
                self.register_default(entry)
            for code, enabled, fail_mode in DEFAULT_TOGGLES:
                self.register_default(ValidationConfig(
                    key=code,
                    value=_encode(enabled),
                    type=ConfigType.BOOLEAN,
                    category=VALIDATOR_CATEGORY,
                    description=f"Enable {code}",
                    fail_mode=fail_mode,
                ))

        for entry in entries or ():
            self._entries[entry.key] = copy.copy(entry)

        if sensitive_rules is None:
            sensitive_rules = DEFAULT_SENSITIVE_RULES if with_defaults else ()
        if ambiguous_terms is None:
            ambiguous_terms = DEFAULT_AMBIGUOUS_TERMS if with_defaults else ()
        if path_conventions is None:
            path_conventions = DEFAULT_PATH_CONVENTIONS if with_defaults else ()

        self._sensitive_rules: dict[str, SensitiveFileRule] = {}
        for rule in sensitive_rules:
            self._sensitive_rules[rule.pattern] = rule

        self._ambiguous_terms: dict[str, AmbiguousTerm] = {}
        for term in ambiguous_terms:
            self._ambiguous_terms[term.term.lower()] = term

        self._conventions: dict[tuple[str, str], PathConvention] = {}
        for convention in path_conventions:
            self._conventions[(convention.workspace_id, convention.test_type)] = convention

    # ------------------------------------------------------------------
    # Raw entries
    # ------------------------------------------------------------------

    def register_default(self, entry: ValidationConfig) -> None:
        self._defaults[entry.key] = copy.copy(entry)

    def entry(self, key: str) -> ValidationConfig:
        if key in self._entries:
            return self._entries[key]
        if key in self._defaults:
            return self._defaults[key]
        raise ConfigMissing(key)

    def has(self, key: str) -> bool:
        return key in self._entries or key in self._defaults

    def keys(self) -> list[str]:
        return sorted(set(self._entries) | set(self._defaults))

    def set(self, key: str, value: Any, fail_mode: Optional[Union[FailMode, str]] = None) -> None:
        """
        Set a live value, keeping the declared type of a known key.

        Args:
            key: Setting name
            value: New value (bools, numbers and sequences are encoded as text)
            fail_mode: Optional fail mode override (validator toggles only)
        """
        base = self._entries.get(key) or self._defaults.get(key)
        if base is None:
            base = ValidationConfig(key=key, value="", category="CUSTOM")
        updated = copy.copy(base)
        updated.value = _encode(value)
        if fail_mode is not None:
            raw = fail_mode.value if isinstance(fail_mode, FailMode) else fail_mode
            updated.fail_mode = parse_fail_mode(key, raw)
        self._entries[key] = updated

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def get(self, key: str) -> Union[str, float, bool]:
        """Decode a value according to its declared type."""
        entry = self.entry(key)
        if entry.type == ConfigType.BOOLEAN:
            return parse_bool(key, entry.value)
        if entry.type == ConfigType.NUMBER:
            return parse_number(key, entry.value)
        return entry.value

    def _typed_entry(self, key: str, expected: ConfigType) -> ValidationConfig:
        """
        Look up an entry and check its declared type.

        Raises:
            ConfigMissing: If the key is unknown
            ConfigTypeMismatch: If the key is declared with another type
        """
        entry = self.entry(key)
        if entry.type != expected:
            raise ConfigTypeMismatch(key, expected.value, entry.type.value)
        return entry

    def get_string(self, key: str) -> str:
        return self._typed_entry(key, ConfigType.STRING).value

    def get_bool(self, key: str) -> bool:
        return parse_bool(key, self._typed_entry(key, ConfigType.BOOLEAN).value)

    def get_number(self, key: str) -> float:
        return parse_number(key, self._typed_entry(key, ConfigType.NUMBER).value)

    def get_int(self, key: str) -> int:
        return int(self.get_number(key))

    def get_fail_mode(self, key: str) -> FailMode:
        mode = parse_fail_mode(key, self.entry(key).value)
        if mode is None:
            raise ConfigTypeMismatch(key, "HARD|WARNING", "")
        return mode

    def resolve_list(self, key: str, separator: str = ",") -> list[str]:
        """Split a delimited setting into ordered, stripped, non-empty items."""
        raw = self.get_string(key)
        return [item.strip() for item in raw.split(separator) if item.strip()]

    def resolve_pairs(self, key: str, separator: str = ",") -> list[tuple[str, str]]:
        """
        Split a list of `name:value` items on the first colon.

        Raises:
            ConfigTypeMismatch: If an item has no name or no value
        """
        pairs = []
        for item in self.resolve_list(key, separator):
            name, colon, value = item.partition(":")
            if not colon or not name.strip() or not value.strip():
                raise ConfigTypeMismatch(key, "name:value list", item)
            pairs.append((name.strip(), value.strip()))
        return pairs

    # ------------------------------------------------------------------
    # Validator toggles
    # ------------------------------------------------------------------

    def toggle(self, code: str) -> ValidatorToggle:
        if not self.has(code):
            return ValidatorToggle(code=code)
        entry = self.entry(code)
        return ValidatorToggle(
            code=code,
            enabled=parse_bool(code, entry.value),
            fail_mode=entry.fail_mode,
        )

    def set_toggle(
        self,
        code: str,
        enabled: Optional[bool] = None,
        fail_mode: Optional[Union[FailMode, str]] = None,
        clear_fail_mode: bool = False,
    ) -> None:
        current = self.toggle(code)
        base = self._entries.get(code) or self._defaults.get(code)
        if base is None:
            base = ValidationConfig(
                key=code,
                value="true",
                type=ConfigType.BOOLEAN,
                category=VALIDATOR_CATEGORY,
                description=f"Enable {code}",
            )
        updated = copy.copy(base)
        updated.value = _encode(current.enabled if enabled is None else enabled)
        if clear_fail_mode:
            updated.fail_mode = None
        elif fail_mode is not None:
            raw = fail_mode.value if isinstance(fail_mode, FailMode) else fail_mode
            updated.fail_mode = parse_fail_mode(code, raw)
        self._entries[code] = updated

    # ------------------------------------------------------------------
    # Policy records
    # ------------------------------------------------------------------

    @property
    def sensitive_rules(self) -> tuple[SensitiveFileRule, ...]:
        return tuple(self._sensitive_rules.values())

    @property
    def ambiguous_terms(self) -> tuple[AmbiguousTerm, ...]:
        return tuple(self._ambiguous_terms.values())

    @property
    def path_conventions(self) -> tuple[PathConvention, ...]:
        return tuple(self._conventions.values())

    def find_convention(self, workspace_id: str, test_type: str) -> Optional[PathConvention]:
        """Project-level convention first, then the global fallback."""
        convention = self._conventions.get((workspace_id, test_type))
        if convention is None:
            convention = self._conventions.get((GLOBAL_WORKSPACE, test_type))
        return convention

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def copy(self) -> "ConfigurationStore":
        """Independent copy, so concurrent runs never share mutable settings."""
        clone = ConfigurationStore(
            sensitive_rules=self.sensitive_rules,
            ambiguous_terms=self.ambiguous_terms,
            path_conventions=self.path_conventions,
            with_defaults=False,
        )
        for entry in self._defaults.values():
            clone.register_default(entry)
        for key, entry in self._entries.items():
            clone._entries[key] = copy.copy(entry)
        return clone

    @classmethod
    def from_dict(cls, data: dict) -> "ConfigurationStore":
        """
        Build a store from a configuration document.

        Args:
            data: Mapping with optional `settings`, `validators`,
                `sensitiveFiles`, `ambiguousTerms` and `pathConventions`

        Returns:
            ConfigurationStore with defaults overlaid by the document
        """
        sensitive = data.get("sensitiveFiles")
        terms = data.get("ambiguousTerms")
        conventions = data.get("pathConventions")

        store = cls(
            sensitive_rules=None if sensitive is None else [
                SensitiveFileRule(
                    pattern=item["pattern"],
                    category=item.get("category", "SECURITY"),
                    description=item.get("description", ""),
                )
                for item in sensitive
            ],
            ambiguous_terms=None if terms is None else [
                AmbiguousTerm(term=item) if isinstance(item, str)
                else AmbiguousTerm(term=item["term"], category=item.get("category", "VAGUE_ACTION"))
                for item in terms
            ],
            path_conventions=None if conventions is None else [
                PathConvention(
                    workspace_id=item.get("workspaceId", GLOBAL_WORKSPACE),
                    test_type=item["testType"],
                    path_pattern=item["pathPattern"],
                    description=item.get("description", ""),
                )
                for item in conventions
            ],
        )

        for key, value in (data.get("settings") or {}).items():
            store.set(key, value)

        for code, toggle in (data.get("validators") or {}).items():
            if isinstance(toggle, bool):
                store.set_toggle(code, enabled=toggle)
                continue
            store.set_toggle(
                code,
                enabled=toggle.get("enabled"),
                fail_mode=toggle.get("failMode"),
            )

        return store

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ConfigurationStore":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def apply_env(self, prefix: str = ENV_PREFIX) -> "ConfigurationStore":
        """
        Overlay values from `<prefix><KEY>` environment variables.

        A `.env` file in the working directory is loaded first.
        """
        load_dotenv()
        for key in self.keys():
            value = os.getenv(f"{prefix}{key}")
            if value is not None:
                self.set(key, value)
        return self

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "ConfigurationStore":
        return cls().apply_env(prefix)
