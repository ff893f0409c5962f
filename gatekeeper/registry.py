"""
Validator Registry for Gatekeeper.

Maps validator codes to their metadata and check functions, and
combines them with the live toggles of a ConfigurationStore.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, Union

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.context.task import TaskContext
from gatekeeper.errors import DuplicateValidatorError, UnknownValidatorError
from gatekeeper.models import CheckOutcome, FailMode, Severity, ValidatorMetadata, ValidatorToggle
from gatekeeper.policy.rules import CHECKS, VALIDATORS, ValidatorCode

CheckFn = Callable[[TaskContext, ConfigurationStore], CheckOutcome]


@dataclass(frozen=True)
class ResolvedValidator:
    """A validator as it applies to one run: metadata, check and toggle."""

    metadata: ValidatorMetadata
    check: CheckFn
    toggle: ValidatorToggle

    @property
    def code(self) -> str:
        return self.metadata.code

    @property
    def gate(self) -> int:
        return self.metadata.gate

    @property
    def order(self) -> int:
        return self.metadata.order

    @property
    def enabled(self) -> bool:
        return self.toggle.enabled

    @property
    def severity(self) -> Severity:
        """Toggle override first, then the catalog default."""
        if self.toggle.fail_mode is not None:
            return self.toggle.fail_mode
        return FailMode.HARD if self.metadata.is_hard_block else FailMode.WARNING

    def can_block(self, allow_soft_gates: bool) -> bool:
        """
        Whether a FAILED result of this validator blocks its gate.

        With soft gates off, any HARD severity blocks. With soft gates on,
        only hard-block validators without a WARNING override block.
        """
        if allow_soft_gates:
            return self.metadata.is_hard_block and self.toggle.fail_mode != FailMode.WARNING
        return self.severity == FailMode.HARD


class ValidatorRegistry:
    def __init__(self):
        self._metadata: dict[str, ValidatorMetadata] = {}
        self._checks: dict[str, CheckFn] = {}
        self._slots: dict[tuple[int, int], str] = {}

    def __len__(self) -> int:
        return len(self._metadata)

    def __contains__(self, code: object) -> bool:
        return _code(code) in self._metadata

    def __iter__(self) -> Iterator[ValidatorMetadata]:
        return iter(sorted(self._metadata.values(), key=lambda m: (m.gate, m.order, m.code)))

    def register(self, metadata: ValidatorMetadata, check: CheckFn) -> None:
        """
        Add a validator.

        Raises:
            DuplicateValidatorError: If the code or the (gate, order) slot is taken
        """
        if metadata.code in self._metadata:
            raise DuplicateValidatorError(f"Validator already registered: {metadata.code}")
        slot = (metadata.gate, metadata.order)
        if slot in self._slots:
            raise DuplicateValidatorError(
                f"Gate {metadata.gate} order {metadata.order} already used by {self._slots[slot]}"
            )
        self._metadata[metadata.code] = metadata
        self._checks[metadata.code] = check
        self._slots[slot] = metadata.code

    def metadata(self, code: Union[str, ValidatorCode]) -> ValidatorMetadata:
        key = _code(code)
        if key not in self._metadata:
            raise UnknownValidatorError(f"Unknown validator: {key}")
        return self._metadata[key]

    def resolve(self, code: Union[str, ValidatorCode], store: ConfigurationStore) -> ResolvedValidator:
        metadata = self.metadata(code)
        return ResolvedValidator(
            metadata=metadata,
            check=self._checks[metadata.code],
            toggle=store.toggle(metadata.code),
        )

    def by_gate(self, gate: int, store: ConfigurationStore) -> list[ResolvedValidator]:
        """Every validator of a gate, enabled or not, ordered by (order, code)."""
        selected = [m for m in self._metadata.values() if m.gate == gate]
        selected.sort(key=lambda m: (m.order, m.code))
        return [self.resolve(m.code, store) for m in selected]

    def gates(self) -> list[int]:
        return sorted({m.gate for m in self._metadata.values()})


def _code(code: object) -> str:
    return code.value if isinstance(code, ValidatorCode) else str(code)


def default_registry() -> ValidatorRegistry:
    """
    Registry holding the full validator catalog.

    Raises:
        UnknownValidatorError: If a catalog entry has no check or vice versa
    """
    catalog_codes = {m.code for m in VALIDATORS}
    orphan_checks = sorted(c.value for c in CHECKS if c.value not in catalog_codes)
    if orphan_checks:
        raise UnknownValidatorError(f"Checks without metadata: {', '.join(orphan_checks)}")

    registry = ValidatorRegistry()
    for metadata in VALIDATORS:
        check = CHECKS.get(ValidatorCode(metadata.code))
        if check is None:
            raise UnknownValidatorError(f"No check implemented for {metadata.code}")
        registry.register(metadata, check)
    return registry


__all__ = [
    "CheckFn",
    "ResolvedValidator",
    "ValidatorCode",
    "ValidatorRegistry",
    "default_registry",
]
