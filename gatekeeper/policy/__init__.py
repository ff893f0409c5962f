"""
Validator Engine for Gatekeeper.

Validators grouped by gate:
- Gate 0 (sanitization): task input checks
- Gate 1 (contract): static checks of the task test file
- Gate 2 (diff guard, execution): scope enforcement and tool runs
- Gate 3 (execution): regression suite and production build
"""

from gatekeeper.policy.globs import glob_match
from gatekeeper.policy.rules import CHECKS, VALIDATORS, ValidatorCode

__all__ = ["glob_match", "CHECKS", "VALIDATORS", "ValidatorCode"]
