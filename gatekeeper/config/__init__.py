"""
Configuration for Gatekeeper.

Typed settings with defaults, validator toggles and policy records.
"""

from gatekeeper.config.store import ConfigurationStore
from gatekeeper.config.defaults import DEFAULT_CONFIGS, DEFAULT_TOGGLES

__all__ = ["ConfigurationStore", "DEFAULT_CONFIGS", "DEFAULT_TOGGLES"]
