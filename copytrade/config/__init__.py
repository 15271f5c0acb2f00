"""
Configuration module.

SyncConfig holds the recognized options; load_config_from_env builds one from
COPYTRADE_* variables.
"""

from copytrade.config.schema import SyncConfig, build_config, validate_config
from copytrade.config.loader import load_config_from_env

__all__ = [
    "SyncConfig",
    "build_config",
    "validate_config",
    "load_config_from_env",
]
