"""
Configuration loader.

Reads ``COPYTRADE_*`` environment variables (after loading ``.env``) into a
SyncConfig.

Usage:
    from copytrade.config import load_config_from_env

    config = load_config_from_env()
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

from copytrade.config.schema import SyncConfig, build_config

logger = logging.getLogger(__name__)

ENV_PREFIX = "COPYTRADE_"

# env suffix -> config field
ENV_FIELDS = {
    "TRADER_ADDRESS": "trader_address",
    "FOLLOWER_ADDRESS": "follower_address",
    "TRADER_VENUE": "trader_venue",
    "FOLLOWER_VENUE": "follower_venue",
    "SYNC_INTERVAL_SECONDS": "sync_interval_seconds",
    "MIN_POSITION_MARGIN": "min_position_margin",
    "MAX_SCALING_FACTOR": "max_scaling_factor",
    "POSITION_CHANGE_THRESHOLD_PERCENT": "position_change_threshold_percent",
    "COPY_BALANCE": "copy_balance",
    "RETAIN_BELOW_MINIMUM": "retain_below_minimum",
    "DRY_RUN": "dry_run",
    "BASELINE_PATH": "baseline_path",
}


def _read_env(environ: Dict[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for suffix, field_name in ENV_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is None or raw.strip() == "":
            continue
        values[field_name] = raw.strip()
    return values


def load_config_from_env(
    env_file: Optional[Union[str, Path]] = ".env",
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> SyncConfig:
    """
    Build a SyncConfig from the environment.

    Args:
        env_file: .env file to load first (existing variables win); None to skip
        environ: Mapping to read instead of os.environ
        **overrides: Field values that take precedence over the environment

    Raises:
        ConfigurationInvalid: if any value fails validation
    """
    if env_file is not None and environ is None and Path(env_file).exists():
        load_dotenv(env_file, override=False)
        logger.debug(f"Loaded environment from {env_file}")

    values = _read_env(dict(os.environ) if environ is None else environ)
    values.update(overrides)
    return build_config(values)
