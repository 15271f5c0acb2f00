"""
Sync configuration validated with Pydantic.

Invalid settings are reported as ConfigurationInvalid before the sync loop
starts.
"""

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from copytrade.venues import Venue
from copytrade.errors import ConfigurationInvalid

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


class SyncConfig(BaseModel):
    """Settings for one monitoring session."""
    trader_address: str
    follower_address: str
    trader_venue: Venue = Venue.HYPERLIQUID
    follower_venue: Venue = Venue.HYPERLIQUID

    sync_interval_seconds: float = Field(gt=0, default=10)
    min_position_margin: float = Field(ge=0, default=20.0)
    max_scaling_factor: float = Field(gt=0, default=1.0)
    position_change_threshold_percent: float = Field(ge=0, default=20.0)

    copy_balance: Optional[float] = Field(gt=0, default=None)
    retain_below_minimum: bool = False
    dry_run: bool = False
    baseline_path: Optional[str] = None

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("trader_address", "follower_address")
    @classmethod
    def check_address(cls, v: str) -> str:
        v = v.strip()
        if not ADDRESS_PATTERN.match(v):
            raise ValueError("must be a 0x-prefixed 40 hex character address")
        return v.lower()


def build_config(data: Dict[str, Any]) -> SyncConfig:
    """Validate raw settings, raising ConfigurationInvalid on any problem"""
    try:
        return SyncConfig(**data)
    except ValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationInvalid(
            f"Invalid configuration: {', '.join(fields)}",
            fields=fields,
        ) from e


def validate_config(data: Dict[str, Any]) -> tuple[bool, list[str]]:
    """Validate configuration data without raising."""
    try:
        build_config(data)
        return True, []
    except ConfigurationInvalid as e:
        return False, e.fields
