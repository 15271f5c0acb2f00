"""
Collaborator interfaces consumed by the sync scheduler.

Venue clients implement these; the engine never talks to an exchange
directly. Timeouts, signing, fees and slippage all live behind them.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from copytrade.venues import Venue

from .models import AccountSnapshot, Position, TargetPosition


@dataclass
class OrderOutcome:
    """What a venue reports back for one submission"""
    success: bool
    reference: Optional[str] = None
    error: Optional[str] = None


@runtime_checkable
class PositionSource(Protocol):
    """Reads account state from a venue."""

    async def fetch_account_snapshot(self, address: str, venue: Venue) -> AccountSnapshot:
        """Positions and equity as one consistent read.

        Raises SourceUnavailable on any failure.
        """
        ...

    async def fetch_latest_trade_timestamp(self, address: str, venue: Venue) -> Optional[int]:
        """Epoch ms of the account's most recent fill, or None if it has none"""
        ...


@runtime_checkable
class OrderExecutor(Protocol):
    """Submits follower orders. Calls may be slow and may fail."""

    async def open(self, target: TargetPosition) -> OrderOutcome:
        ...

    async def close(self, position: Position) -> OrderOutcome:
        ...
