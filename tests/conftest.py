"""
Copy Trade Test Configuration

Shared fixtures: fake position source and order executor collaborators,
plus default sync settings.
"""

import asyncio
from typing import Dict, List, Optional, Set, Tuple, Union

import pytest

from copytrade.copy_trading import AccountSnapshot, OrderOutcome, Position, TargetPosition
from copytrade.errors import ExecutionFailure
from copytrade.venues import Venue

TRADER = "0x" + "a" * 40
FOLLOWER = "0x" + "b" * 40


class FakeSource:
    """
    In-memory PositionSource.

    ``snapshots`` and ``trades`` map address -> value, or an exception
    instance to raise. ``gate``, when set, blocks every fetch until released.
    """

    def __init__(self):
        self.snapshots: Dict[str, Union[AccountSnapshot, Exception]] = {}
        self.trades: Dict[str, Union[Optional[int], Exception]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.gate: Optional[asyncio.Event] = None

    async def _wait(self):
        if self.gate is not None:
            await self.gate.wait()

    async def fetch_account_snapshot(self, address: str, venue: Venue) -> AccountSnapshot:
        self.calls.append(("snapshot", address))
        await self._wait()
        value = self.snapshots[address]
        if isinstance(value, Exception):
            raise value
        return value

    async def fetch_latest_trade_timestamp(self, address: str, venue: Venue) -> Optional[int]:
        self.calls.append(("trade", address))
        await self._wait()
        value = self.trades.get(address)
        if isinstance(value, Exception):
            raise value
        return value

    def count(self, kind: str, address: Optional[str] = None) -> int:
        return sum(1 for k, a in self.calls if k == kind and (address is None or a == address))


class FakeExecutor:
    """
    Records submissions in order.

    Symbols in ``reject`` come back with success=False, symbols in ``explode``
    raise ExecutionFailure, symbols in ``crash`` raise RuntimeError.
    """

    def __init__(self):
        self.submitted: List[Tuple[str, str]] = []
        self.reject: Set[str] = set()
        self.explode: Set[str] = set()
        self.crash: Set[str] = set()

    def _outcome(self, kind: str, symbol: str) -> OrderOutcome:
        self.submitted.append((kind, symbol))
        if symbol in self.crash:
            raise RuntimeError("connection reset")
        if symbol in self.explode:
            raise ExecutionFailure("insufficient margin", symbol=symbol, reference="tx-failed")
        if symbol in self.reject:
            return OrderOutcome(success=False, error="rejected by venue")
        return OrderOutcome(success=True, reference=f"{kind}-{symbol}")

    async def open(self, target: TargetPosition) -> OrderOutcome:
        return self._outcome("open", target.symbol)

    async def close(self, position: Position) -> OrderOutcome:
        return self._outcome("close", position.symbol)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def settings() -> dict:
    return {
        "trader_address": TRADER,
        "follower_address": FOLLOWER,
        "sync_interval_seconds": 10,
    }
