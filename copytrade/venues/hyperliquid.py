"""
Hyperliquid position source.

Reads trader and follower accounts through the public ``/info`` endpoint:

- ``clearinghouseState``  positions, account value, withdrawable balance
- ``frontendOpenOrders``  closing trigger orders -> stop loss / take profit
- ``userFills``           most recent fill time, per-position open time

Usage:
    async with HyperliquidPositionSource() as source:
        snapshot = await source.fetch_account_snapshot(address, Venue.HYPERLIQUID)
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from copytrade.copy_trading.models import AccountSnapshot, Position, Side
from copytrade.errors import SourceUnavailable
from copytrade.venues import Venue

logger = logging.getLogger(__name__)

API_URL = "https://api.hyperliquid.xyz"
TESTNET_API_URL = "https://api.hyperliquid-testnet.xyz"

# Trigger orders whose size is within this fraction of the position are
# treated as belonging to it
TRIGGER_SIZE_TOLERANCE = 0.01


def _closing_side(side: Side) -> str:
    # Hyperliquid book sides: "A" ask (sell), "B" bid (buy)
    return "A" if side == Side.LONG else "B"


def _opening_side(side: Side) -> str:
    return "B" if side == Side.LONG else "A"


def extract_protection(
    coin: str,
    side: Side,
    size: float,
    entry_price: float,
    orders: List[Dict[str, Any]],
) -> Tuple[Optional[float], Optional[float]]:
    """
    Find stop loss and take profit trigger prices for one position.

    A long's stop loss triggers below entry and its take profit above;
    shorts are the mirror image. Newest orders win.
    """
    candidates = []
    for order in orders:
        if order.get("coin") != coin or not order.get("isTrigger"):
            continue
        if order.get("side") != _closing_side(side):
            continue
        order_size = float(order.get("origSz") or order.get("sz") or 0)
        if order_size == 0 or size == 0:
            continue
        if abs(order_size - size) / size > TRIGGER_SIZE_TOLERANCE:
            continue
        candidates.append(order)

    candidates.sort(key=lambda o: o.get("oid") or 0, reverse=True)

    stop_loss = None
    take_profit = None
    for order in candidates:
        trigger = float(order["triggerPx"])
        condition = str(order.get("triggerCondition") or "").lower()
        below = "below" in condition
        above = "above" in condition

        if side == Side.LONG:
            if below and trigger < entry_price and stop_loss is None:
                stop_loss = trigger
            elif above and trigger > entry_price and take_profit is None:
                take_profit = trigger
        else:
            if above and trigger > entry_price and stop_loss is None:
                stop_loss = trigger
            elif below and trigger < entry_price and take_profit is None:
                take_profit = trigger

        if stop_loss is not None and take_profit is not None:
            break

    return stop_loss, take_profit


def parse_positions(
    state: Dict[str, Any],
    orders: List[Dict[str, Any]],
    fills: List[Dict[str, Any]],
) -> List[Position]:
    """Convert a clearinghouseState payload into Positions"""
    positions = []
    for entry in state.get("assetPositions", []):
        raw = entry["position"]
        signed_size = float(raw["szi"])
        if signed_size == 0:
            continue

        coin = raw["coin"]
        side = Side.LONG if signed_size > 0 else Side.SHORT
        size = abs(signed_size)
        entry_price = float(raw["entryPx"])
        leverage = raw.get("leverage") or {}

        opened_at = max(
            (int(f["time"]) for f in fills
             if f.get("coin") == coin and f.get("side") == _opening_side(side)),
            default=None,
        )
        stop_loss, take_profit = extract_protection(coin, side, size, entry_price, orders)

        positions.append(Position(
            symbol=coin,
            side=side,
            size=size,
            entry_price=entry_price,
            leverage=float(leverage.get("value", 1)),
            margin=float(raw.get("marginUsed") or 0),
            stop_loss=stop_loss,
            take_profit=take_profit,
            unrealized_pnl=float(raw.get("unrealizedPnl") or 0),
            opened_at=opened_at,
        ))
    return positions


class HyperliquidPositionSource:
    """
    PositionSource backed by the Hyperliquid info API.

    Args:
        base_url: API root; overrides ``testnet`` when given
        timeout_seconds: Per-request timeout
        session: Existing aiohttp session to reuse; one is created on demand
            otherwise and closed by ``close``
        testnet: Read from the Hyperliquid testnet instead of mainnet
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: float = 15.0,
        session: Optional[aiohttp.ClientSession] = None,
        testnet: bool = False,
    ):
        if base_url is None:
            base_url = TESTNET_API_URL if testnet else API_URL
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self):
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def close(self):
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    # =========================================================================
    # PositionSource
    # =========================================================================

    async def fetch_account_snapshot(self, address: str, venue: Venue) -> AccountSnapshot:
        self._check_venue(address, venue)

        state, orders, fills = await asyncio.gather(
            self._info(address, {"type": "clearinghouseState", "user": address}),
            self._info(address, {"type": "frontendOpenOrders", "user": address}),
            self._info(address, {"type": "userFills", "user": address}),
        )

        try:
            positions = parse_positions(state, orders or [], fills or [])
            summary = state.get("marginSummary") or {}
            snapshot = AccountSnapshot(
                positions=positions,
                total_equity=float(summary.get("accountValue") or 0),
                free_balance=float(state.get("withdrawable") or 0),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SourceUnavailable(f"Malformed clearinghouseState: {e}", address, venue.value) from e

        logger.debug(f"{address}: {len(positions)} positions, equity ${snapshot.total_equity:.2f}")
        return snapshot

    async def fetch_latest_trade_timestamp(self, address: str, venue: Venue) -> Optional[int]:
        self._check_venue(address, venue)

        fills = await self._info(address, {"type": "userFills", "user": address})
        if not fills:
            return None
        try:
            return max(int(f["time"]) for f in fills)
        except (KeyError, TypeError, ValueError) as e:
            raise SourceUnavailable(f"Malformed userFills: {e}", address, venue.value) from e

    # =========================================================================
    # HTTP
    # =========================================================================

    def _check_venue(self, address: str, venue: Venue) -> None:
        if venue != Venue.HYPERLIQUID:
            raise SourceUnavailable(f"Hyperliquid source cannot read {venue.value}", address, venue.value)

    async def _info(self, address: str, payload: Dict[str, Any]) -> Any:
        if self._session is None:
            await self.connect()

        url = f"{self.base_url}/info"
        try:
            async with self._session.post(
                url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise SourceUnavailable(
                        f"{payload['type']} returned HTTP {response.status}: {body[:200]}",
                        address,
                        Venue.HYPERLIQUID.value,
                    )
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SourceUnavailable(
                f"{payload['type']} request failed: {e}",
                address,
                Venue.HYPERLIQUID.value,
            ) from e
