"""
Position Diff Engine

Compares the follower's live positions against freshly scaled targets and
decides which positions to close and which to open.

A matched symbol is only touched when the trader actually acted on it since
the previous snapshot. Comparing follower size against target size directly
would churn on every price move, because the follower's margin drifts with
the mark price while the trader does nothing.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, Optional, Set

from .models import CloseAction, DiffResult, OpenAction, Position, TargetPosition
from .symbols import CanonicalSymbol

logger = logging.getLogger(__name__)

DEFAULT_CHANGE_THRESHOLD_PERCENT = 20.0

REASON_TRADER_OPENED = "trader opened new position"
REASON_TRADER_CLOSED = "trader closed position"


def size_change_percent(current: Position, previous: Position) -> float:
    """Absolute size change relative to the previous size, in percent"""
    if previous.size == 0:
        return 0.0
    return abs(current.size - previous.size) / previous.size * 100


class PositionDiffEngine:
    """
    Turns (follower, targets, trader history) into close/open actions.

    Args:
        change_threshold_percent: Trader size change above which a matched
            follower position is closed and reopened at the new scale
        retain_below_minimum: Keep a follower position whose target was
            dropped for being too small while the trader still holds it
    """

    def __init__(
        self,
        change_threshold_percent: float = DEFAULT_CHANGE_THRESHOLD_PERCENT,
        retain_below_minimum: bool = False,
    ):
        if change_threshold_percent < 0:
            raise ValueError("change_threshold_percent must be >= 0")
        self.change_threshold_percent = change_threshold_percent
        self.retain_below_minimum = retain_below_minimum

    def diff(
        self,
        follower_positions: Iterable[Position],
        target_positions: Iterable[TargetPosition],
        current_trader_positions: Iterable[Position],
        previous_trader_positions: Optional[Iterable[Position]] = None,
    ) -> DiffResult:
        """
        Compute the actions for one pass.

        ``previous_trader_positions`` is None on the first pass; matched
        targets are then left alone and only stray follower positions close.
        """
        follower = _index(follower_positions)
        targets = _index(target_positions)
        current = _index(current_trader_positions)
        previous = _index(previous_trader_positions) if previous_trader_positions is not None else None

        result = DiffResult()
        closing: Set[CanonicalSymbol] = set()

        for key, target in targets.items():
            held = follower.get(key)

            if held is None:
                result.to_open.append(OpenAction(_with_reason(target, REASON_TRADER_OPENED)))
                continue

            if previous is None:
                logger.debug(f"{key}: no baseline yet, keeping existing position")
                continue

            now, before = current.get(key), previous.get(key)
            if now is None or before is None:
                continue

            reason = self._rebalance_reason(now, before)
            if reason is None:
                continue

            logger.info(f"{key}: trader {reason}, closing and reopening")
            result.to_close.append(CloseAction(held, reason))
            result.to_open.append(OpenAction(_with_reason(target, reason)))
            closing.add(key)

        for key, held in follower.items():
            if key in targets or key in closing:
                continue
            if self.retain_below_minimum and key in current:
                logger.info(f"Keeping {held.symbol}: trader still holds it, target below minimum")
                continue
            result.to_close.append(CloseAction(held, REASON_TRADER_CLOSED))
            closing.add(key)

        return result

    def _rebalance_reason(self, now: Position, before: Position) -> Optional[str]:
        if now.side != before.side:
            return f"flipped to {now.side.value.upper()}"

        change = size_change_percent(now, before)
        if change <= self.change_threshold_percent:
            return None

        direction = "increased" if now.size > before.size else "decreased"
        return f"{direction} by {change:.1f}%"


def _index(positions: Iterable[Position]) -> Dict[CanonicalSymbol, Position]:
    return {p.key: p for p in positions}


def _with_reason(target: TargetPosition, reason: str) -> TargetPosition:
    return replace(target, reason=reason)
