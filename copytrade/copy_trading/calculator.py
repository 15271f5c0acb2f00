"""
Target Position Calculator

Scales a trader's open positions to the follower's capital.

The follower's margin is allocated in proportion to the trader's margin, with
the scaling factor capped so the follower is never more exposed than the
trader, even with spare capital. Entry price, leverage, stop loss and take
profit carry over unchanged.
"""

import logging
from typing import Iterable, List

from .models import CalculationResult, DroppedPosition, Position, TargetPosition

logger = logging.getLogger(__name__)

DEFAULT_MIN_POSITION_MARGIN = 20.0
DEFAULT_MAX_SCALING_FACTOR = 1.0


class TargetPositionCalculator:
    """
    Converts trader positions into follower-sized targets.

    Stateless: two calls with the same input return equal results.
    """

    def __init__(self, min_position_margin: float = DEFAULT_MIN_POSITION_MARGIN):
        if min_position_margin < 0:
            raise ValueError("min_position_margin must be >= 0")
        self.min_position_margin = min_position_margin

    def calculate(
        self,
        trader_positions: Iterable[Position],
        follower_capital: float,
        max_scale: float = DEFAULT_MAX_SCALING_FACTOR,
    ) -> List[TargetPosition]:
        """Return scaled targets; see ``plan`` for dropped entries and factor"""
        return self.plan(trader_positions, follower_capital, max_scale).targets

    def plan(
        self,
        trader_positions: Iterable[Position],
        follower_capital: float,
        max_scale: float = DEFAULT_MAX_SCALING_FACTOR,
    ) -> CalculationResult:
        """
        Scale every replicable trader position.

        Args:
            trader_positions: The trader's raw positions
            follower_capital: Capital the follower commits to copying
            max_scale: Ceiling on the scaling factor

        Returns:
            CalculationResult with targets, dropped entries and the factor used
        """
        eligible = [p for p in trader_positions if p.is_replicable]
        trader_total_margin = sum(p.margin for p in eligible)

        if trader_total_margin <= 0 or follower_capital <= 0:
            return CalculationResult(
                targets=[],
                dropped=[],
                scaling_factor=0.0,
                trader_total_margin=trader_total_margin,
            )

        scaling_factor = min(follower_capital / trader_total_margin, max_scale)

        targets: List[TargetPosition] = []
        dropped: List[DroppedPosition] = []

        for position in eligible:
            target = self._scale(position, scaling_factor)
            if target.margin < self.min_position_margin:
                dropped.append(DroppedPosition(
                    symbol=position.symbol,
                    margin=target.margin,
                    reason=f"margin ${target.margin:.2f} below minimum ${self.min_position_margin:.2f}",
                ))
                logger.info(
                    f"Skipping {position.symbol}: scaled margin ${target.margin:.2f} "
                    f"< ${self.min_position_margin:.2f}"
                )
                continue
            targets.append(target)

        logger.debug(
            f"Scaled {len(targets)} positions at {scaling_factor * 100:.2f}% "
            f"(trader margin ${trader_total_margin:.2f}, capital ${follower_capital:.2f})"
        )

        return CalculationResult(
            targets=targets,
            dropped=dropped,
            scaling_factor=scaling_factor,
            trader_total_margin=trader_total_margin,
        )

    @staticmethod
    def _scale(position: Position, scaling_factor: float) -> TargetPosition:
        copy_margin = position.margin * scaling_factor
        copy_size = copy_margin * position.leverage / position.entry_price

        # Floating point must never push the copy above the original
        final_size = min(copy_size, position.size)
        final_margin = min(copy_margin, position.margin)

        return TargetPosition(
            symbol=position.symbol,
            side=position.side,
            size=final_size,
            entry_price=position.entry_price,
            leverage=position.leverage,
            margin=final_margin,
            stop_loss=position.stop_loss,
            take_profit=position.take_profit,
            unrealized_pnl=0.0,
            opened_at=None,
            reference=None,
            reason=f"scaled {scaling_factor * 100:.1f}% of trader position",
        )

