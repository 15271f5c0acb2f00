"""
Dry-run order executor.

Logs what would be submitted and reports success without touching a venue.
Useful for watching a trader before committing capital.
"""

import logging
from typing import List, Tuple

from .interfaces import OrderOutcome
from .models import Position, TargetPosition

logger = logging.getLogger(__name__)


class DryRunExecutor:
    """OrderExecutor that only records submissions"""

    def __init__(self):
        self.submitted: List[Tuple[str, Position]] = []

    def _next_reference(self) -> str:
        return f"dry-run-{len(self.submitted)}"

    async def open(self, target: TargetPosition) -> OrderOutcome:
        self.submitted.append(("open", target))
        logger.info(
            f"[DRY RUN] Would open {target.side.value.upper()} {target.size:.4f} {target.symbol} "
            f"@ {target.entry_price} ({target.leverage}x, margin ${target.margin:.2f}, "
            f"notional ${target.notional:.2f})"
        )
        return OrderOutcome(success=True, reference=self._next_reference())

    async def close(self, position: Position) -> OrderOutcome:
        self.submitted.append(("close", position))
        logger.info(
            f"[DRY RUN] Would close {position.symbol} ({position.size:.4f} @ {position.entry_price}, "
            f"notional ${position.notional:.2f})"
        )
        return OrderOutcome(success=True, reference=self._next_reference())
