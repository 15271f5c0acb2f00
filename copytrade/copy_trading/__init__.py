"""
Copy Trading Engine

Mirror a trader's open positions into a follower account, scaled to the
follower's capital, and keep the two books in sync.

Components (leaf first):
- TargetPositionCalculator: trader positions -> follower-sized targets
- PositionDiffEngine: follower vs targets vs trader history -> close/open actions
- SyncScheduler: fixed-interval fetch -> calculate -> diff -> execute loop
"""

from .models import (
    Side,
    Venue,
    Position,
    TargetPosition,
    DroppedPosition,
    AccountSnapshot,
    CalculationResult,
    OpenAction,
    CloseAction,
    Action,
    DiffResult,
    ExecutionResult,
    PassStatus,
    PassResult,
)
from .symbols import CanonicalSymbol, normalize
from .calculator import TargetPositionCalculator
from .diff import PositionDiffEngine
from .interfaces import OrderExecutor, OrderOutcome, PositionSource
from .dry_run import DryRunExecutor
from .baseline_store import JsonBaselineStore
from .scheduler import RepeatingTask, SyncScheduler, SyncState, SyncStats

__all__ = [
    # Models
    "Side",
    "Venue",
    "Position",
    "TargetPosition",
    "DroppedPosition",
    "AccountSnapshot",
    "CalculationResult",
    "OpenAction",
    "CloseAction",
    "Action",
    "DiffResult",
    "ExecutionResult",
    "PassStatus",
    "PassResult",
    # Symbols
    "CanonicalSymbol",
    "normalize",
    # Engine
    "TargetPositionCalculator",
    "PositionDiffEngine",
    "SyncScheduler",
    "SyncState",
    "SyncStats",
    "RepeatingTask",
    # Collaborators
    "PositionSource",
    "OrderExecutor",
    "OrderOutcome",
    "DryRunExecutor",
    "JsonBaselineStore",
]
