"""
Copy Trading Data Model

Positions, account snapshots, scaled targets and the open/close actions the
engine emits. Everything here is plain data; the calculator, diff engine and
scheduler never mutate a snapshot after it has been fetched.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from copytrade.venues import Venue

from .symbols import CanonicalSymbol, normalize


class Side(str, Enum):
    """Direction of a leveraged position"""
    LONG = "long"
    SHORT = "short"

    @classmethod
    def parse(cls, value: Union[str, "Side"]) -> "Side":
        """Accept long/short as well as buy/sell spellings"""
        if isinstance(value, Side):
            return value
        text = str(value).strip().lower()
        if text in ("long", "buy", "b"):
            return cls.LONG
        if text in ("short", "sell", "a"):
            return cls.SHORT
        raise ValueError(f"Unknown side: {value!r}")


@dataclass
class Position:
    """An open leveraged position on one symbol"""
    symbol: str
    side: Side
    size: float
    entry_price: float
    leverage: float
    margin: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    unrealized_pnl: float = 0.0
    opened_at: Optional[int] = None     # epoch ms
    reference: Optional[str] = None     # venue handle needed to close (trade hash, order id)

    def __post_init__(self):
        self.side = Side.parse(self.side)
        if self.size < 0:
            raise ValueError(f"{self.symbol}: size must be >= 0, got {self.size}")
        if self.entry_price <= 0:
            raise ValueError(f"{self.symbol}: entry_price must be > 0, got {self.entry_price}")
        if self.leverage <= 0:
            raise ValueError(f"{self.symbol}: leverage must be > 0, got {self.leverage}")
        if self.margin < 0:
            raise ValueError(f"{self.symbol}: margin must be >= 0, got {self.margin}")

    @property
    def key(self) -> CanonicalSymbol:
        """Venue-independent matching key"""
        return normalize(self.symbol)

    @property
    def is_replicable(self) -> bool:
        return self.margin > 0

    @property
    def notional(self) -> float:
        return self.size * self.entry_price

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "size": self.size,
            "entry_price": self.entry_price,
            "leverage": self.leverage,
            "margin": self.margin,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "unrealized_pnl": self.unrealized_pnl,
            "opened_at": self.opened_at,
            "reference": self.reference,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        """Create from dictionary"""
        return cls(
            symbol=data["symbol"],
            side=Side.parse(data["side"]),
            size=float(data["size"]),
            entry_price=float(data["entry_price"]),
            leverage=float(data["leverage"]),
            margin=float(data["margin"]),
            stop_loss=data.get("stop_loss"),
            take_profit=data.get("take_profit"),
            unrealized_pnl=float(data.get("unrealized_pnl", 0.0)),
            opened_at=data.get("opened_at"),
            reference=data.get("reference"),
        )


@dataclass
class TargetPosition(Position):
    """A trader position scaled to the follower's capital.

    ``reason`` is for display and logs only.
    """
    reason: str = ""


@dataclass
class DroppedPosition:
    """A scaled target discarded by the minimum margin filter"""
    symbol: str
    margin: float
    reason: str


@dataclass
class AccountSnapshot:
    """Point-in-time view of one account's positions and equity"""
    positions: List[Position] = field(default_factory=list)
    total_equity: float = 0.0
    free_balance: float = 0.0
    fetched_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        seen = set()
        for position in self.positions:
            if position.key in seen:
                raise ValueError(f"Duplicate position for {position.key} in snapshot")
            seen.add(position.key)

    def by_symbol(self) -> Dict[CanonicalSymbol, Position]:
        return {p.key: p for p in self.positions}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "positions": [p.to_dict() for p in self.positions],
            "total_equity": self.total_equity,
            "free_balance": self.free_balance,
            "fetched_at": self.fetched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountSnapshot":
        """Create from dictionary"""
        return cls(
            positions=[Position.from_dict(p) for p in data.get("positions", [])],
            total_equity=float(data.get("total_equity", 0.0)),
            free_balance=float(data.get("free_balance", 0.0)),
            fetched_at=datetime.fromisoformat(data["fetched_at"]) if data.get("fetched_at") else datetime.now(),
        )


@dataclass
class CalculationResult:
    """Output of one target calculation"""
    targets: List[TargetPosition]
    dropped: List[DroppedPosition]
    scaling_factor: float
    trader_total_margin: float

    @property
    def total_margin(self) -> float:
        return sum(t.margin for t in self.targets)


@dataclass(frozen=True)
class OpenAction:
    """Open a freshly scaled position"""
    target: TargetPosition

    @property
    def symbol(self) -> str:
        return self.target.symbol

    @property
    def reason(self) -> str:
        return self.target.reason


@dataclass(frozen=True)
class CloseAction:
    """Close a follower position"""
    position: Position
    reason: str

    @property
    def symbol(self) -> str:
        return self.position.symbol


Action = Union[OpenAction, CloseAction]


@dataclass
class DiffResult:
    """Actions needed to bring the follower in line with the targets"""
    to_open: List[OpenAction] = field(default_factory=list)
    to_close: List[CloseAction] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_open and not self.to_close

    def actions(self) -> Tuple[Action, ...]:
        """All closes first, then all opens"""
        return tuple(self.to_close) + tuple(self.to_open)


@dataclass
class ExecutionResult:
    """Outcome of one submitted action"""
    action: Action
    success: bool
    reference: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        kind = "open" if isinstance(self.action, OpenAction) else "close"
        return {
            "kind": kind,
            "symbol": self.action.symbol,
            "reason": self.action.reason,
            "success": self.success,
            "reference": self.reference,
            "error": self.error,
        }


class PassStatus(str, Enum):
    """How a sync pass ended"""
    EXECUTED = "executed"   # ran through diff and execution
    SKIPPED = "skipped"     # trader had not traded since the last pass
    ABORTED = "aborted"     # a fetch failed
    BUSY = "busy"           # dropped because a pass was already running


@dataclass
class PassResult:
    """One entry of the per-pass result stream"""
    pass_number: int
    status: PassStatus
    actions_executed: int = 0
    errors: List[str] = field(default_factory=list)
    results: List[ExecutionResult] = field(default_factory=list)
    dropped: List[DroppedPosition] = field(default_factory=list)
    follower_equity: Optional[float] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def failed_actions(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "pass_number": self.pass_number,
            "status": self.status.value,
            "actions_executed": self.actions_executed,
            "errors": list(self.errors),
            "results": [r.to_dict() for r in self.results],
            "dropped": [{"symbol": d.symbol, "margin": d.margin, "reason": d.reason} for d in self.dropped],
            "follower_equity": self.follower_equity,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
