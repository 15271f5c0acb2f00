"""
Sync Scheduler

Runs the replication pass on a fixed interval:

    fetch -> calculate -> diff -> execute -> record baseline

At most one pass runs at a time. A tick that arrives while a pass is still
in flight is dropped (reported as BUSY), never queued. Collaborator failures
end the pass as ABORTED and the next tick starts fresh.

Usage:
    scheduler = SyncScheduler(source, executor)
    scheduler.add_listener(print)
    handle = scheduler.start({"trader_address": ..., "follower_address": ...})
    ...
    scheduler.stop()
"""

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, Union

from copytrade.config.schema import SyncConfig, build_config
from copytrade.errors import ExecutionFailure, SchedulerStateError, SourceUnavailable
from copytrade.logging_config import PassContext
from copytrade.venues import Venue

from .baseline_store import JsonBaselineStore
from .calculator import TargetPositionCalculator
from .diff import PositionDiffEngine
from .dry_run import DryRunExecutor
from .interfaces import OrderExecutor, PositionSource
from .models import (
    AccountSnapshot,
    Action,
    CloseAction,
    ExecutionResult,
    PassResult,
    PassStatus,
)

logger = logging.getLogger(__name__)

PassListener = Callable[[PassResult], Any]


@dataclass
class SyncState:
    """Mutable state of one monitoring session, owned by the scheduler"""
    last_trader_snapshot: Optional[AccountSnapshot] = None
    last_trade_timestamp: Optional[int] = None
    timestamp_recorded: bool = False
    is_running: bool = False


@dataclass
class SyncStats:
    """Counters across all passes of a session"""
    passes: int = 0
    executed: int = 0
    skipped: int = 0
    aborted: int = 0
    busy: int = 0
    positions_opened: int = 0
    positions_closed: int = 0
    failed_actions: int = 0
    errors: int = 0
    last_pass_at: Optional[datetime] = None

    def record(self, result: PassResult) -> None:
        self.passes += 1
        self.last_pass_at = result.finished_at

        if result.status == PassStatus.EXECUTED:
            self.executed += 1
        elif result.status == PassStatus.SKIPPED:
            self.skipped += 1
        elif result.status == PassStatus.ABORTED:
            self.aborted += 1
            self.errors += 1
        elif result.status == PassStatus.BUSY:
            self.busy += 1

        for r in result.results:
            if not r.success:
                self.failed_actions += 1
                self.errors += 1
            elif isinstance(r.action, CloseAction):
                self.positions_closed += 1
            else:
                self.positions_opened += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passes": self.passes,
            "executed": self.executed,
            "skipped": self.skipped,
            "aborted": self.aborted,
            "busy": self.busy,
            "positions_opened": self.positions_opened,
            "positions_closed": self.positions_closed,
            "failed_actions": self.failed_actions,
            "errors": self.errors,
            "last_pass_at": self.last_pass_at.isoformat() if self.last_pass_at else None,
        }


class RepeatingTask:
    """
    Fires a coroutine function every ``interval`` seconds.

    Each tick spawns the callback as its own task so ticks keep arriving
    while a slow call is in flight. ``stop`` cancels future ticks only;
    calls already running finish on their own.
    """

    def __init__(self, callback: Callable[[], Awaitable[Any]], interval: float, name: str = "repeating-task"):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.callback = callback
        self.interval = interval
        self.name = name
        self._ticker: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def is_active(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def start(self) -> "RepeatingTask":
        if self.is_active:
            return self
        self._ticker = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self

    def stop(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def wait_idle(self) -> None:
        """Wait for calls already started to finish"""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _run(self) -> None:
        while True:
            self._fire()
            await asyncio.sleep(self.interval)

    def _fire(self) -> None:
        task = asyncio.get_running_loop().create_task(self.callback())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)


class SyncScheduler:
    """
    Keeps a follower's book in line with a trader's positions.

    Args:
        source: Where account snapshots and trade timestamps come from
        executor: Where follower orders go (replaced by DryRunExecutor when
            the config asks for a dry run)
        baseline_store: Optional persistence for the trader baseline; built
            from ``baseline_path`` in the config when not given
        history_size: Number of recent pass results kept in ``history``
    """

    def __init__(
        self,
        source: PositionSource,
        executor: Optional[OrderExecutor] = None,
        baseline_store: Optional[JsonBaselineStore] = None,
        history_size: int = 100,
    ):
        self.source = source
        self.executor = executor
        self.baseline_store = baseline_store

        self.config: Optional[SyncConfig] = None
        self.state = SyncState()
        self.stats = SyncStats()
        self.history: Deque[PassResult] = deque(maxlen=history_size)

        self.calculator = TargetPositionCalculator()
        self.diff_engine = PositionDiffEngine()

        self._listeners: List[PassListener] = []
        self._handle: Optional[RepeatingTask] = None
        self._pass_counter = 0

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def configure(self, config: Union[SyncConfig, Dict[str, Any]]) -> SyncConfig:
        """
        Validate settings and reset session state without scheduling.

        Raises:
            ConfigurationInvalid: if the settings are rejected
            SchedulerStateError: if monitoring is active or a pass from a
                stopped session is still in flight
        """
        if self.is_monitoring:
            raise SchedulerStateError("Cannot reconfigure while monitoring")
        if self.state.is_running:
            raise SchedulerStateError("Previous pass still running; await wait_idle() before restarting")

        if not isinstance(config, SyncConfig):
            config = build_config(dict(config))

        self.config = config
        self.calculator = TargetPositionCalculator(min_position_margin=config.min_position_margin)
        self.diff_engine = PositionDiffEngine(
            change_threshold_percent=config.position_change_threshold_percent,
            retain_below_minimum=config.retain_below_minimum,
        )

        if config.dry_run:
            logger.warning("Dry run enabled - no orders will be submitted")
            self.executor = DryRunExecutor()
        elif self.executor is None:
            raise SchedulerStateError("An order executor is required unless dry_run is set")

        if self.baseline_store is None and config.baseline_path:
            self.baseline_store = JsonBaselineStore(config.baseline_path)

        self.state = SyncState()
        self.stats = SyncStats()
        self.history.clear()
        self._pass_counter = 0

        if self.baseline_store is not None:
            self.state.last_trader_snapshot = self.baseline_store.load()

        return config

    def start(self, config: Union[SyncConfig, Dict[str, Any]]) -> RepeatingTask:
        """
        Validate the config and start syncing every ``sync_interval_seconds``.

        The first pass fires immediately. Must be called from a running
        event loop.
        """
        if self.is_monitoring:
            raise SchedulerStateError("Sync scheduler already running")

        config = self.configure(config)

        logger.info(
            f"Starting copy sync: trader {config.trader_address} ({config.trader_venue.value}) -> "
            f"follower {config.follower_address} ({config.follower_venue.value}), "
            f"every {config.sync_interval_seconds}s"
        )

        self._handle = RepeatingTask(self.run_pass, config.sync_interval_seconds, name="copy-sync").start()
        return self._handle

    def stop(self) -> None:
        """
        Stop scheduling passes. A pass already running finishes, and the
        scheduler cannot be started again until it has.
        """
        if self._handle is None:
            logger.warning("Sync scheduler not running")
            return

        self._handle.stop()
        logger.info(f"Copy sync stopped after {self.stats.passes} passes")

    @property
    def is_monitoring(self) -> bool:
        return self._handle is not None and self._handle.is_active

    # =========================================================================
    # RESULT STREAM
    # =========================================================================

    def add_listener(self, callback: PassListener) -> None:
        """Register a sync or async callable invoked with every PassResult"""
        self._listeners.append(callback)

    def remove_listener(self, callback: PassListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def _publish(self, result: PassResult) -> None:
        self.history.append(result)
        for callback in list(self._listeners):
            try:
                outcome = callback(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(f"Pass listener {callback!r} failed")

    def get_stats(self) -> Dict[str, Any]:
        """Counters plus current state, for display"""
        baseline = self.state.last_trader_snapshot
        return {
            **self.stats.to_dict(),
            "monitoring": self.is_monitoring,
            "is_running": self.state.is_running,
            "has_baseline": baseline is not None,
            "baseline_positions": len(baseline.positions) if baseline else 0,
            "last_trade_timestamp": self.state.last_trade_timestamp,
        }

    # =========================================================================
    # PASS
    # =========================================================================

    async def run_pass(self) -> PassResult:
        """
        Run one sync pass, or report BUSY if one is already running.

        Never raises for collaborator failures; the outcome is in the
        returned PassResult and in the result stream.
        """
        if self.config is None:
            raise SchedulerStateError("Sync scheduler is not configured")

        self._pass_counter += 1
        result = PassResult(pass_number=self._pass_counter, status=PassStatus.BUSY)

        if self.state.is_running:
            logger.debug(f"Pass {result.pass_number} dropped: previous pass still running")
            return await self._finish(result)

        self.state.is_running = True
        try:
            with PassContext(result.pass_number, trader=self.config.trader_address):
                await self._sync(result)
        except SourceUnavailable as e:
            result.status = PassStatus.ABORTED
            result.errors.append(e.message)
            logger.error(f"Pass {result.pass_number} aborted: {e.message}")
        except Exception as e:
            result.status = PassStatus.ABORTED
            result.errors.append(str(e))
            logger.exception(f"Pass {result.pass_number} aborted by unexpected error")
        finally:
            self.state.is_running = False

        return await self._finish(result)

    async def _finish(self, result: PassResult) -> PassResult:
        result.finished_at = datetime.now()
        self.stats.record(result)
        await self._publish(result)
        return result

    async def _sync(self, result: PassResult) -> None:
        config = self.config

        follower = await self._fetch_snapshot(config.follower_address, config.follower_venue)
        result.follower_equity = follower.total_equity

        if self.state.timestamp_recorded:
            latest_trade = await self._fetch_latest_trade(config.trader_address, config.trader_venue)
            if latest_trade == self.state.last_trade_timestamp:
                result.status = PassStatus.SKIPPED
                logger.debug("No new trader activity, skipping diff")
                return
            trader, follower = await asyncio.gather(
                self._fetch_snapshot(config.trader_address, config.trader_venue),
                self._fetch_snapshot(config.follower_address, config.follower_venue),
            )
        else:
            trader, follower, latest_trade = await asyncio.gather(
                self._fetch_snapshot(config.trader_address, config.trader_venue),
                self._fetch_snapshot(config.follower_address, config.follower_venue),
                self._fetch_latest_trade(config.trader_address, config.trader_venue),
            )
        result.follower_equity = follower.total_equity

        previous = self.state.last_trader_snapshot
        self._record_baseline(trader)

        capital = config.copy_balance if config.copy_balance is not None else follower.total_equity
        plan = self.calculator.plan(trader.positions, capital, config.max_scaling_factor)
        result.dropped = plan.dropped

        diff = self.diff_engine.diff(
            follower.positions,
            plan.targets,
            trader.positions,
            previous.positions if previous is not None else None,
        )

        logger.info(
            f"Trader {len(trader.positions)} / follower {len(follower.positions)} positions, "
            f"scale {plan.scaling_factor * 100:.2f}%: "
            f"{len(diff.to_close)} to close, {len(diff.to_open)} to open"
        )

        for action in diff.actions():
            outcome = await self._submit(action)
            result.results.append(outcome)
            if outcome.success:
                result.actions_executed += 1
            else:
                result.errors.append(f"{action.symbol}: {outcome.error}")

        self.state.last_trade_timestamp = latest_trade
        self.state.timestamp_recorded = True
        result.status = PassStatus.EXECUTED

    def _record_baseline(self, snapshot: AccountSnapshot) -> None:
        self.state.last_trader_snapshot = snapshot
        if self.baseline_store is None:
            return
        try:
            self.baseline_store.save(snapshot)
        except OSError as e:
            logger.warning(f"Could not persist trader baseline: {e}")

    async def _fetch_snapshot(self, address: str, venue: Venue) -> AccountSnapshot:
        try:
            return await self.source.fetch_account_snapshot(address, venue)
        except SourceUnavailable:
            raise
        except Exception as e:
            raise SourceUnavailable(f"Snapshot fetch failed for {address}: {e}", address, venue.value) from e

    async def _fetch_latest_trade(self, address: str, venue: Venue) -> Optional[int]:
        try:
            return await self.source.fetch_latest_trade_timestamp(address, venue)
        except SourceUnavailable:
            raise
        except Exception as e:
            raise SourceUnavailable(f"Trade timestamp fetch failed for {address}: {e}", address, venue.value) from e

    async def _submit(self, action: Action) -> ExecutionResult:
        """Submit one action; failures stay local to it"""
        try:
            if isinstance(action, CloseAction):
                outcome = await self.executor.close(action.position)
            else:
                outcome = await self.executor.open(action.target)
        except ExecutionFailure as e:
            logger.error(f"{action.symbol}: {e.message}")
            return ExecutionResult(action, success=False, reference=e.reference, error=e.message)
        except Exception as e:
            logger.exception(f"{action.symbol}: executor raised")
            return ExecutionResult(action, success=False, error=str(e))

        if outcome.success:
            verb = "Closed" if isinstance(action, CloseAction) else "Opened"
            logger.info(f"{verb} {action.symbol} ({action.reason}) ref={outcome.reference}")
        else:
            logger.error(f"Failed {action.symbol} ({action.reason}): {outcome.error}")

        return ExecutionResult(
            action,
            success=outcome.success,
            reference=outcome.reference,
            error=outcome.error,
        )
