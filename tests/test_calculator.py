"""
test_calculator.py: Tests for scaling trader positions to follower capital.

Tests:
    1. Proportional scaling below capital parity
    2. Scaling factor capped at max_scale (never scale up)
    3. Minimum margin filter
    4. Non-replicable and degenerate inputs
    5. Protective levels carry over, idempotency
"""

import pytest

from copytrade.copy_trading import Position, Side, TargetPositionCalculator


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _pos(
    symbol="BTC",
    side=Side.LONG,
    size=1.0,
    entry_price=10_000.0,
    leverage=10.0,
    margin=None,
    **kwargs,
) -> Position:
    if margin is None:
        margin = size * entry_price / leverage
    return Position(
        symbol=symbol,
        side=side,
        size=size,
        entry_price=entry_price,
        leverage=leverage,
        margin=margin,
        **kwargs,
    )


# ─── Scaling ─────────────────────────────────────────────────────────────────

class TestScaling:
    def test_half_capital_halves_position(self):
        calc = TargetPositionCalculator(min_position_margin=20)
        plan = calc.plan([_pos()], follower_capital=500)

        assert plan.scaling_factor == pytest.approx(0.5)
        assert len(plan.targets) == 1
        target = plan.targets[0]
        assert target.size == pytest.approx(0.5)
        assert target.margin == pytest.approx(500)
        assert target.side == Side.LONG
        assert target.entry_price == 10_000.0
        assert target.leverage == 10.0

    def test_excess_capital_never_scales_up(self):
        trader = _pos()
        calc = TargetPositionCalculator(min_position_margin=20)
        plan = calc.plan([trader], follower_capital=5_000)

        assert plan.scaling_factor == 1.0
        target = plan.targets[0]
        assert target.size == trader.size
        assert target.margin == trader.margin

    def test_max_scale_caps_factor(self):
        calc = TargetPositionCalculator(min_position_margin=0)
        plan = calc.plan([_pos()], follower_capital=800, max_scale=0.25)

        assert plan.scaling_factor == pytest.approx(0.25)
        assert plan.targets[0].margin == pytest.approx(250)

    def test_factor_uses_total_trader_margin(self):
        positions = [
            _pos("BTC", size=1.0),                                   # margin 1000
            _pos("ETH", size=10.0, entry_price=300.0, leverage=3.0),  # margin 1000
        ]
        calc = TargetPositionCalculator(min_position_margin=0)
        plan = calc.plan(positions, follower_capital=1_000)

        assert plan.trader_total_margin == pytest.approx(2_000)
        assert plan.scaling_factor == pytest.approx(0.5)
        assert [t.symbol for t in plan.targets] == ["BTC", "ETH"]
        assert plan.total_margin == pytest.approx(1_000)

    def test_target_never_exceeds_trader(self):
        # Stale margin larger than size implies: size clamp keeps the copy bounded
        trader = _pos(size=0.5, margin=1_000)
        calc = TargetPositionCalculator(min_position_margin=0)
        target = calc.calculate([trader], follower_capital=10_000)[0]

        assert target.size <= trader.size
        assert target.margin <= trader.margin

    def test_reason_mentions_scale(self):
        calc = TargetPositionCalculator()
        target = calc.calculate([_pos()], follower_capital=500)[0]
        assert target.reason == "scaled 50.0% of trader position"


# ─── Filtering ───────────────────────────────────────────────────────────────

class TestMinimumMargin:
    def test_targets_below_minimum_are_dropped(self):
        positions = [
            _pos("BTC", size=1.0),                       # margin 1000
            _pos("SOL", size=1.0, entry_price=100.0),    # margin 10
        ]
        calc = TargetPositionCalculator(min_position_margin=20)
        plan = calc.plan(positions, follower_capital=505)

        assert [t.symbol for t in plan.targets] == ["BTC"]
        assert len(plan.dropped) == 1
        assert plan.dropped[0].symbol == "SOL"
        assert plan.dropped[0].margin == pytest.approx(5)

    def test_every_target_meets_minimum(self):
        positions = [_pos(f"C{i}", size=i / 10) for i in range(1, 8)]
        calc = TargetPositionCalculator(min_position_margin=50)
        for target in calc.calculate(positions, follower_capital=700):
            assert target.margin >= 50

    def test_negative_minimum_rejected(self):
        with pytest.raises(ValueError):
            TargetPositionCalculator(min_position_margin=-1)


class TestDegenerateInputs:
    def test_zero_margin_positions_are_ignored(self):
        positions = [_pos("BTC"), _pos("ETH", margin=0.0)]
        calc = TargetPositionCalculator(min_position_margin=0)
        plan = calc.plan(positions, follower_capital=500)

        assert [t.symbol for t in plan.targets] == ["BTC"]
        assert plan.scaling_factor == pytest.approx(0.5)

    def test_no_trader_margin_returns_empty(self):
        calc = TargetPositionCalculator()
        plan = calc.plan([_pos(margin=0.0)], follower_capital=500)
        assert plan.targets == []
        assert plan.scaling_factor == 0.0

    def test_no_positions_returns_empty(self):
        assert TargetPositionCalculator().calculate([], follower_capital=500) == []

    @pytest.mark.parametrize("capital", [0, -100])
    def test_no_capital_returns_empty(self, capital):
        plan = TargetPositionCalculator().plan([_pos()], follower_capital=capital)
        assert plan.targets == []
        assert plan.dropped == []


# ─── Carry-over ──────────────────────────────────────────────────────────────

class TestCarryOver:
    def test_protective_levels_copied(self):
        trader = _pos(side=Side.SHORT, stop_loss=11_000.0, take_profit=9_000.0)
        target = TargetPositionCalculator().calculate([trader], follower_capital=500)[0]

        assert target.side == Side.SHORT
        assert target.stop_loss == 11_000.0
        assert target.take_profit == 9_000.0

    def test_calculation_is_idempotent(self):
        positions = [_pos("BTC"), _pos("ETH", size=10.0, entry_price=300.0, leverage=3.0)]
        calc = TargetPositionCalculator()

        first = calc.plan(positions, follower_capital=1_234)
        second = calc.plan(positions, follower_capital=1_234)

        assert first == second
