"""Unit tests for the price grid, fee model, volatility accumulator and depletion policy.

These tests pin the reference formulas:
- price(j) = P0 * (1 + step)^j
- base / variable / capped total fee and composition fee
- accumulator filter, decay and reset windows
- tri-state freeze machine
"""

import math
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from dlmm.engine.grid import (
    BASIS_POINT_MAX,
    base_price_from_usd,
    min_price_sell_x,
    min_price_sell_y,
    price_at,
)
from dlmm.engine.fees import OFFSET, SCALE, FeeModel, SwapDirection, composition_fee
from dlmm.engine.volatility import VolatilityAccumulator, VolatilityState, update_volatility_accumulator
from dlmm.engine.depletion import DepletionPolicy, FreezeState, next_id_with_depletion

from conftest import make_config


class TestPriceGrid:
    """Tests for the geometric price law."""

    def test_index_zero_is_reference_price(self):
        for bps in (0, 1, 10, 25, 100):
            assert price_at(0, 205.0, bps) == pytest.approx(205.0)

    def test_geometric_factor(self):
        step = 10 / BASIS_POINT_MAX
        for k in (-7, -1, 1, 3, 12):
            assert price_at(k, 1.0, 10) == pytest.approx((1 + step) ** k, rel=1e-12)

    def test_overflowing_power_is_infinite(self):
        """Far bins on a wide step saturate to inf instead of raising."""
        assert price_at(1100, 1.0, 10000) == math.inf
        assert price_at(-1100, 1.0, 10000) == 0.0

    def test_negative_bin_step_clamped(self):
        """Negative steps are treated as zero."""
        assert price_at(5, 2.0, -25) == pytest.approx(2.0)

    def test_base_price_from_usd(self):
        assert base_price_from_usd(205.0, 1.0) == pytest.approx(205.0)
        assert base_price_from_usd(205.0, 0.0) == 1.0
        assert base_price_from_usd(0.0, 1.0) == 1.0

    def test_price_impact_floors(self):
        spot, bps = 100.0, 100
        assert min_price_sell_x(spot, bps) == pytest.approx(99.0)
        assert min_price_sell_y(spot, bps) == pytest.approx(101.0101, rel=1e-5)
        assert min_price_sell_y(spot, bps) == pytest.approx(spot * BASIS_POINT_MAX / (BASIS_POINT_MAX - bps))

    def test_price_impact_negative_bps_clamped(self):
        assert min_price_sell_x(100.0, -50) == pytest.approx(100.0)
        assert min_price_sell_y(100.0, -50) == pytest.approx(100.0)


class TestFeeModel:
    """Tests for base, variable and total fee rates."""

    def _model(self, **kwargs):
        params = dict(bin_step_bps=10, base_factor=1.0, base_fee_power=0, variable_control=1.0, max_fee_rate=0.5)
        params.update(kwargs)
        return FeeModel(**params)

    def test_base_fee_rate(self):
        """B=1, step=10bps, power=0 gives 1%."""
        assert self._model().base_fee_rate() == pytest.approx(0.01)

    def test_base_fee_power(self):
        assert self._model(base_fee_power=2).base_fee_rate() == pytest.approx(1.0)

    def test_base_fee_floored_at_zero(self):
        assert self._model(base_factor=-1.0).base_fee_rate() == 0.0

    def test_variable_fee_floor_is_offset_over_scale(self):
        """With an empty accumulator only the additive floor remains."""
        assert self._model().variable_fee_rate(0.0) == pytest.approx(OFFSET / SCALE)

    def test_variable_fee_grows_with_accumulator(self):
        model = self._model()
        assert model.variable_fee_rate(2 * SCALE) > model.variable_fee_rate(SCALE) > 0

    def test_variable_fee_formula(self):
        model = self._model(variable_control=2.0)
        va = 1_000_000.0
        term = va * 0.001
        assert model.variable_fee_rate(va) == pytest.approx((term * term * 2.0 + OFFSET) / SCALE)

    def test_total_fee_capped(self):
        model = self._model()
        for base, variable in ((0, 0), (0.1, 0.1), (1, 1), (0.3, 0.4)):
            assert model.total_fee_rate(base, variable) <= model.max_fee_rate

    def test_total_fee_uncapped_below_cap(self):
        assert self._model().total_fee_rate(0.1, 0.2) == pytest.approx(0.3)

    def test_fee_breakdown_protocol_share(self):
        """Protocol takes its share of the variable part left after the cap."""
        rates = self._model(protocol_fee_pct=0.1).compute_fee_rates(0.0)
        assert rates.base == pytest.approx(0.01)
        assert rates.total == pytest.approx(0.5)
        assert rates.protocol == pytest.approx(0.049)
        assert rates.lp == pytest.approx(0.451)

    def test_composition_fee(self):
        a, r = 1000.0, 0.02
        assert composition_fee(a, r) == pytest.approx(a * r * (1 + r))

    def test_composition_fee_monotonic_in_rate(self):
        rates = [0.0, 0.001, 0.01, 0.05, 0.2]
        fees = [composition_fee(500.0, r) for r in rates]
        assert fees == sorted(fees)
        assert len(set(fees)) == len(fees)

    def test_fee_for_amount_respects_fee_on_fee(self):
        assert self._model(fee_on_fee=True).fee_for_amount(1000.0, 0.02) == pytest.approx(20.4)
        assert self._model(fee_on_fee=False).fee_for_amount(1000.0, 0.02) == pytest.approx(20.0)

    def test_bin_fee_rate_defaults_to_base(self):
        assert self._model().bin_fee_rate(0, SwapDirection.BUY, None) == pytest.approx(0.01)

    def test_bin_fee_rate_clamped(self):
        model = self._model(max_fee_rate=0.05)
        high = model.bin_fee_rate(0, SwapDirection.SELL, None, fee_provider=lambda j, d, b: 0.9)
        low = model.bin_fee_rate(0, SwapDirection.SELL, None, fee_provider=lambda j, d, b: -1.0, fee_min=0.001)
        assert high == pytest.approx(0.05)
        assert low == pytest.approx(0.001)

    def test_from_config(self):
        model = FeeModel.from_config(make_config())
        assert model.bin_step_bps == 10
        assert model.max_fee_rate == 0.5


class TestVolatilityAccumulator:
    """Tests for the accumulator state machine (t_f=1, t_d=5, R=0.5)."""

    def _update(self, prev, n, now, last):
        return update_volatility_accumulator(prev, n, now, last, filter_time=1.0, decay_time=5.0, decay_factor=0.5)

    def test_first_event_is_positive(self):
        assert self._update(0.0, 3, 1.0, None) > 0

    def test_first_event_clamped_to_scale(self):
        assert self._update(0.0, 3, 1.0, None) == SCALE

    def test_within_filter_window_no_decay(self):
        """dt <= t_f adds the new term to the unchanged previous value."""
        assert self._update(1000.0, 0, 1.0, 0.5) == pytest.approx(1000.0)

    def test_within_filter_window_adds_new_term(self):
        """A crossing inside t_f stacks on the previous value and saturates at SCALE."""
        assert self._update(0.25, 1, 1.0, 0.5) == pytest.approx(0.25 + OFFSET)
        assert self._update(1000.0, 1, 1.0, 0.5) == SCALE

    def test_within_decay_window_multiplies_by_r(self):
        assert self._update(1000.0, 0, 3.0, 0.5) == pytest.approx(500.0)

    def test_past_decay_window_resets(self):
        v1 = self._update(0.0, 3, 1.0, None)
        v2 = self._update(v1, 0, 3.0, 0.5)
        v3 = self._update(v2, 0, 10.0, 0.5)
        assert v3 == 0

    def test_reset_then_new_term(self):
        """After a reset the result is exactly the new (clamped) term."""
        assert self._update(12345.0, 10, 10.0, 0.5) == min(SCALE, 10 * OFFSET)

    def test_bins_crossed_sign_ignored(self):
        assert self._update(0.0, -1, 1.0, 0.0) == self._update(0.0, 1, 1.0, 0.0)

    def test_bounded_to_scale(self):
        assert self._update(SCALE, 5, 1.0, 0.9) == SCALE

    def test_parameters_clamped(self):
        engine = VolatilityAccumulator(filter_time=0.0, decay_time=-1.0, decay_factor=3.0)
        assert engine.filter_time == pytest.approx(0.001)
        assert engine.decay_time == engine.filter_time
        assert engine.decay_factor == 1.0

    def test_engine_update_records_event_time(self):
        engine = VolatilityAccumulator.from_config(make_config())
        state = engine.update(VolatilityState(), 1, 2.5)
        assert state.last_event_time == 2.5
        assert state.accumulator == pytest.approx(OFFSET)


class TestDepletion:
    """Tests for the freeze machine."""

    def test_stateless_rule_moves_inside_range(self):
        inside = next_id_with_depletion(0, 1, -1, 1, True)
        assert inside.frozen is False
        assert inside.id == 1

    def test_stateless_rule_freezes_at_edge(self):
        out = next_id_with_depletion(1, 1, -1, 1, True)
        assert out.frozen is True
        assert out.id == 1

    def test_stateless_rule_without_force(self):
        move = next_id_with_depletion(1, 4, -1, 1, False)
        assert move.id == 5
        assert move.frozen is False

    def test_no_force_always_moves(self):
        decision = DepletionPolicy(-1, 1, force_bin_depletion=False).apply(1, FreezeState.IN_RANGE, 5)
        assert decision.active_id == 6
        assert decision.moved and decision.update_volatility

    def test_exit_above_freezes_and_updates_volatility(self):
        decision = DepletionPolicy(-1, 1).apply(1, FreezeState.IN_RANGE, 2)
        assert decision.active_id == 1
        assert decision.freeze is FreezeState.FROZEN_ABOVE
        assert not decision.moved
        assert decision.update_volatility

    def test_exit_below(self):
        decision = DepletionPolicy(-1, 1).apply(-1, FreezeState.IN_RANGE, -3)
        assert decision.freeze is FreezeState.FROZEN_BELOW
        assert decision.active_id == -1

    def test_frozen_stays_frozen_without_volatility_update(self):
        decision = DepletionPolicy(-1, 1).apply(1, FreezeState.FROZEN_ABOVE, 1)
        assert decision.freeze is FreezeState.FROZEN_ABOVE
        assert decision.active_id == 1
        assert not decision.update_volatility

    def test_frozen_unfreezes_when_back_in_range(self):
        decision = DepletionPolicy(-1, 1).apply(1, FreezeState.FROZEN_ABOVE, -1)
        assert decision.freeze is FreezeState.IN_RANGE
        assert decision.active_id == 0
        assert decision.moved and decision.update_volatility

    def test_out_of_range_start_infers_direction(self):
        """A starting id above the range freezes above without moving."""
        policy = DepletionPolicy(-5, 5)
        first = policy.apply(10, FreezeState.IN_RANGE, -10)
        assert first.freeze is FreezeState.FROZEN_ABOVE
        assert first.active_id == 10
        assert not first.update_volatility
        second = policy.apply(first.active_id, first.freeze, -10)
        assert second.active_id == 0
        assert second.freeze is FreezeState.IN_RANGE

    def test_out_of_range_start_below(self):
        decision = DepletionPolicy(-5, 5).apply(-9, FreezeState.IN_RANGE, 1)
        assert decision.freeze is FreezeState.FROZEN_BELOW

    def test_display_id(self):
        policy = DepletionPolicy(-5, 5)
        assert policy.display_id(5, FreezeState.FROZEN_ABOVE) == 6
        assert policy.display_id(-5, FreezeState.FROZEN_BELOW) == -6
        assert policy.display_id(2, FreezeState.IN_RANGE) == 2
