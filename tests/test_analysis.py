"""Tests for range calculators, presets, exports and sanity checks."""

import json
import math
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pandas as pd

from dlmm.analysis.ranges import MAX_LISTED_BINS, range_to_bins, suggest_range
from dlmm.analysis.scenarios import SCENARIO_LIBRARY, ScenarioRunner, format_comparison_table
from dlmm.engine.liquidity import BinLiquidityPool
from dlmm.reporting.export import (
    build_liquidity_plan,
    export_csv,
    export_json,
    export_liquidity_plan,
    resample_series,
    series_to_frame,
)
from dlmm.simulation.runner import SimulationRunner
from dlmm.simulation.state import SimPoint
from dlmm.validation.sanity_checks import (
    ConfigValidationError,
    SanityChecker,
    require_valid_config,
    validate_simulation_results,
)

from conftest import make_config


class TestSuggestRange:
    """Tests for the volatility band helper."""

    def test_one_sigma_band(self):
        suggestion = suggest_range(100.0, 10.0, 0.68, 10)
        assert suggestion.lower == pytest.approx(90.0)
        assert suggestion.upper == pytest.approx(110.0)
        assert suggestion.bins == math.ceil(math.log(110.0 / 90.0) / math.log1p(0.001))
        assert suggestion.bins == 201

    def test_two_sigma_band(self):
        suggestion = suggest_range(100.0, 10.0, 0.95, 10)
        assert suggestion.lower == pytest.approx(80.0)
        assert suggestion.upper == pytest.approx(120.0)

    def test_degenerate_inputs(self):
        assert suggest_range(100.0, 10.0, 0.68, 0) is None
        assert suggest_range(100.0, 60.0, 0.95, 10) is None
        assert suggest_range(0.0, 10.0, 0.68, 10) is None


class TestRangeToBins:
    """Tests for listing bins across a price range."""

    def test_counts_and_listing(self):
        breakdown = range_to_bins(100.0, 90.0, 110.0, 100)
        assert breakdown.num_bins == 20
        assert breakdown.price_factor == pytest.approx(1.01)
        assert breakdown.increment_price == pytest.approx(1.0)
        assert breakdown.increment_pct == pytest.approx(1.0)
        assert len(breakdown.bins) == 19

    def test_bins_contiguous_and_clipped(self):
        breakdown = range_to_bins(100.0, 90.0, 110.0, 100)
        for b in breakdown.bins:
            assert 90.0 <= b.low < b.high <= 110.0
        for a, b in zip(breakdown.bins, breakdown.bins[1:]):
            assert a.high == pytest.approx(b.low)

    def test_listing_limited(self):
        breakdown = range_to_bins(100.0, 1.0, 10000.0, 1)
        assert breakdown.num_bins > MAX_LISTED_BINS
        assert len(breakdown.bins) == MAX_LISTED_BINS

    def test_degenerate_inputs(self):
        assert range_to_bins(100.0, 110.0, 90.0, 10) is None
        assert range_to_bins(0.0, 90.0, 110.0, 10) is None
        assert range_to_bins(100.0, 90.0, 110.0, 0) is None


class TestScenarios:
    """Tests for presets and comparisons."""

    def test_presets_available(self):
        runner = ScenarioRunner(make_config())
        assert {'stables', 'majors', 'volatile'} <= set(runner.get_available_scenarios())
        assert set(runner.get_scenarios_by_category('stress_test')) == {'one_sided_buying', 'no_depletion'}

    def test_apply_preset_leaves_base_untouched(self):
        base = make_config()
        before = base.compute_hash()
        config = ScenarioRunner(base).apply_preset('stables')
        assert config.grid.bin_step_bps == 5
        assert config.fees.max_fee_rate == 0.01
        assert config.runtime.trade_size_lognorm.mu_log == -1.2
        assert base.compute_hash() == before

    def test_preset_grid_steps(self):
        runner = ScenarioRunner(make_config())
        steps = [runner.apply_preset(name).grid.bin_step_bps for name in ('stables', 'majors', 'volatile')]
        assert steps == [5, 25, 100]

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            ScenarioRunner(make_config()).apply_preset('nonexistent')

    def test_compare_scenarios(self):
        comparison = ScenarioRunner(make_config()).compare_scenarios(
            ['one_sided_buying', 'no_depletion'], random_seed=5
        )
        assert list(comparison.summary) == ['base', 'one_sided_buying', 'no_depletion']
        assert comparison.summary['one_sided_buying']['frozen_events'] > 0
        assert comparison.summary['no_depletion']['frozen_events'] == 0
        table = format_comparison_table(comparison)
        assert 'Base Case' in table
        assert len(table.splitlines()) == 5

    def test_compare_rejects_unknown_names(self):
        """A mistyped preset fails before any run instead of dropping a row."""
        with pytest.raises(ValueError, match='no_such_preset'):
            ScenarioRunner(make_config()).compare_scenarios(['majors', 'no_such_preset'], include_base=False)

    def test_library_overrides_resolve(self):
        """Every override path exists on the config."""
        runner = ScenarioRunner(make_config())
        for name in SCENARIO_LIBRARY:
            runner.apply_preset(name)


class TestExport:
    """Tests for CSV, JSON and chart data."""

    def test_series_frame(self):
        df = series_to_frame([SimPoint(1.0, 110.0), SimPoint(2.0, 90.0)], 100.0)
        assert list(df.columns) == ['t', 'price', 'price_norm']
        assert df['price_norm'].tolist() == pytest.approx([1.1, 0.9])

    def test_empty_series_frame(self):
        df = series_to_frame([], 100.0)
        assert list(df.columns) == ['t', 'price', 'price_norm']
        assert len(df) == 0

    def test_export_csv(self, tmp_path):
        result = SimulationRunner(make_config()).run()
        path = tmp_path / "series.csv"
        export_csv(result, str(path))
        df = pd.read_csv(path)
        assert list(df.columns) == ['t', 'price', 'price_norm']
        assert len(df) == len(result.series)

    def test_export_json(self, tmp_path):
        result = SimulationRunner(make_config()).run(max_events=10)
        path = tmp_path / "result.json"
        export_json(result, str(path))
        with open(path) as f:
            data = json.load(f)
        assert data['status'] == 'paused'
        assert len(data['series']) == 10
        assert data['config_hash'] == result.config.compute_hash()
        assert data['checkpoint']['active_id'] == result.final_state.active_id

    def test_resample_holds_last_price(self):
        series = [SimPoint(1.0, 100.0), SimPoint(2.0, 110.0)]
        df = resample_series(series, 4.0, 100.0, step_sec=1.0)
        assert df['price_norm'].tolist() == pytest.approx([1.0, 1.0, 1.1, 1.1, 1.1])
        assert df['t_min'].iloc[-1] == pytest.approx(4.0 / 60)

    def test_resample_caps_points(self):
        df = resample_series([SimPoint(1.0, 1.0)], 10000.0, 1.0, max_points=3000)
        assert len(df) == 3000
        assert df['t_min'].iloc[-1] == pytest.approx(10000.0 / 60)

    def test_liquidity_plan(self, tmp_path):
        config = make_config()
        plan = build_liquidity_plan(config, active_bin={'X': 9.0, 'Y': 900.0})
        assert plan['pair'] == {'xSymbol': 'X', 'ySymbol': 'Y'}
        assert plan['totalLiquidity'] == {'X': 100.0, 'Y': 100.0}
        assert plan['activeBin'] == {'X': 9.0, 'Y': 900.0}
        assert plan['tradeSizes']['pct1'] == pytest.approx(1.0)
        assert plan['tradeSizes']['pct10'] == pytest.approx(10.0)

        path = tmp_path / "plan.json"
        export_liquidity_plan(config, str(path))
        with open(path) as f:
            assert json.load(f)['activeBin'] == {'X': None, 'Y': None}


class TestSanityChecks:
    """Tests for config, pool and result checks."""

    def test_clean_config_has_no_findings(self):
        assert SanityChecker(make_config()).check_config_inputs() == []
        assert require_valid_config(make_config()) == []

    def test_active_id_outside_range_warns(self):
        findings = SanityChecker(make_config(**{'grid.active_id': 10})).check_config_inputs()
        assert [w.category for w in findings] == ['range']
        assert findings[0].severity == 'warning'

    def test_zero_bin_step_is_error(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            require_valid_config(make_config(**{'grid.bin_step_bps': 0}))
        assert any('Bin step' in w.message for w in exc_info.value.warnings)
        assert isinstance(exc_info.value, ValueError)

    def test_lenient_inputs_warn(self):
        config = make_config(**{
            'runtime.duration_sec': 0.5,
            'advanced_defaults.vol_decay_t_d_sec': 0.5,
            'fees.max_fee_rate': 0.001,
        })
        messages = [w.message for w in require_valid_config(config)]
        assert len(messages) == 3

    def test_pool_checks(self):
        pool = BinLiquidityPool.from_config(make_config())
        checker = SanityChecker(make_config())
        assert checker.check_pool(pool) == []
        pool.bin_at(2).y_quote = -1.0
        pool.bin_at(3).x_base = float('nan')
        categories = sorted(w.category for w in checker.check_pool(pool))
        assert categories == ['bounds', 'nan']

    def test_completed_run_is_clean(self):
        result = SimulationRunner(make_config()).run()
        assert validate_simulation_results(result) == []

    def test_failed_run_reported(self):
        runner = SimulationRunner(make_config())

        def failing_step(state, event):
            raise ValueError("bad event")

        runner.step = failing_step
        findings = validate_simulation_results(runner.run())
        assert [w.category for w in findings] == ['runtime']
        assert 'ValueError' in findings[0].details
