"""Shared fixtures for DLMM tests."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from dlmm.config.schema import Config


SMALL_CONFIG = {
    'pair': {'x_symbol': 'X', 'y_symbol': 'Y'},
    'starting_prices': {'x_usd': 100.0, 'y_usd': 1.0},
    'grid': {'bin_step_bps': 10, 'range_bins': {'left': -5, 'right': 5}, 'active_id': 0},
    'liquidity': {'shape': 'Curve', 'curve_sigma_bins': 16, 'inventory': {'x_total': 100.0, 'y_total': 100.0}},
    'fees': {'base_factor': 1.0, 'base_fee_power': 0, 'variable_control': 1.0, 'max_fee_rate': 0.5},
    'runtime': {
        'duration_sec': 60,
        'seed': 1,
        'trade_arrival_lambda_per_sec': 1.0,
        'trade_size_lognorm': {'mu_log': -1.0, 'sigma_log': 1.0},
        'buy_probability': 0.5,
        'force_bin_depletion': True,
        'stream': True,
    },
    'advanced_defaults': {'vol_filter_t_f_sec': 1.0, 'vol_decay_t_d_sec': 5.0, 'decay_factor_r': 0.5},
}


def make_config(**overrides) -> Config:
    """Small test config; overrides use dot paths, e.g. make_config(**{'grid.active_id': 3})."""
    config = Config.from_dict(SMALL_CONFIG)
    for path, value in overrides.items():
        parts = path.split('.')
        obj = config
        for part in parts[:-1]:
            obj = getattr(obj, part)
        setattr(obj, parts[-1], value)
    return config


@pytest.fixture
def small_config() -> Config:
    return make_config()
