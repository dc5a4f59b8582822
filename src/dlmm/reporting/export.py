"""Export functionality for CSV and JSON."""

import json
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..config.schema import Config
from ..simulation.runner import SimulationResult
from ..simulation.state import SimPoint

MAX_CHART_POINTS = 3000
PLAN_TRADE_FRACTIONS = {'pct1': 0.01, 'pct5': 0.05, 'pct10': 0.10}


def series_to_frame(series: List[SimPoint], base_price: float) -> pd.DataFrame:
    """Series as a DataFrame with columns t, price, price_norm."""
    df = pd.DataFrame(
        {
            't': [p.t for p in series],
            'price': [p.price for p in series],
        },
        columns=['t', 'price'],
    )
    df['price_norm'] = df['price'] / base_price
    return df


def export_csv(result: SimulationResult, filepath: str):
    """Export the price series to CSV (header t,price,price_norm)."""
    df = series_to_frame(result.series, result.config.base_price)
    df.to_csv(filepath, index=False)


def resample_series(
    series: List[SimPoint],
    duration: float,
    base_price: float,
    step_sec: float = 1.0,
    max_points: int = MAX_CHART_POINTS,
) -> pd.DataFrame:
    """
    Resample the event series onto a uniform time grid.

    The last price is held until `duration`; values in between events are
    linearly interpolated. Returns columns t_min (minutes) and price_norm.
    """
    duration = max(1.0, duration)
    if series:
        times = [p.t for p in series]
        prices = [p.price for p in series]
    else:
        times, prices = [0.0], [base_price]
    if times[-1] < duration:
        times.append(duration)
        prices.append(prices[-1])

    dt = max(0.1, step_sec)
    n = max(2, int(np.floor(duration / dt)) + 1)
    if n > max_points:
        n = max_points
        dt = duration / (n - 1)

    grid = np.arange(n) * dt
    values = np.interp(grid, np.asarray(times), np.asarray(prices))
    return pd.DataFrame({'t_min': grid / 60.0, 'price_norm': values / base_price})


def build_liquidity_plan(config: Config, active_bin: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
    """
    Liquidity plan summary.

    Trade-size buckets are the larger of p * x_total and p * y_total / P0.
    """
    inventory = config.liquidity.inventory
    p0 = config.base_price
    active_bin = active_bin or {}
    return {
        'pair': {'xSymbol': config.pair.x_symbol, 'ySymbol': config.pair.y_symbol},
        'totalLiquidity': {'X': inventory.x_total, 'Y': inventory.y_total},
        'activeBin': {'X': active_bin.get('X'), 'Y': active_bin.get('Y')},
        'tradeSizes': {
            key: max(inventory.x_total * frac, inventory.y_total * frac / p0)
            for key, frac in PLAN_TRADE_FRACTIONS.items()
        },
    }


def export_liquidity_plan(config: Config, filepath: str, active_bin: Optional[Dict[str, float]] = None):
    """Export the liquidity plan to JSON."""
    with open(filepath, 'w') as f:
        json.dump(build_liquidity_plan(config, active_bin), f, indent=2)


def export_json(result: SimulationResult, filepath: str):
    """Export simulation results to JSON."""
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'status': result.status,
        'error': result.error,
        'series': [{'t': p.t, 'price': p.price} for p in result.series],
        'final_metrics': result.final_metrics,
        'checkpoint': result.checkpoint.to_dict(),
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
