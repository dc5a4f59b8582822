"""Module A: Price Grid - Geometric mapping from bin index to absolute price.

price(j) = P0 * (1 + bin_step_bps / BASIS_POINT_MAX) ^ j, with index 0 at the
reference price P0 = USD(X) / USD(Y).
"""

import math

BASIS_POINT_MAX = 10_000


def step_decimal(bin_step_bps: float) -> float:
    """Bin step as a decimal fraction, clamped to be non-negative."""
    return max(0.0, bin_step_bps) / BASIS_POINT_MAX


def price_at(index: int, base_price: float, bin_step_bps: float) -> float:
    """
    Absolute price of a bin.

    Args:
        index: Absolute bin index (0 is the reference bin)
        base_price: Reference price P0
        bin_step_bps: Bin step in basis points (negative values treated as 0)

    Returns:
        base_price * (1 + step)^index, inf when the power overflows a float
    """
    try:
        factor = math.pow(1.0 + step_decimal(bin_step_bps), index)
    except OverflowError:
        factor = math.inf
    return base_price * factor


def base_price_from_usd(x_usd: float, y_usd: float) -> float:
    """Reference price P0 = x_usd / y_usd, or 1.0 when the ratio is degenerate."""
    if y_usd == 0:
        return 1.0
    ratio = x_usd / y_usd
    if not math.isfinite(ratio) or ratio <= 0:
        return 1.0
    return ratio


# Price impact floors:
# selling X for Y: min = spot * (BASIS_POINT_MAX - max_impact_bps) / BASIS_POINT_MAX
# selling Y for X: min = spot * BASIS_POINT_MAX / (BASIS_POINT_MAX - max_impact_bps)
def min_price_sell_x(spot_price: float, max_impact_bps: float) -> float:
    """Lowest acceptable price when selling base for quote."""
    num = BASIS_POINT_MAX - max(0.0, max_impact_bps)
    return spot_price * (num / BASIS_POINT_MAX)


def min_price_sell_y(spot_price: float, max_impact_bps: float) -> float:
    """Price bound when selling quote for base.

    Undefined for max_impact_bps >= BASIS_POINT_MAX; callers must not pass it.
    """
    den = BASIS_POINT_MAX - max(0.0, max_impact_bps)
    return spot_price * (BASIS_POINT_MAX / den)
