"""Range calculators - stateless helpers for choosing a liquidity range.

Both return None instead of propagating NaN/inf when a logarithm argument or
divisor is non-positive.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional

from ..engine.grid import step_decimal

MAX_LISTED_BINS = 500


@dataclass
class SuggestedRange:
    """Price band expected to hold most moves over a horizon."""
    lower: float
    upper: float
    bins: int


@dataclass
class PriceBin:
    """One listed bin, [low, high)."""
    low: float
    high: float


@dataclass
class RangeBinBreakdown:
    """How a [min, max] price range maps onto a bin grid."""
    bin_step_decimal: float
    price_factor: float
    num_bins: int
    increment_price: float  # price move of one step at the current price
    increment_pct: float
    bins: List[PriceBin] = field(default_factory=list)


def suggest_range(
    price: float,
    volatility_pct: float,
    confidence_level: float,
    bin_step_bps: float,
) -> Optional[SuggestedRange]:
    """
    Suggest a range of +/- delta around price.

    delta = volatility_pct / 100, doubled at the 95% confidence level.

    Args:
        price: Current price
        volatility_pct: Expected volatility over the horizon, in percent
        confidence_level: 0.68 or 0.95
        bin_step_bps: Bin step used to count bins

    Returns:
        SuggestedRange, or None when the band or bin step is degenerate
    """
    mult = 2 if confidence_level == 0.95 else 1
    delta = (max(0.0, volatility_pct) / 100) * mult
    lower = max(0.0, price * (1 - delta))
    upper = price * (1 + delta)

    denom = math.log1p(step_decimal(bin_step_bps))
    if not denom > 0 or not lower > 0 or not upper > 0:
        return None
    bins = math.ceil(math.log(upper / lower) / denom)
    return SuggestedRange(lower=lower, upper=upper, bins=bins)


def range_to_bins(
    price: float,
    min_price: float,
    max_price: float,
    bin_step_bps: float,
    limit: int = MAX_LISTED_BINS,
) -> Optional[RangeBinBreakdown]:
    """
    Count and list the bins between min_price and max_price.

    Bins are anchored on price: bin k spans [price * r^k, price * r^(k+1))
    clipped to [min_price, max_price], for k from ceil(ln(min/P)/ln r) up to
    (excluding) floor(ln(max/P)/ln r), at most `limit` entries.
    """
    if not (price > 0 and min_price > 0 and max_price > 0 and max_price > min_price and bin_step_bps > 0):
        return None
    step = step_decimal(bin_step_bps)
    factor = 1 + step
    denom = math.log(factor)
    if not denom > 0:
        return None

    num_bins = math.floor(math.log(max_price / min_price) / denom)
    k_start = math.ceil(math.log(min_price / price) / denom)
    k_end = math.floor(math.log(max_price / price) / denom)

    bins = []
    for k in range(k_start, k_end):
        if len(bins) >= limit:
            break
        low = price * math.pow(factor, k)
        high = price * math.pow(factor, k + 1)
        bins.append(PriceBin(low=max(min_price, low), high=min(max_price, high)))

    return RangeBinBreakdown(
        bin_step_decimal=step,
        price_factor=factor,
        num_bins=max(0, num_bins),
        increment_price=price * step,
        increment_pct=step * 100,
        bins=bins,
    )
