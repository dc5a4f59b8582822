"""Module D: Bin Liquidity Pool - Per-bin inventories and bin-walk swap execution.

Key Concepts:
- Bins cover exactly [left, right]; bin j is stored at offset j - left
- Seeding spreads each token total by Gaussian (Curve) or equal (Flat) weights
- A buy walks upward consuming quote inventory, a sell walks downward consuming
  base inventory; partial fills are committed bin by bin
- Leaving the range is a terminal outcome (out_of_range=True), not an error
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .fees import FeeModel, FeeProvider, SwapDirection
from .grid import price_at

DEFAULT_TOLERANCE = 1e-12
MIN_SIGMA_BINS = 1e-6


@dataclass
class Bin:
    """Inventory and fee ledger of one price bin."""
    x_base: float  # base token inventory
    y_quote: float  # quote token inventory
    fee_accrued_base: float = 0.0
    fee_accrued_quote: float = 0.0


@dataclass
class BinFill:
    """One partial fill inside a single bin."""
    index: int
    price: float
    base_amount: float
    quote_amount: float
    fee: float  # in quote for buys, in base for sells


@dataclass
class SwapResult:
    """Outcome of a bin-walk swap."""
    direction: SwapDirection
    new_active_id: int
    amount_out: float  # base for buys, quote for sells
    amount_in: float  # quote for buys, base for sells (fee included)
    fee_total: float  # quote for buys, base for sells
    bins_crossed: int
    out_of_range: bool
    fills: List[BinFill] = field(default_factory=list)


@dataclass
class FeeOverrides:
    """Optional per-swap fee and tolerance settings."""
    fee_provider: Optional[FeeProvider] = None
    fee_min: float = 0.0
    fee_max: Optional[float] = None
    tol: float = DEFAULT_TOLERANCE


def constant_sum_liquidity(price: float, x: float, y: float) -> float:
    """Bin value in quote terms, L = price * x + y."""
    return price * x + y


def seed_weights(left: int, right: int, shape: str = "Curve", sigma_bins: float = 16.0) -> np.ndarray:
    """
    Normalized liquidity weights for bins left..right.

    Curve weights are exp(-0.5 * (j / sigma)^2) centred on index 0; Flat weights
    are uniform. Weights sum to 1.
    """
    indices = np.arange(left, right + 1, dtype=float)
    if shape == "Flat":
        weights = np.ones_like(indices)
    else:
        sigma = max(MIN_SIGMA_BINS, sigma_bins)
        z = indices / sigma
        weights = np.exp(-0.5 * z * z)
    total = weights.sum()
    if total <= 0:
        total = 1.0
    return weights / total


class BinLiquidityPool:
    """Owns the bin array for one configured range."""

    def __init__(
        self,
        left: int,
        right: int,
        base_price: float,
        bin_step_bps: float,
        bins: List[Bin],
        fee_model: Optional[FeeModel] = None,
    ):
        """
        Initialize pool.

        Args:
            left: Lowest bin index
            right: Highest bin index
            base_price: Reference price P0 of index 0
            bin_step_bps: Bin step in basis points
            bins: Exactly right - left + 1 bins, ordered by index
            fee_model: Fee model for default per-bin rates and caps
        """
        if left > right:
            raise ValueError(f"Invalid bin range: left={left} > right={right}")
        expected = right - left + 1
        if len(bins) != expected:
            raise ValueError(f"Expected {expected} bins for [{left}, {right}], got {len(bins)}")
        self.left = left
        self.right = right
        self.base_price = base_price
        self.bin_step_bps = bin_step_bps
        self.bins = bins
        self.fee_model = fee_model or FeeModel(bin_step_bps=bin_step_bps)

    @classmethod
    def seed(
        cls,
        left: int,
        right: int,
        base_price: float,
        bin_step_bps: float,
        x_total: float,
        y_total: float,
        shape: str = "Curve",
        sigma_bins: float = 16.0,
        fee_model: Optional[FeeModel] = None,
    ) -> 'BinLiquidityPool':
        """Seed a fresh pool, splitting each token total across the range."""
        weights = seed_weights(left, right, shape, sigma_bins)
        x = max(0.0, x_total)
        y = max(0.0, y_total)
        bins = [Bin(x_base=float(x * w), y_quote=float(y * w)) for w in weights]
        return cls(left, right, base_price, bin_step_bps, bins, fee_model=fee_model)

    @classmethod
    def from_config(cls, config) -> 'BinLiquidityPool':
        """Seed a pool from a Config."""
        liquidity = config.liquidity
        return cls.seed(
            left=config.grid.range_bins.left,
            right=config.grid.range_bins.right,
            base_price=config.base_price,
            bin_step_bps=config.grid.bin_step_bps,
            x_total=liquidity.inventory.x_total,
            y_total=liquidity.inventory.y_total,
            shape=liquidity.shape,
            sigma_bins=liquidity.curve_sigma_bins,
            fee_model=FeeModel.from_config(config),
        )

    def contains(self, index: int) -> bool:
        return self.left <= index <= self.right

    def bin_at(self, index: int) -> Bin:
        """Bin at an absolute index."""
        if not self.contains(index):
            raise IndexError(f"Bin {index} outside range [{self.left}, {self.right}]")
        return self.bins[index - self.left]

    def price_at(self, index: int) -> float:
        return price_at(index, self.base_price, self.bin_step_bps)

    def total_x(self) -> float:
        return sum(b.x_base for b in self.bins)

    def total_y(self) -> float:
        return sum(b.y_quote for b in self.bins)

    def total_fees(self) -> dict:
        """Accrued fees summed across bins."""
        return {
            'base': sum(b.fee_accrued_base for b in self.bins),
            'quote': sum(b.fee_accrued_quote for b in self.bins),
        }

    def _fee_rate(self, j: int, direction: SwapDirection, b: Bin, overrides: FeeOverrides) -> float:
        return self.fee_model.bin_fee_rate(
            j, direction, b,
            fee_provider=overrides.fee_provider,
            fee_min=overrides.fee_min,
            fee_max=overrides.fee_max,
        )

    def buy_base_with_quote(
        self,
        active_id: int,
        desired_base_out: float,
        overrides: Optional[FeeOverrides] = None,
    ) -> SwapResult:
        """
        Buy base, walking upward from active_id through quote inventory.

        Fees are charged in quote on top of the quote consumed from each bin.
        """
        overrides = overrides or FeeOverrides()
        tol = overrides.tol
        left, right = self.left, self.right
        j = active_id
        remaining = max(0.0, desired_base_out)

        base_out = 0.0
        quote_in = 0.0
        fee_total = 0.0
        crossed = 0
        out_of_range = False
        fills: List[BinFill] = []

        while remaining > tol:
            if j < left:
                j = left
            if j > right:
                out_of_range = True
                break
            # Skip empties on the sellable side
            while j <= right and self.bins[j - left].y_quote <= tol:
                j += 1
                crossed += 1
            if j > right:
                out_of_range = True
                break
            b = self.bins[j - left]
            pj = self.price_at(j)
            x_max = b.y_quote / pj
            if x_max <= tol:
                j += 1
                crossed += 1
                continue
            take = min(remaining, x_max)
            d_quote = take * pj
            fee = d_quote * self._fee_rate(j, SwapDirection.BUY, b, overrides)
            b.y_quote -= d_quote
            b.fee_accrued_quote += fee
            base_out += take
            quote_in += d_quote + fee
            fee_total += fee
            remaining -= take
            fills.append(BinFill(index=j, price=pj, base_amount=take, quote_amount=d_quote, fee=fee))
            if b.y_quote <= tol:
                j += 1
                crossed += 1

        return SwapResult(
            direction=SwapDirection.BUY,
            new_active_id=right + 1 if out_of_range else j,
            amount_out=base_out,
            amount_in=quote_in,
            fee_total=fee_total,
            bins_crossed=max(0, crossed - 1),
            out_of_range=out_of_range,
            fills=fills,
        )

    def sell_base_for_quote(
        self,
        active_id: int,
        desired_base_in: float,
        overrides: Optional[FeeOverrides] = None,
    ) -> SwapResult:
        """
        Sell base, walking downward from active_id through base inventory.

        Fees are charged in base on top of the base consumed from each bin.
        """
        overrides = overrides or FeeOverrides()
        tol = overrides.tol
        left, right = self.left, self.right
        j = active_id
        remaining = max(0.0, desired_base_in)

        base_in = 0.0
        quote_out = 0.0
        fee_total = 0.0
        crossed = 0
        out_of_range = False
        fills: List[BinFill] = []

        while remaining > tol:
            if j > right:
                j = right
            if j < left:
                out_of_range = True
                break
            while j >= left and self.bins[j - left].x_base <= tol:
                j -= 1
                crossed += 1
            if j < left:
                out_of_range = True
                break
            b = self.bins[j - left]
            pj = self.price_at(j)
            x_max = b.x_base
            if x_max <= tol:
                j -= 1
                crossed += 1
                continue
            take = min(remaining, x_max)
            fee = take * self._fee_rate(j, SwapDirection.SELL, b, overrides)
            b.x_base -= take
            b.fee_accrued_base += fee
            d_quote = take * pj
            base_in += take + fee
            quote_out += d_quote
            fee_total += fee
            remaining -= take
            fills.append(BinFill(index=j, price=pj, base_amount=take, quote_amount=d_quote, fee=fee))
            if b.x_base <= tol:
                j -= 1
                crossed += 1

        return SwapResult(
            direction=SwapDirection.SELL,
            new_active_id=left - 1 if out_of_range else j,
            amount_out=quote_out,
            amount_in=base_in,
            fee_total=fee_total,
            bins_crossed=max(0, crossed - 1),
            out_of_range=out_of_range,
            fills=fills,
        )


def swap(
    pool: BinLiquidityPool,
    active_id: int,
    direction: SwapDirection,
    amount: float,
    fee_overrides: Optional[FeeOverrides] = None,
) -> SwapResult:
    """
    Execute a swap against a pool, mutating its bins.

    Args:
        pool: Pool to trade against
        active_id: Starting bin index
        direction: BUY (base out for quote) or SELL (base in for quote)
        amount: Base amount to receive (BUY) or to sell (SELL)
        fee_overrides: Optional custom fee provider, clamps and tolerance

    Returns:
        SwapResult; callers must check out_of_range explicitly
    """
    direction = SwapDirection(direction)
    if direction is SwapDirection.BUY:
        return pool.buy_base_with_quote(active_id, amount, fee_overrides)
    return pool.sell_base_for_quote(active_id, amount, fee_overrides)
