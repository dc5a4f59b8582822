"""Module B: Fee Model - Static base fee, volatility-driven variable fee and caps.

Key Concepts:
- base_fee_rate = B * bin_step * 10 * 10^power
- variable_fee_rate = ((va * bin_step)^2 * A + OFFSET) / SCALE
- total_fee_rate = min(max_fee_rate, base + variable)
- composition fee (fee-on-fee) = amount * f * (1 + f)

All rates are decimals in [0, 1]; FEE_PRECISION is 1.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .grid import BASIS_POINT_MAX

# Volatility accumulator constants. OFFSET is an additive floor baked into the
# scale and is not tunable.
OFFSET = 99_999_999_999
SCALE = 100_000_000_000


class SwapDirection(str, Enum):
    """Side of a swap from the trader's point of view (base token)."""
    BUY = "BUY"
    SELL = "SELL"


# (bin index, direction, bin) -> decimal fee rate
FeeProvider = Callable[[int, SwapDirection, Any], float]


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value to [lo, hi]."""
    return max(lo, min(hi, value))


def composition_fee(swap_amount: float, total_fee_rate: float) -> float:
    """Fee-on-fee surcharge: swap_amount * f * (1 + f), with f floored at 0."""
    f = max(0.0, total_fee_rate)
    return swap_amount * f * (1 + f)


@dataclass
class FeeRates:
    """Fee rate breakdown for one accumulator value."""
    base: float
    variable: float
    total: float  # capped
    protocol: float  # protocol share of the capped variable part
    lp: float  # total - protocol


class FeeModel:
    """Two-component fee engine (static base + volatility-responsive variable)."""

    def __init__(
        self,
        bin_step_bps: float,
        base_factor: float = 1.0,
        base_fee_power: int = 0,
        variable_control: float = 1.0,
        max_fee_rate: float = 0.02,
        protocol_fee_pct: float = 0.0,
        fee_on_fee: bool = False,
    ):
        """
        Initialize fee model.

        Args:
            bin_step_bps: Bin step in basis points
            base_factor: Base factor B
            base_fee_power: Integer power-of-ten amplifier (>= 0)
            variable_control: Variable fee control A
            max_fee_rate: Hard cap on total fee rate
            protocol_fee_pct: Share of variable fee routed to protocol
            fee_on_fee: Charge the composition fee instead of a flat rate
        """
        self.bin_step_bps = bin_step_bps
        self.base_factor = base_factor
        self.base_fee_power = max(0, int(round(base_fee_power or 0)))
        self.variable_control = variable_control
        self.max_fee_rate = max_fee_rate
        self.protocol_fee_pct = clamp(protocol_fee_pct or 0.0, 0.0, 1.0)
        self.fee_on_fee = fee_on_fee

    @classmethod
    def from_config(cls, config) -> 'FeeModel':
        """Build a fee model from a Config."""
        fees = config.fees
        return cls(
            bin_step_bps=config.grid.bin_step_bps,
            base_factor=fees.base_factor,
            base_fee_power=fees.base_fee_power,
            variable_control=fees.variable_control,
            max_fee_rate=fees.max_fee_rate,
            protocol_fee_pct=fees.protocol_fee_pct,
            fee_on_fee=fees.fee_on_fee,
        )

    @property
    def step_decimal(self) -> float:
        return self.bin_step_bps / BASIS_POINT_MAX

    def base_fee_rate(self) -> float:
        """Base fee rate: B * step * 10 * 10^power, floored at 0."""
        rate = self.base_factor * self.step_decimal * 10 * (10 ** self.base_fee_power)
        return max(0.0, rate)

    def variable_fee_rate(self, volatility_accumulator: float) -> float:
        """Variable fee rate: ((va * step)^2 * A + OFFSET) / SCALE, floored at 0."""
        term = volatility_accumulator * self.step_decimal
        rate = ((term * term) * self.variable_control + OFFSET) / SCALE
        return max(0.0, rate)

    def total_fee_rate(self, base_rate: float, variable_rate: float) -> float:
        """Total fee rate capped at max_fee_rate."""
        return min(self.max_fee_rate, base_rate + variable_rate)

    def compute_fee_rates(self, volatility_accumulator: float) -> FeeRates:
        """
        Compute the full fee breakdown for an accumulator value.

        The protocol takes protocol_fee_pct of whatever variable fee remains
        after the cap is applied; the base component always goes to LPs.
        """
        base = self.base_fee_rate()
        variable = self.variable_fee_rate(volatility_accumulator)
        total = self.total_fee_rate(base, variable)
        variable_after_cap = max(0.0, total - min(base, total))
        protocol = variable_after_cap * self.protocol_fee_pct
        return FeeRates(
            base=base,
            variable=variable,
            total=total,
            protocol=protocol,
            lp=total - protocol,
        )

    def fee_for_amount(self, amount: float, rate: float) -> float:
        """Fee charged on a gross amount at a given rate."""
        if self.fee_on_fee:
            return composition_fee(amount, rate)
        return amount * max(0.0, rate)

    def bin_fee_rate(
        self,
        j: int,
        direction: SwapDirection,
        bin: Any,
        fee_provider: Optional[FeeProvider] = None,
        fee_min: float = 0.0,
        fee_max: Optional[float] = None,
    ) -> float:
        """
        Effective per-bin fee rate used during a real swap.

        Without a custom provider the base fee rate (not the total) is used.
        The result is clamped to [fee_min, fee_max]; fee_max defaults to the cap.
        """
        if fee_max is None:
            fee_max = self.max_fee_rate
        if fee_provider is None:
            raw = self.base_fee_rate()
        else:
            raw = fee_provider(j, direction, bin)
        return clamp(raw, fee_min, fee_max)
