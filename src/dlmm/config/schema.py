"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..engine.grid import base_price_from_usd


class Pair(BaseModel):
    """Token pair symbols."""
    x_symbol: str = Field(default="SOL", description="Base token symbol (the asset being priced)")
    y_symbol: str = Field(default="USD", description="Quote token symbol")


class StartingPrices(BaseModel):
    """USD prices used only to derive the reference price P0 = x_usd / y_usd."""
    x_usd: float = Field(ge=0, description="USD price of the base token")
    y_usd: float = Field(ge=0, description="USD price of the quote token")


class RangeBins(BaseModel):
    """Inclusive bin index range holding liquidity."""
    left: int = Field(description="Lowest bin index with liquidity")
    right: int = Field(description="Highest bin index with liquidity")

    @model_validator(mode='after')
    def validate_order(self):
        """Ensure left <= right."""
        if self.left > self.right:
            raise ValueError(
                f"range_bins.left must be <= range_bins.right, got left={self.left}, right={self.right}"
            )
        return self


class Grid(BaseModel):
    """Geometric price grid."""
    bin_step_bps: float = Field(ge=0, description="Proportional gap between adjacent bins in bps")
    range_bins: RangeBins
    # An active id outside range_bins is a valid (frozen) starting state.
    active_id: int = Field(default=0, description="Initial active bin index")


class Inventory(BaseModel):
    """Total token inventories spread across the range."""
    x_total: float = Field(ge=0, description="Total base token inventory")
    y_total: float = Field(ge=0, description="Total quote token inventory")


class Liquidity(BaseModel):
    """Liquidity shape across bins."""
    shape: Literal["Curve", "Flat"] = Field(default="Curve", description="Distribution shape")
    curve_sigma_bins: float = Field(gt=0, description="Gaussian standard deviation in bins")
    inventory: Inventory


class Fees(BaseModel):
    """Fee parameters."""
    base_factor: float = Field(ge=0, description="Base factor B scaling the base fee with bin step")
    base_fee_power: int = Field(ge=0, default=0, description="Integer power-of-ten amplifier on base fee")
    variable_control: float = Field(ge=0, description="Variable fee control A")
    max_fee_rate: float = Field(ge=0, description="Hard cap on total fee rate (decimal)")
    protocol_fee_pct: float = Field(
        ge=0, le=1, default=0.0,
        description="Share of the variable fee routed to the protocol"
    )
    fee_on_fee: bool = Field(default=False, description="Charge composition fee (fee-on-fee)")

    @field_validator("base_fee_power", mode="before")
    @classmethod
    def coerce_base_fee_power(cls, v):
        """Round fractional powers to the nearest integer."""
        if v is None:
            return 0
        return int(round(float(v)))


class TradeSize(BaseModel):
    """Log-normal trade size parameters."""
    mu_log: float = Field(description="Mean of log trade size")
    sigma_log: float = Field(ge=0, description="Spread of log trade size")


class Runtime(BaseModel):
    """Simulation runtime parameters."""
    duration_sec: float = Field(ge=0, description="Simulated duration in seconds (floored to 1)")
    seed: int = Field(default=42, description="Random seed for reproducibility")
    trade_arrival_lambda_per_sec: float = Field(
        ge=0, description="Poisson arrival rate per second (floored to 0.001)"
    )
    trade_size_lognorm: TradeSize
    buy_probability: float = Field(ge=0, le=1, default=0.5, description="Probability a trade is a buy")
    force_bin_depletion: bool = Field(default=True, description="Freeze the active bin outside the range")
    stream: bool = Field(default=True, description="Publish progressive snapshots while running")


class AdvancedDefaults(BaseModel):
    """Volatility accumulator timing parameters."""
    vol_filter_t_f_sec: float = Field(default=1.0, description="No-decay filter window t_f")
    vol_decay_t_d_sec: float = Field(default=5.0, description="Full reset window t_d")
    decay_factor_r: float = Field(ge=0, le=1, default=0.5, description="Multiplicative decay R")


class Config(BaseModel):
    """Complete configuration for a DLMM simulation run."""
    pair: Pair = Field(default_factory=Pair)
    starting_prices: StartingPrices
    grid: Grid
    liquidity: Liquidity
    fees: Fees
    runtime: Runtime
    advanced_defaults: AdvancedDefaults = Field(default_factory=AdvancedDefaults)

    @property
    def base_price(self) -> float:
        """Reference price P0 of bin index 0 (1.0 when the USD ratio is degenerate)."""
        return base_price_from_usd(self.starting_prices.x_usd, self.starting_prices.y_usd)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
