"""Seeded trade event stream.

Every random draw goes through one numpy Generator so a run is reproducible
from (config, seed).
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

MIN_LAMBDA = 0.001
MIN_UNIFORM = 1e-9
MAX_LOG_SIZE = 700.0  # below the float overflow of math.exp


@dataclass(frozen=True)
class TradeEvent:
    """One trade arrival."""
    dt: float  # inter-arrival time in seconds
    is_buy: bool
    step_count: int  # bins the trade tries to cross (>= 1)

    @property
    def delta(self) -> int:
        """Signed bin delta."""
        return self.step_count if self.is_buy else -self.step_count


class TradeStream:
    """Draws inter-arrival times, directions and trade sizes."""

    def __init__(self, config, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        """
        Initialize the stream.

        Args:
            config: Simulation configuration
            rng: Generator to draw from (takes precedence over seed)
            seed: Seed for a fresh generator (defaults to config.runtime.seed)
        """
        runtime = config.runtime
        self.arrival_rate = max(MIN_LAMBDA, runtime.trade_arrival_lambda_per_sec)
        self.buy_probability = runtime.buy_probability
        self.mu_log = runtime.trade_size_lognorm.mu_log
        self.sigma_log = runtime.trade_size_lognorm.sigma_log
        if rng is None:
            rng = np.random.default_rng(runtime.seed if seed is None else seed)
        self.rng = rng

    def _uniform(self) -> float:
        return float(self.rng.random())

    def next_inter_arrival(self) -> float:
        """Exponential gap by inverse CDF: -ln(U) / lambda."""
        u = max(MIN_UNIFORM, self._uniform())
        return -math.log(u) / self.arrival_rate

    def next_is_buy(self) -> bool:
        return self._uniform() < self.buy_probability

    def next_step_count(self) -> int:
        """Coarse trade size as a count of bins, round(exp(mu + sigma * (2U - 1))) >= 1."""
        log_size = self.mu_log + self.sigma_log * (self._uniform() * 2 - 1)
        x = math.exp(min(MAX_LOG_SIZE, log_size))
        # round half up
        return max(1, int(math.floor(x + 0.5)))

    def next_event(self) -> TradeEvent:
        """Draw the next event (gap, then direction, then size)."""
        dt = self.next_inter_arrival()
        is_buy = self.next_is_buy()
        step_count = self.next_step_count()
        return TradeEvent(dt=dt, is_buy=is_buy, step_count=step_count)

    def get_state(self) -> Dict[str, Any]:
        """Bit generator state, JSON-serializable."""
        return self.rng.bit_generator.state

    def set_state(self, state: Dict[str, Any]) -> None:
        self.rng.bit_generator.state = state
