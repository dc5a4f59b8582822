"""Module C: Volatility Accumulator - Time-decaying counter of bin crossings.

State machine over (accumulator, last_event_time):
- first event: accumulator = clamp(prev + |n| * OFFSET)
- dt > t_d: reset to 0, then add the new term
- t_f < dt <= t_d: multiply by R, then add the new term
- dt <= t_f: keep, then add the new term
The result is always clamped to [0, SCALE].
"""

from dataclasses import dataclass
from typing import Optional

from .fees import OFFSET, SCALE

MIN_FILTER_TIME = 0.001


@dataclass(frozen=True)
class VolatilityState:
    """Accumulator value and the time of the last accepted event."""
    accumulator: float = 0.0
    last_event_time: Optional[float] = None  # None before the first event


def crossing_term(bins_crossed: float) -> float:
    """Contribution of one event crossing |bins_crossed| bins."""
    return min(SCALE, abs(bins_crossed) * OFFSET)


def update_volatility_accumulator(
    prev: float,
    bins_crossed: float,
    now: float,
    last_time: Optional[float],
    filter_time: float = 1.0,
    decay_time: float = 5.0,
    decay_factor: float = 0.5,
) -> float:
    """
    Apply one trade event to the accumulator.

    Args:
        prev: Accumulator value before the event
        bins_crossed: Signed or unsigned bin delta of the event
        now: Event time in seconds
        last_time: Time of the previous event, None if this is the first
        filter_time: t_f, floored at MIN_FILTER_TIME
        decay_time: t_d, floored at t_f
        decay_factor: R, clamped to [0, 1]

    Returns:
        New accumulator value in [0, SCALE]
    """
    tf = max(MIN_FILTER_TIME, filter_time)
    td = max(tf, decay_time)
    r = min(1.0, max(0.0, decay_factor))

    if last_time is None:
        return min(SCALE, max(0.0, prev) + crossing_term(bins_crossed))

    dt = now - last_time
    acc = prev
    if dt > td:
        acc = 0.0
    elif dt > tf:
        acc = acc * r
    acc += crossing_term(bins_crossed)
    return min(SCALE, max(0.0, acc))


class VolatilityAccumulator:
    """Accumulator engine bound to one set of timing parameters."""

    def __init__(self, filter_time: float = 1.0, decay_time: float = 5.0, decay_factor: float = 0.5):
        self.filter_time = max(MIN_FILTER_TIME, filter_time)
        self.decay_time = max(self.filter_time, decay_time)
        self.decay_factor = min(1.0, max(0.0, decay_factor))

    @classmethod
    def from_config(cls, config) -> 'VolatilityAccumulator':
        adv = config.advanced_defaults
        return cls(
            filter_time=adv.vol_filter_t_f_sec,
            decay_time=adv.vol_decay_t_d_sec,
            decay_factor=adv.decay_factor_r,
        )

    def update(self, state: VolatilityState, bins_crossed: float, now: float) -> VolatilityState:
        """Return the state after one accepted event at time `now`."""
        accumulator = update_volatility_accumulator(
            state.accumulator,
            bins_crossed,
            now,
            state.last_event_time,
            filter_time=self.filter_time,
            decay_time=self.decay_time,
            decay_factor=self.decay_factor,
        )
        return VolatilityState(accumulator=accumulator, last_event_time=now)
