"""Simulation state, output points and pause/resume checkpoints.

A checkpoint carries the full driver state (series, active id, freeze state,
accumulator, last event time and RNG state). Resuming never reconstructs the
active index or volatility from the series tail.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..engine.depletion import FreezeState
from ..engine.volatility import VolatilityState


@dataclass(frozen=True)
class SimPoint:
    """One output sample."""
    t: float  # seconds
    price: float  # absolute price


@dataclass(frozen=True)
class EngineState:
    """Driver state between events."""
    t: float
    active_id: int
    price: float
    freeze: FreezeState = FreezeState.IN_RANGE
    volatility: VolatilityState = field(default_factory=VolatilityState)


@dataclass
class SimulationCheckpoint:
    """Everything needed to resume a paused run."""
    series: List[SimPoint]
    t: float
    active_id: int
    freeze: FreezeState
    accumulator: float
    last_event_time: Optional[float]
    rng_state: Optional[Dict[str, Any]] = None
    config_hash: Optional[str] = None

    @classmethod
    def from_state(
        cls,
        state: EngineState,
        series: List[SimPoint],
        rng_state: Optional[Dict[str, Any]] = None,
        config_hash: Optional[str] = None,
    ) -> 'SimulationCheckpoint':
        return cls(
            series=list(series),
            t=state.t,
            active_id=state.active_id,
            freeze=state.freeze,
            accumulator=state.volatility.accumulator,
            last_event_time=state.volatility.last_event_time,
            rng_state=rng_state,
            config_hash=config_hash,
        )

    def to_engine_state(self, price: float) -> EngineState:
        """Rebuild the driver state; price is recomputed by the caller from active_id."""
        return EngineState(
            t=self.t,
            active_id=self.active_id,
            price=price,
            freeze=self.freeze,
            volatility=VolatilityState(
                accumulator=self.accumulator,
                last_event_time=self.last_event_time,
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'series': [[p.t, p.price] for p in self.series],
            't': self.t,
            'active_id': self.active_id,
            'freeze': self.freeze.value,
            'accumulator': self.accumulator,
            'last_event_time': self.last_event_time,
            'rng_state': self.rng_state,
            'config_hash': self.config_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationCheckpoint':
        return cls(
            series=[SimPoint(t=float(t), price=float(p)) for t, p in data.get('series', [])],
            t=float(data['t']),
            active_id=int(data['active_id']),
            freeze=FreezeState(data.get('freeze', FreezeState.IN_RANGE.value)),
            accumulator=float(data.get('accumulator', 0.0)),
            last_event_time=data.get('last_event_time'),
            rng_state=data.get('rng_state'),
            config_hash=data.get('config_hash'),
        )

    def save(self, filepath: str) -> None:
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f)

    @classmethod
    def load(cls, filepath: str) -> 'SimulationCheckpoint':
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))
