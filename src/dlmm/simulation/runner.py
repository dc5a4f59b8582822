"""Simulation runner - Replay a seeded trade stream against the active bin.

Key Features:
- Pure step(state, event) -> state' transition; the outer loop only sequences it
- Depletion policy decides whether the active index moves or freezes
- Volatility accumulator updated once per actual (or attempted exit) crossing
- Fee rates derived from the accumulator are recorded per event
- Runs to completion, in batches (stream mode), or until stop()/max_events
- Pause/resume through SimulationCheckpoint, including RNG state

This lightweight mode advances only the active index and price; exact
inventory and fee accounting is done by BinLiquidityPool.swap.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from ..config.schema import Config
from ..engine.depletion import DepletionDecision, DepletionPolicy, FreezeState
from ..engine.fees import FeeModel
from ..engine.grid import price_at
from ..engine.volatility import VolatilityAccumulator, VolatilityState
from .events import TradeEvent, TradeStream
from .state import EngineState, SimPoint, SimulationCheckpoint

logger = logging.getLogger(__name__)

MIN_DURATION_SEC = 1.0

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_PAUSED = "paused"
STATUS_STOPPED = "stopped"
STATUS_FAILED = "failed"


@dataclass
class StepOutcome:
    """Result of applying one event."""
    state: EngineState
    point: SimPoint
    metrics: Dict[str, Any]


@dataclass
class SimulationResult:
    """Complete (or partial) simulation result."""
    config: Config
    series: List[SimPoint]
    metrics_over_time: List[Dict[str, Any]]
    final_state: EngineState
    checkpoint: SimulationCheckpoint
    final_metrics: Dict[str, Any] = field(default_factory=dict)
    status: str = STATUS_COMPLETED
    error: Optional[str] = None


class SimulationRunner:
    """Serial event loop over simulated time."""

    def __init__(self, config: Config):
        """
        Initialize simulation runner.

        Args:
            config: Simulation configuration (read-only during a run)
        """
        self.config = config
        self.base_price = config.base_price
        self.duration = max(MIN_DURATION_SEC, config.runtime.duration_sec)

        self.fee_model = FeeModel.from_config(config)
        self.volatility = VolatilityAccumulator.from_config(config)
        self.depletion = DepletionPolicy.from_config(config)

        self.running = False
        self.error: Optional[str] = None
        self._stop_requested = False

    def price_at(self, active_id: int) -> float:
        return price_at(active_id, self.base_price, self.config.grid.bin_step_bps)

    def initial_state(self) -> EngineState:
        """Fresh state at t=0 on the configured active id."""
        active_id = self.config.grid.active_id
        return EngineState(
            t=0.0,
            active_id=active_id,
            price=self.price_at(active_id),
            freeze=FreezeState.IN_RANGE,
            volatility=VolatilityState(),
        )

    def step(self, state: EngineState, event: TradeEvent) -> StepOutcome:
        """
        Apply one trade event.

        Args:
            state: State before the event
            event: Trade event (gap, direction, bin count)

        Returns:
            StepOutcome with the new state, the sample point and event metrics
        """
        t = state.t + event.dt
        decision = self.depletion.apply(state.active_id, state.freeze, event.delta)

        volatility = state.volatility
        if decision.update_volatility:
            volatility = self.volatility.update(volatility, abs(event.delta), t)

        price = self.price_at(decision.active_id) if decision.moved else state.price

        new_state = EngineState(
            t=t,
            active_id=decision.active_id,
            price=price,
            freeze=decision.freeze,
            volatility=volatility,
        )
        metrics = self._compute_metrics(new_state, decision)
        return StepOutcome(state=new_state, point=SimPoint(t=t, price=price), metrics=metrics)

    def stop(self) -> None:
        """Request cancellation; honoured between events."""
        self._stop_requested = True

    def run(
        self,
        random_seed: int = None,
        resume_from: Optional[SimulationCheckpoint] = None,
        max_events: Optional[int] = None,
    ) -> SimulationResult:
        """
        Run the simulation synchronously.

        Args:
            random_seed: Seed override (defaults to config.runtime.seed)
            resume_from: Checkpoint to continue from (append mode)
            max_events: Stop after this many events with status "paused"

        Returns:
            Simulation result
        """
        result = None
        for result in self._execute(random_seed, resume_from, max_events, batch_size=None):
            pass
        return result

    def iter_batches(
        self,
        batch_size: int = 10,
        random_seed: int = None,
        resume_from: Optional[SimulationCheckpoint] = None,
        max_events: Optional[int] = None,
    ) -> Iterator[SimulationResult]:
        """
        Run the simulation, yielding a snapshot after every batch of events.

        The last yielded result carries the terminal status.
        """
        return self._execute(random_seed, resume_from, max_events, batch_size=max(1, batch_size))

    def _prepare(self, random_seed, resume_from):
        stream = TradeStream(self.config, seed=random_seed)
        if resume_from is None:
            return stream, self.initial_state(), []

        if resume_from.config_hash and resume_from.config_hash != self.config.compute_hash():
            logger.warning("Resuming checkpoint created with a different config")
        if random_seed is None:
            if resume_from.rng_state is not None:
                stream.set_state(resume_from.rng_state)
            else:
                logger.warning(
                    "Checkpoint has no RNG state; trade draws restart from seed %s",
                    self.config.runtime.seed,
                )
        state = resume_from.to_engine_state(self.price_at(resume_from.active_id))
        return stream, state, list(resume_from.series)

    def _execute(
        self,
        random_seed: Optional[int],
        resume_from: Optional[SimulationCheckpoint],
        max_events: Optional[int],
        batch_size: Optional[int],
    ) -> Iterator[SimulationResult]:
        stream, state, series = self._prepare(random_seed, resume_from)
        metrics_over_time: List[Dict[str, Any]] = []

        self.running = True
        self.error = None
        self._stop_requested = False
        status = STATUS_COMPLETED
        events = 0
        in_batch = 0

        logger.info(
            "Starting run: duration=%.1fs seed=%s resume=%s",
            self.duration,
            self.config.runtime.seed if random_seed is None else random_seed,
            resume_from is not None,
        )

        try:
            while state.t < self.duration:
                if self._stop_requested:
                    status = STATUS_STOPPED
                    break
                if max_events is not None and events >= max_events:
                    status = STATUS_PAUSED
                    break

                outcome = self.step(state, stream.next_event())
                if outcome.state.freeze is not state.freeze:
                    logger.debug(
                        "t=%.3f: freeze %s -> %s at id %d",
                        outcome.state.t, state.freeze.value, outcome.state.freeze.value,
                        outcome.state.active_id,
                    )
                state = outcome.state
                series.append(outcome.point)
                metrics_over_time.append(outcome.metrics)
                events += 1

                if batch_size is not None:
                    in_batch += 1
                    if in_batch >= batch_size and state.t < self.duration:
                        in_batch = 0
                        yield self._build_result(state, series, metrics_over_time, stream, STATUS_RUNNING)
        except Exception as e:
            logger.exception("Simulation failed at t=%.3f", state.t)
            status = STATUS_FAILED
            self.error = f"{type(e).__name__}: {e}"
        finally:
            self.running = False

        logger.info("Run %s after %d events (t=%.1fs)", status, events, state.t)
        yield self._build_result(state, series, metrics_over_time, stream, status, self.error)

    def _build_result(
        self,
        state: EngineState,
        series: List[SimPoint],
        metrics_over_time: List[Dict[str, Any]],
        stream: TradeStream,
        status: str,
        error: Optional[str] = None,
    ) -> SimulationResult:
        checkpoint = SimulationCheckpoint.from_state(
            state,
            series,
            rng_state=stream.get_state(),
            config_hash=self.config.compute_hash(),
        )
        return SimulationResult(
            config=self.config,
            series=list(series),
            metrics_over_time=list(metrics_over_time),
            final_state=state,
            checkpoint=checkpoint,
            final_metrics=self._compute_final_metrics(state, series, metrics_over_time),
            status=status,
            error=error,
        )

    def _compute_metrics(self, state: EngineState, decision: DepletionDecision) -> Dict[str, Any]:
        """Compute metrics for one event."""
        rates = self.fee_model.compute_fee_rates(state.volatility.accumulator)
        return {
            't': state.t,
            'price': state.price,
            'active_id': state.active_id,
            'display_id': self.depletion.display_id(state.active_id, state.freeze),
            'freeze': state.freeze.value,
            'moved': decision.moved,
            'delta': decision.attempted_delta,
            'volatility_accumulator': state.volatility.accumulator,
            'base_fee_rate': rates.base,
            'variable_fee_rate': rates.variable,
            'total_fee_rate': rates.total,
            'protocol_fee_rate': rates.protocol,
            'effective_fee_rate': self.fee_model.fee_for_amount(1.0, rates.total),
        }

    def _compute_final_metrics(
        self,
        state: EngineState,
        series: List[SimPoint],
        metrics_over_time: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Compute final summary metrics."""
        prices = [p.price for p in series]
        frozen_events = sum(1 for m in metrics_over_time if m['freeze'] != FreezeState.IN_RANGE.value)
        fee_rates = [m['total_fee_rate'] for m in metrics_over_time]

        return {
            'num_points': len(series),
            'final_t': state.t,
            'final_price': state.price,
            'final_price_norm': state.price / self.base_price,
            'final_active_id': state.active_id,
            'final_display_id': self.depletion.display_id(state.active_id, state.freeze),
            'final_freeze': state.freeze.value,
            'final_volatility_accumulator': state.volatility.accumulator,
            'min_price': min(prices) if prices else state.price,
            'max_price': max(prices) if prices else state.price,
            'frozen_events': frozen_events,
            'mean_total_fee_rate': sum(fee_rates) / len(fee_rates) if fee_rates else 0.0,
        }
