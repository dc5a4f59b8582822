"""Sanity checks and validation for simulation inputs and outputs."""

import math
from dataclasses import dataclass
from typing import List, Optional

from ..config.schema import Config
from ..engine.fees import SCALE, FeeModel
from ..engine.liquidity import BinLiquidityPool
from ..engine.volatility import MIN_FILTER_TIME
from ..simulation.events import MIN_LAMBDA
from ..simulation.runner import STATUS_FAILED, SimulationResult

MAX_REASONABLE_RANGE_BINS = 500


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "range", "bounds", "series"
    message: str
    details: Optional[str] = None


class ConfigValidationError(ValueError):
    """Raised by require_valid_config when error-level findings exist."""

    def __init__(self, warnings: List[ValidationWarning]):
        self.warnings = warnings
        lines = [f"- {w.message}" + (f" ({w.details})" if w.details else "") for w in warnings]
        super().__init__("Invalid configuration:\n" + "\n".join(lines))


class SanityChecker:
    """Run sanity checks on configuration, pools and results."""

    def __init__(self, config: Config):
        """Initialize with configuration."""
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check configuration inputs the engine accepts but clamps or freezes.

        Returns:
            List of validation warnings
        """
        warnings = []
        grid = self.config.grid
        left, right = grid.range_bins.left, grid.range_bins.right
        runtime = self.config.runtime
        adv = self.config.advanced_defaults

        if not left <= grid.active_id <= right:
            warnings.append(ValidationWarning(
                severity="warning",
                category="range",
                message="Initial active id lies outside the liquidity range; the run starts frozen",
                details=f"active_id={grid.active_id}, range=[{left}, {right}]"
            ))

        if right - left + 1 > MAX_REASONABLE_RANGE_BINS:
            warnings.append(ValidationWarning(
                severity="warning",
                category="range",
                message=f"Range spans more than {MAX_REASONABLE_RANGE_BINS} bins",
                details=f"{right - left + 1} bins"
            ))

        if grid.bin_step_bps <= 0:
            warnings.append(ValidationWarning(
                severity="error",
                category="input",
                message="Bin step is zero; every bin has the same price",
            ))

        prices = self.config.starting_prices
        if prices.y_usd == 0 or prices.x_usd == 0:
            warnings.append(ValidationWarning(
                severity="error",
                category="input",
                message="Degenerate starting prices; reference price defaults to 1",
                details=f"x_usd={prices.x_usd}, y_usd={prices.y_usd}"
            ))

        if runtime.duration_sec < 1:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Duration below 1s is raised to 1s",
                details=f"duration_sec={runtime.duration_sec}"
            ))

        if runtime.trade_arrival_lambda_per_sec < MIN_LAMBDA:
            warnings.append(ValidationWarning(
                severity="error",
                category="input",
                message=f"Arrival rate below {MIN_LAMBDA}/s is raised to {MIN_LAMBDA}/s",
                details=f"lambda={runtime.trade_arrival_lambda_per_sec}"
            ))

        if adv.vol_filter_t_f_sec < MIN_FILTER_TIME:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message=f"Volatility filter time is raised to {MIN_FILTER_TIME}s",
                details=f"t_f={adv.vol_filter_t_f_sec}"
            ))

        if adv.vol_decay_t_d_sec < adv.vol_filter_t_f_sec:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Decay time t_d is below filter time t_f and is raised to t_f",
                details=f"t_f={adv.vol_filter_t_f_sec}, t_d={adv.vol_decay_t_d_sec}"
            ))

        fee_model = FeeModel.from_config(self.config)
        base_rate = fee_model.base_fee_rate()
        if base_rate > self.config.fees.max_fee_rate:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message="Base fee exceeds the fee cap; total fee is always the cap",
                details=f"base={base_rate:.4%}, cap={self.config.fees.max_fee_rate:.4%}"
            ))

        inventory = self.config.liquidity.inventory
        if inventory.x_total == 0 and inventory.y_total == 0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Both inventories are empty; every swap exits the range",
            ))

        return warnings

    def check_pool(self, pool: BinLiquidityPool, tolerance: float = 1e-9) -> List[ValidationWarning]:
        """
        Check bin inventories and fee ledgers for negative or invalid values.

        Args:
            pool: Pool to inspect

        Returns:
            List of validation warnings
        """
        warnings = []
        for offset, b in enumerate(pool.bins):
            index = pool.left + offset
            buckets = [
                ('x_base', b.x_base),
                ('y_quote', b.y_quote),
                ('fee_accrued_base', b.fee_accrued_base),
                ('fee_accrued_quote', b.fee_accrued_quote),
            ]
            for name, value in buckets:
                if math.isnan(value) or math.isinf(value):
                    warnings.append(ValidationWarning(
                        severity="error",
                        category="nan",
                        message=f"Invalid value in bin {index}: {name}",
                        details=f"Value: {value}"
                    ))
                elif value < -tolerance:
                    warnings.append(ValidationWarning(
                        severity="error",
                        category="bounds",
                        message=f"Negative {name} in bin {index}",
                        details=f"Value: {value:.6g}"
                    ))
        return warnings


def validate_simulation_results(result: SimulationResult) -> List[ValidationWarning]:
    """
    Validate complete simulation results.

    Args:
        result: Simulation result

    Returns:
        List of all validation warnings
    """
    checker = SanityChecker(result.config)
    warnings = []

    warnings.extend(checker.check_config_inputs())

    if result.status == STATUS_FAILED:
        warnings.append(ValidationWarning(
            severity="error",
            category="runtime",
            message="Simulation stopped on a runtime fault",
            details=result.error
        ))

    prev_t = None
    for point in result.series:
        if prev_t is not None and point.t < prev_t:
            warnings.append(ValidationWarning(
                severity="error",
                category="series",
                message=f"Series time decreases at t={point.t:.3f}",
                details=f"Previous t={prev_t:.3f}"
            ))
            break
        prev_t = point.t

    for point in result.series:
        if not point.price > 0 or math.isinf(point.price):
            warnings.append(ValidationWarning(
                severity="error",
                category="series",
                message=f"Invalid price at t={point.t:.3f}",
                details=f"Value: {point.price}"
            ))
            break

    accumulator = result.final_state.volatility.accumulator
    if not 0 <= accumulator <= SCALE:
        warnings.append(ValidationWarning(
            severity="error",
            category="bounds",
            message="Volatility accumulator outside [0, SCALE]",
            details=f"Value: {accumulator}"
        ))

    return warnings


def require_valid_config(config: Config) -> List[ValidationWarning]:
    """
    Fail fast on error-level config findings.

    Returns:
        The warning-level findings when there are no errors

    Raises:
        ConfigValidationError: listing every error-level finding
    """
    findings = SanityChecker(config).check_config_inputs()
    errors = [w for w in findings if w.severity == "error"]
    if errors:
        raise ConfigValidationError(errors)
    return findings
