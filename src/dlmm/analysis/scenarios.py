"""Predefined strategy presets for DLMM simulation comparison."""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List

from ..config.schema import Config
from ..simulation.runner import SimulationResult, SimulationRunner


@dataclass
class Scenario:
    """A named preset with configuration overrides."""
    name: str
    description: str
    category: str  # "preset", "stress_test"
    overrides: Dict[str, Any]  # Config path -> value


@dataclass
class ScenarioComparison:
    """Result of comparing multiple presets."""
    scenarios: Dict[str, Scenario]
    results: Dict[str, SimulationResult]
    summary: Dict[str, Dict[str, Any]]  # scenario_name -> metrics summary


# ============================================================================
# PREDEFINED PRESETS
# ============================================================================

SCENARIO_LIBRARY = {
    "stables": Scenario(
        name="Stables (tight)",
        description="Fine grid and concentrated liquidity for pegged pairs",
        category="preset",
        overrides={
            "grid.bin_step_bps": 5,
            "liquidity.curve_sigma_bins": 8,
            "liquidity.inventory.x_total": 200.0,
            "liquidity.inventory.y_total": 200.0,
            "fees.base_factor": 0.8,
            "fees.base_fee_power": 0,
            "fees.variable_control": 0.8,
            "fees.max_fee_rate": 0.01,
            "runtime.trade_arrival_lambda_per_sec": 8.0,
            "runtime.duration_sec": 21600,
            "runtime.buy_probability": 0.52,
            "runtime.trade_size_lognorm.mu_log": -1.2,
            "runtime.trade_size_lognorm.sigma_log": 0.8,
        }
    ),
    "majors": Scenario(
        name="Majors (medium)",
        description="Medium grid for liquid majors such as SOL/USD",
        category="preset",
        overrides={
            "grid.bin_step_bps": 25,
            "liquidity.curve_sigma_bins": 16,
            "liquidity.inventory.x_total": 500.0,
            "liquidity.inventory.y_total": 500.0,
            "fees.base_factor": 1.0,
            "fees.base_fee_power": 0,
            "fees.variable_control": 1.2,
            "fees.max_fee_rate": 0.02,
            "runtime.trade_arrival_lambda_per_sec": 6.0,
            "runtime.duration_sec": 21600,
            "runtime.buy_probability": 0.53,
            "runtime.trade_size_lognorm.mu_log": -1.0,
            "runtime.trade_size_lognorm.sigma_log": 0.9,
        }
    ),
    "volatile": Scenario(
        name="Volatile (wide)",
        description="Wide grid and spread-out liquidity for long-tail assets",
        category="preset",
        overrides={
            "grid.bin_step_bps": 100,
            "liquidity.curve_sigma_bins": 28,
            "liquidity.inventory.x_total": 400.0,
            "liquidity.inventory.y_total": 400.0,
            "fees.base_factor": 1.2,
            "fees.base_fee_power": 0,
            "fees.variable_control": 2.0,
            "fees.max_fee_rate": 0.05,
            "runtime.trade_arrival_lambda_per_sec": 8.0,
            "runtime.duration_sec": 21600,
            "runtime.buy_probability": 0.55,
            "runtime.trade_size_lognorm.mu_log": -0.7,
            "runtime.trade_size_lognorm.sigma_log": 1.1,
        }
    ),
    "one_sided_buying": Scenario(
        name="One-sided buying",
        description="Persistent buy pressure that walks the price out of the range",
        category="stress_test",
        overrides={
            "runtime.buy_probability": 0.9,
            "runtime.trade_size_lognorm.mu_log": 0.5,
        }
    ),
    "no_depletion": Scenario(
        name="No depletion",
        description="Price keeps moving past the liquidity range",
        category="stress_test",
        overrides={
            "runtime.force_bin_depletion": False,
        }
    ),
}


class ScenarioRunner:
    """Run and compare predefined presets."""

    def __init__(self, base_config: Config):
        """
        Initialize scenario runner.

        Args:
            base_config: Base configuration to apply overrides to
        """
        self.base_config = base_config

    def get_available_scenarios(self) -> Dict[str, Scenario]:
        """Get all available presets."""
        return SCENARIO_LIBRARY.copy()

    def get_scenarios_by_category(self, category: str) -> Dict[str, Scenario]:
        """Get presets filtered by category."""
        return {
            name: scenario
            for name, scenario in SCENARIO_LIBRARY.items()
            if scenario.category == category
        }

    def apply_scenario(self, scenario: Scenario) -> Config:
        """
        Apply preset overrides to a copy of the base config.

        Args:
            scenario: Scenario with overrides

        Returns:
            Modified config (the base config is left untouched)
        """
        config = copy.deepcopy(self.base_config)

        for path, value in scenario.overrides.items():
            self._set_config_value(config, path, value)

        return config

    def apply_preset(self, scenario_name: str) -> Config:
        """Apply a preset by name."""
        if scenario_name not in SCENARIO_LIBRARY:
            raise ValueError(f"Unknown scenario: {scenario_name}")
        return self.apply_scenario(SCENARIO_LIBRARY[scenario_name])

    def run_scenario(
        self,
        scenario_name: str,
        random_seed: int = None
    ) -> SimulationResult:
        """
        Run a single preset.

        Args:
            scenario_name: Name of preset from library
            random_seed: Random seed for reproducibility

        Returns:
            Simulation result
        """
        config = self.apply_preset(scenario_name)
        runner = SimulationRunner(config)
        return runner.run(random_seed=random_seed)

    def compare_scenarios(
        self,
        scenario_names: List[str],
        include_base: bool = True,
        random_seed: int = None
    ) -> ScenarioComparison:
        """
        Run and compare multiple presets.

        Args:
            scenario_names: List of preset names to compare
            include_base: Whether to include base case
            random_seed: Random seed for reproducibility

        Returns:
            ScenarioComparison result

        Raises:
            ValueError: if any name is not in the library
        """
        unknown = [name for name in scenario_names if name not in SCENARIO_LIBRARY]
        if unknown:
            raise ValueError(f"Unknown scenario: {', '.join(unknown)}")

        seed = self.base_config.runtime.seed if random_seed is None else random_seed
        scenarios = {}
        results = {}
        summary = {}

        if include_base:
            scenarios["base"] = Scenario(
                name="Base Case",
                description="Configuration without modifications",
                category="base",
                overrides={}
            )
            results["base"] = SimulationRunner(self.base_config).run(random_seed=seed)
            summary["base"] = self._extract_summary(results["base"])

        for name in scenario_names:
            scenarios[name] = SCENARIO_LIBRARY[name]
            results[name] = self.run_scenario(name, seed)
            summary[name] = self._extract_summary(results[name])

        return ScenarioComparison(
            scenarios=scenarios,
            results=results,
            summary=summary
        )

    def _extract_summary(self, result: SimulationResult) -> Dict[str, Any]:
        """Extract key metrics summary from simulation result."""
        final_metrics = result.final_metrics
        return {
            'num_points': final_metrics.get('num_points', 0),
            'final_price_norm': final_metrics.get('final_price_norm', 1.0),
            'min_price': final_metrics.get('min_price', 0.0),
            'max_price': final_metrics.get('max_price', 0.0),
            'frozen_events': final_metrics.get('frozen_events', 0),
            'mean_total_fee_rate': final_metrics.get('mean_total_fee_rate', 0.0),
            'final_freeze': final_metrics.get('final_freeze'),
        }

    def _set_config_value(self, config: Config, path: str, value: Any) -> None:
        """Set a value in config using dot-notation path."""
        parts = path.split('.')
        obj = config
        for part in parts[:-1]:
            obj = getattr(obj, part)
        setattr(obj, parts[-1], value)


def format_comparison_table(comparison: ScenarioComparison) -> str:
    """
    Format preset comparison as a text table.

    Args:
        comparison: ScenarioComparison result

    Returns:
        Formatted table string
    """
    lines = []
    headers = ["Scenario", "Events", "Final P/P0", "Min price", "Max price", "Frozen", "Avg fee"]
    lines.append(" | ".join(f"{h:>12}" for h in headers))
    lines.append("-" * 99)

    for name, summary in comparison.summary.items():
        scenario = comparison.scenarios.get(name)
        display_name = scenario.name if scenario else name

        row = [
            f"{display_name[:12]:>12}",
            f"{summary['num_points']:>12,d}",
            f"{summary['final_price_norm']:>12.4f}",
            f"{summary['min_price']:>12.4f}",
            f"{summary['max_price']:>12.4f}",
            f"{summary['frozen_events']:>12,d}",
            f"{summary['mean_total_fee_rate']*100:>11.3f}%"
        ]
        lines.append(" | ".join(row))

    return "\n".join(lines)
