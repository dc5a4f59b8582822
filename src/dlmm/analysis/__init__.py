"""Analysis tools for DLMM simulation."""

from .ranges import (
    MAX_LISTED_BINS,
    PriceBin,
    RangeBinBreakdown,
    SuggestedRange,
    range_to_bins,
    suggest_range,
)
from .scenarios import (
    SCENARIO_LIBRARY,
    Scenario,
    ScenarioComparison,
    ScenarioRunner,
    format_comparison_table,
)

__all__ = [
    # Range calculators
    "SuggestedRange",
    "RangeBinBreakdown",
    "PriceBin",
    "MAX_LISTED_BINS",
    "suggest_range",
    "range_to_bins",
    # Presets
    "Scenario",
    "ScenarioComparison",
    "ScenarioRunner",
    "SCENARIO_LIBRARY",
    "format_comparison_table",
]
