"""Validation and sanity checks for DLMM simulation."""

from .sanity_checks import (
    ConfigValidationError,
    SanityChecker,
    ValidationWarning,
    require_valid_config,
    validate_simulation_results,
)

__all__ = [
    "ConfigValidationError",
    "SanityChecker",
    "ValidationWarning",
    "require_valid_config",
    "validate_simulation_results"
]
