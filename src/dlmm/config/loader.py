"""Configuration loader from YAML.

The bundled defaults.yaml describes a SOL/USD majors grid: 25 bps bins over
[-50, 50], Curve liquidity, a 2% fee cap and a six-hour trade stream.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .schema import Config

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_config(yaml_path: Optional[str] = None) -> Config:
    """
    Load a pool and run configuration from YAML.

    Args:
        yaml_path: Path to YAML file (defaults to the bundled SOL/USD grid)

    Returns:
        Validated Config

    Raises:
        pydantic.ValidationError: on malformed sections (e.g. left > right)
    """
    if yaml_path is None:
        yaml_path = DEFAULTS_PATH

    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f)

    return Config.from_dict(data)


def config_from_dict(data: Dict[str, Any]) -> Config:
    """Build a Config from nested pair/grid/liquidity/fees/runtime sections."""
    return Config.from_dict(data)


def save_config(config: Config, yaml_path: str) -> None:
    """Write a config back to YAML so an edited run can be reproduced."""
    with open(yaml_path, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
