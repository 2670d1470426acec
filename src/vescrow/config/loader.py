"""Escrow configuration loading: packaged defaults, a YAML file, then overrides."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .schema import EscrowConfig

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level of an escrow config must be a mapping")
    return data


def merge_sections(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay ``overrides`` on ``base`` section by section, leaving both untouched."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_sections(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    yaml_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> EscrowConfig:
    """
    Load the escrow configuration.

    A partial file only needs the keys it changes: it is layered over the
    packaged defaults, and ``overrides`` is layered over the result.

    Args:
        yaml_path: YAML file to apply over the packaged defaults
        overrides: Nested section values applied last

    Returns:
        Validated EscrowConfig
    """
    data = _read_yaml(DEFAULTS_PATH)
    if yaml_path is not None:
        data = merge_sections(data, _read_yaml(yaml_path))
    if overrides:
        data = merge_sections(data, overrides)
    return EscrowConfig.model_validate(data)


def config_from_dict(data: Dict[str, Any]) -> EscrowConfig:
    """Build a config from a (possibly partial) mapping over the model defaults."""
    return EscrowConfig.from_dict(data)
