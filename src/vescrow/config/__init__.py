"""Configuration for the escrow ledger."""

from .loader import config_from_dict, load_config, merge_sections
from .schema import ClockSettings, EscrowConfig, MergeSettings, VeDetails, WeightLensSettings

__all__ = [
    "ClockSettings",
    "EscrowConfig",
    "MergeSettings",
    "VeDetails",
    "WeightLensSettings",
    "config_from_dict",
    "load_config",
    "merge_sections",
]
