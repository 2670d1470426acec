"""Sampled history export and charts."""

from .charts import create_supply_chart, create_votes_chart
from .export import export_csv, export_json, sample_history, sample_timestamps

__all__ = [
    "create_supply_chart",
    "create_votes_chart",
    "export_csv",
    "export_json",
    "sample_history",
    "sample_timestamps",
]
