"""Build the startup failures dashboard dataset from sector CSV files."""

from .data_prep import FAILURE_REASONS, FUNDING_TIERS, funding_tier, parse_funding, parse_years_of_operation
from .models import Dataset, StartupRecord
from .pipeline import build_dataset, run_build

__version__ = "1.0.0"

__all__ = [
    "FAILURE_REASONS",
    "FUNDING_TIERS",
    "Dataset",
    "StartupRecord",
    "build_dataset",
    "funding_tier",
    "parse_funding",
    "parse_years_of_operation",
    "run_build",
]
