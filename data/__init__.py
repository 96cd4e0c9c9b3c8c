"""
Data package for the Bayesian model evaluation examples.

This package provides dataset loading and validation, indicator derivation,
and synthetic data for the bundled examples.
"""

from data.data_loader import DataLoader, DatasetSchema, IndicatorSpec, derive_indicators, validate_table
from data.generate_data import simulate_congress, simulate_birthweight, generate_example_data

__all__ = [
    'DataLoader', 'DatasetSchema', 'IndicatorSpec', 'derive_indicators', 'validate_table',
    'simulate_congress', 'simulate_birthweight', 'generate_example_data',
]
