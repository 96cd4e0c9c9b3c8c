"""
Bayesian Model Evaluation Module

This package evaluates candidate Bayesian regression models on the bundled
congressional vote share and birthweight examples. The package includes
components for:

- Data loading, validation and simulation
- Fitting candidate GLMs with PyMC
- Leave-one-out ELPD comparison and posterior predictive checks
- Report and plot generation

Main components:
- model: Candidate model specification and PyMC fitting
- evaluation: Comparison, checks, reports and plots
- data: Data loading and simulation
- config: Configuration management and example definitions
- utils: Utility functions for logging, timing, etc.
"""

__version__ = '0.1.0'

from model.bayesian_model import fit_model
from data.data_loader import DataLoader
from evaluation.comparison import compare
from evaluation.ppc import check_outcome, check_statistic
from config.config_manager import ConfigManager

__all__ = [
    'fit_model',
    'DataLoader',
    'compare',
    'check_outcome',
    'check_statistic',
    'ConfigManager',
]
