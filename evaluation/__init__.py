"""
Model evaluation package.

Components:
- comparison.py: leave-one-out ELPD ranking of candidate models
- ppc.py: density overlay and test statistic posterior predictive checks
- report.py: report composition and export
- visualization.py: PNG plots of the report contents
"""

from evaluation.comparison import ComparisonRow, ComparisonTable, compare, difference_se
from evaluation.ppc import (
    Group, OverlayData, StatCheckData, Statistic,
    bin_groups, category_groups,
    check_outcome, check_model_outcome, check_statistic, check_model_statistic,
    count_above, count_below, proportion_above, proportion_below, proportion_outside,
)
from evaluation.report import EvaluationReport

__all__ = [
    'ComparisonRow', 'ComparisonTable', 'compare', 'difference_se',
    'Group', 'OverlayData', 'StatCheckData', 'Statistic',
    'bin_groups', 'category_groups',
    'check_outcome', 'check_model_outcome', 'check_statistic', 'check_model_statistic',
    'count_above', 'count_below', 'proportion_above', 'proportion_below', 'proportion_outside',
    'EvaluationReport',
]
