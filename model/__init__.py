"""
Model package for Bayesian model evaluation.

This package provides candidate model specifications, the fitted-posterior
interface, and the PyMC implementation used to fit candidate GLMs.
"""

from model.base_model import ModelSpec, ElpdEstimate, FittedPosterior
from model.exceptions import (
    EvaluationError, DataError, DataFormatError, ModelError, ModelBuildError,
    SamplingError, ModelEvaluationError, ConfigurationError, VisualizationError,
    EvaluationWarning, FitConvergenceWarning, EstimationWarning,
)
from model.bayesian.model_builder import BayesianModelBuilder, ModelData
from model.sampling import BayesianSampler
from model.diagnostics import BayesianDiagnostics
from model.bayesian_model import BayesianGLM, fit_model, reliable_k_limit

__all__ = [
    'ModelSpec', 'ElpdEstimate', 'FittedPosterior',
    'EvaluationError', 'DataError', 'DataFormatError', 'ModelError', 'ModelBuildError',
    'SamplingError', 'ModelEvaluationError', 'ConfigurationError', 'VisualizationError',
    'EvaluationWarning', 'FitConvergenceWarning', 'EstimationWarning',
    'BayesianModelBuilder', 'ModelData', 'BayesianSampler', 'BayesianDiagnostics',
    'BayesianGLM', 'fit_model', 'reliable_k_limit',
]
