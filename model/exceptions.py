#!/usr/bin/env python3
"""
Custom exceptions and warnings for the Bayesian model evaluation workflow.

Errors are fatal for the dataset being evaluated. Warnings are non-fatal:
they are collected and attached to the report section they belong to.
"""

class EvaluationError(Exception):
    """Base exception class for all model evaluation errors."""
    def __init__(self, message, details=None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self):
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# Data-related errors
class DataError(EvaluationError):
    """Error related to data loading or validation."""
    pass


class DataFormatError(DataError):
    """Input table is missing required columns or holds invalid values."""
    pass


# Model-related errors
class ModelError(EvaluationError):
    """Base class for model-related errors."""
    pass


class ModelBuildError(ModelError):
    """Error related to building a model graph."""
    pass


class SamplingError(ModelError):
    """Error related to MCMC or posterior predictive sampling."""
    pass


class ModelEvaluationError(ModelError):
    """Error related to model comparison or posterior predictive checks."""
    pass


# Configuration-related errors
class ConfigurationError(EvaluationError):
    """Error related to configuration."""
    pass


class VisualizationError(EvaluationError):
    """Error raised while rendering or saving a plot."""
    pass


# Non-fatal diagnostics
class EvaluationWarning(UserWarning):
    """Base class for non-fatal evaluation caveats."""
    pass


class FitConvergenceWarning(EvaluationWarning):
    """Inference shows signs of poor mixing or non-convergence."""
    pass


class EstimationWarning(EvaluationWarning):
    """The leave-one-out approximation is unreliable for some observations."""
    pass
