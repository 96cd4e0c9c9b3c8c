"""
PyMC-specific model components.

Components:
- model_builder.py: patsy design preparation and PyMC graph construction
"""

from model.bayesian.model_builder import BayesianModelBuilder, ModelData

__all__ = ['BayesianModelBuilder', 'ModelData']
