#!/usr/bin/env python3
"""
Base model module for the Bayesian model evaluation workflow.

Defines the candidate model specification and the abstract fitted-posterior
interface that the comparator and the posterior predictive checker depend on.
Any fitting backend (or a test double) that implements ``FittedPosterior`` can
be evaluated without touching the evaluation code.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd

from model.constants import SUPPORTED_FAMILIES, FAMILY_GAUSSIAN
from model.exceptions import ModelBuildError


@dataclass(frozen=True)
class ModelSpec:
    """
    Specification of a candidate regression model.

    Attributes
    ----------
    name : str
        Model identifier used in tables and plots.
    formula : str
        Patsy formula, e.g. ``"vote ~ past_vote + incumbent_party"``.
    family : str
        Likelihood family, one of ``SUPPORTED_FAMILIES``.
    """
    name: str
    formula: str
    family: str = FAMILY_GAUSSIAN

    def __post_init__(self):
        if not self.name:
            raise ModelBuildError("Model name must not be empty")
        if "~" not in self.formula:
            raise ModelBuildError(f"Formula for model '{self.name}' has no response: {self.formula!r}")
        if self.family not in SUPPORTED_FAMILIES:
            raise ModelBuildError(
                f"Unsupported family '{self.family}' for model '{self.name}'",
                details={"supported": list(SUPPORTED_FAMILIES)}
            )

    @property
    def response(self) -> str:
        """Left-hand side of the formula."""
        return self.formula.split("~", 1)[0].strip()


@dataclass
class ElpdEstimate:
    """
    Leave-one-out expected log predictive density of one fitted model.

    Attributes
    ----------
    elpd : float
        Estimated ELPD (sum over observations).
    se : float
        Standard error of ``elpd``.
    pointwise : numpy.ndarray, optional
        Per-observation ELPD contributions. Needed for paired difference
        standard errors in model comparison.
    p_loo : float, optional
        Effective number of parameters.
    n_high_pareto_k : int
        Observations whose Pareto k exceeds the reliability threshold.
    warnings : list of Warning
        Non-fatal estimation caveats.
    """
    elpd: float
    se: float
    pointwise: Optional[np.ndarray] = None
    p_loo: Optional[float] = None
    n_high_pareto_k: int = 0
    warnings: List[Warning] = field(default_factory=list)

    @property
    def n_obs(self) -> Optional[int]:
        return None if self.pointwise is None else int(len(self.pointwise))


class FittedPosterior(ABC):
    """
    Abstract fitted posterior of a candidate model.

    Exposes exactly the two capabilities model evaluation needs: posterior
    predictive sampling and a leave-one-out ELPD estimate. Implementations
    also report the number of observations they were fit on and any
    non-fatal fit warnings.
    """

    name: str = "model"

    @property
    @abstractmethod
    def n_obs(self) -> int:
        """Number of observations in the fitting dataset."""

    @abstractmethod
    def predict_samples(self, covariates: Optional[pd.DataFrame] = None) -> np.ndarray:
        """
        Draw posterior predictive outcome vectors.

        Parameters
        ----------
        covariates : pandas.DataFrame, optional
            Covariate rows to predict for. ``None`` means the fitting data.

        Returns
        -------
        numpy.ndarray
            Matrix of shape ``(n_draws, n_rows)``.
        """

    @abstractmethod
    def estimate_elpd(self) -> ElpdEstimate:
        """
        Estimate leave-one-out ELPD.

        Returns
        -------
        ElpdEstimate
            Estimate with standard error and any reliability warnings.
        """

    @property
    def fit_warnings(self) -> List[Warning]:
        """Non-fatal warnings raised while fitting. Empty by default."""
        return []
