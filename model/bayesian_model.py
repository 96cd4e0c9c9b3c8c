"""
Bayesian GLM implementation of the fitted-posterior interface.

This module assembles the builder, sampler and diagnostics components into
``BayesianGLM``: a candidate model that can be fit once and then queried for
posterior predictive draws and a PSIS-LOO ELPD estimate.
"""

import warnings
from typing import Dict, Any, List, Optional

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm

from utils.logging_utils import get_logger
from utils.decorators import timed
from model.base_model import ElpdEstimate, FittedPosterior, ModelSpec
from model.bayesian.model_builder import BayesianModelBuilder, ModelData
from model.constants import (
    DEFAULT_MIN_ESS,
    DEFAULT_PARETO_K_THRESHOLD,
    DEFAULT_PRIOR_SCALE,
    DEFAULT_RHAT_THRESHOLD,
)
from model.diagnostics import BayesianDiagnostics
from model.exceptions import EstimationWarning, ModelError
from model.sampling import BayesianSampler

logger = get_logger()


def reliable_k_limit(n_samples: int, threshold: float = DEFAULT_PARETO_K_THRESHOLD) -> float:
    """
    Largest Pareto k for which PSIS-LOO is trusted with ``n_samples`` draws.

    Follows ArviZ's sample-size dependent bound ``1 - 1/log10(S)`` (Vehtari
    et al. 2024), capped at ``threshold``.
    """
    if n_samples <= 10:
        # log10(S) <= 1 makes the bound non-positive; nothing is reliable
        return 0.0
    return min(1.0 - 1.0 / np.log10(n_samples), threshold)


class BayesianGLM(FittedPosterior):
    """
    Candidate GLM fitted with PyMC.

    This class orchestrates the lifecycle of one candidate model:
    1. Design preparation and graph building (BayesianModelBuilder)
    2. MCMC sampling (BayesianSampler)
    3. Convergence diagnostics (BayesianDiagnostics)
    4. Posterior predictive sampling and PSIS-LOO on demand
    """

    def __init__(
        self,
        spec: ModelSpec,
        sampler_config: Optional[Dict[str, Any]] = None,
        random_seed: Optional[int] = None,
        pareto_k_threshold: float = DEFAULT_PARETO_K_THRESHOLD,
        prior_scale: float = DEFAULT_PRIOR_SCALE,
    ):
        """
        Initialize an unfitted candidate model.

        Args:
            spec: Candidate model specification
            sampler_config: Sampler and diagnostic settings, as from AppConfig.sampler_config()
            random_seed: Seed for this model's random streams
            pareto_k_threshold: Upper bound on the Pareto k limit; fewer draws lower it (see reliable_k_limit)
            prior_scale: Multiplier on the autoscaled prior standard deviations
        """
        sampler_config = sampler_config or {}
        self.spec = spec
        self.name = spec.name
        self.random_seed = random_seed
        self.pareto_k_threshold = pareto_k_threshold

        self.builder = BayesianModelBuilder(prior_scale=prior_scale)
        self.sampler = BayesianSampler.from_config(sampler_config)
        self.diagnostics = BayesianDiagnostics(
            rhat_threshold=sampler_config.get("rhat_threshold", DEFAULT_RHAT_THRESHOLD),
            min_ess=sampler_config.get("min_ess", DEFAULT_MIN_ESS),
        )

        self.model_data: Optional[ModelData] = None
        self.pymc_model: Optional[pm.Model] = None
        self.trace: Optional[az.InferenceData] = None
        self.convergence: Dict[str, Any] = {}
        self._fit_warnings: List[Warning] = []
        self._predictive: Optional[np.ndarray] = None
        self._elpd: Optional[ElpdEstimate] = None

    @property
    def is_fitted(self) -> bool:
        return self.trace is not None

    @property
    def n_obs(self) -> int:
        self._require_fit()
        return self.model_data.n_obs

    @property
    def fit_warnings(self) -> List[Warning]:
        return list(self._fit_warnings)

    @timed("Model fitting")
    def fit(self, data: pd.DataFrame) -> "BayesianGLM":
        """
        Fit the model to an observation table.

        Args:
            data: Observation table holding the formula's columns

        Returns:
            self, fitted

        Raises:
            DataFormatError: If the data do not suit the model specification
            SamplingError: If MCMC sampling fails
        """
        logger.info(f"Fitting model '{self.name}': {self.spec.formula} ({self.spec.family})")

        self.model_data = self.builder.prepare_model_data(self.spec, data)
        self.pymc_model = self.builder.build_model(self.model_data)
        self.trace = self.sampler.sample(self.pymc_model, random_seed=self.random_seed)

        self.convergence = self.diagnostics.compute_diagnostics(self.trace)
        self._fit_warnings = list(self.diagnostics.assess_convergence(self.convergence, model_name=self.name))
        self._predictive = None
        self._elpd = None
        return self

    def predict_samples(self, covariates: Optional[pd.DataFrame] = None) -> np.ndarray:
        """
        Draw posterior predictive outcome vectors.

        Args:
            covariates: New covariate rows; None means the fitting data

        Returns:
            Read-only matrix of shape (n_draws, n_rows)
        """
        self._require_fit()

        if covariates is None:
            if self._predictive is None:
                samples = self.sampler.sample_posterior_predictive(
                    self.pymc_model, self.trace, random_seed=self.random_seed)
                samples.setflags(write=False)
                self._predictive = samples
            return self._predictive

        X_new = self.builder.design_for(self.model_data, covariates)
        y_placeholder = np.zeros(X_new.shape[0], dtype=self.model_data.y.dtype)
        try:
            pm.set_data({"X": X_new, "y": y_placeholder}, model=self.pymc_model)
            samples = self.sampler.sample_posterior_predictive(
                self.pymc_model, self.trace, random_seed=self.random_seed, predictions=True)
        finally:
            pm.set_data({"X": self.model_data.X, "y": self.model_data.y}, model=self.pymc_model)

        samples.setflags(write=False)
        return samples

    def estimate_elpd(self) -> ElpdEstimate:
        """
        Estimate ELPD with Pareto-smoothed importance sampling LOO.

        Returns:
            ElpdEstimate; carries an EstimationWarning when any Pareto k
            exceeds ``reliable_k_limit`` for this posterior, or when ArviZ
            itself flags the estimate
        """
        self._require_fit()
        if self._elpd is not None:
            return self._elpd

        with warnings.catch_warnings():
            # ArviZ's own Pareto k warning is replaced by EstimationWarning below
            warnings.simplefilter("ignore", category=UserWarning)
            loo = az.loo(self.trace, pointwise=True)

        n_samples = self.trace.posterior.sizes["chain"] * self.trace.posterior.sizes["draw"]
        k_limit = reliable_k_limit(n_samples, self.pareto_k_threshold)
        pareto_k = np.asarray(loo["pareto_k"])
        n_high = int(np.sum(pareto_k > k_limit))
        issues = []
        if n_high or bool(loo.get("warning", False)):
            issue = EstimationWarning(
                f"{self.name}: {n_high} of {len(pareto_k)} observations have Pareto k > "
                f"{k_limit:.2f} ({n_samples} draws); the LOO estimate may be unreliable")
            logger.warning(str(issue))
            warnings.warn(issue, stacklevel=2)
            issues.append(issue)

        self._elpd = ElpdEstimate(
            elpd=float(loo["elpd_loo"]),
            se=float(loo["se"]),
            pointwise=np.asarray(loo["loo_i"]),
            p_loo=float(loo["p_loo"]),
            n_high_pareto_k=n_high,
            warnings=issues,
        )
        logger.info(f"{self.name}: elpd_loo = {self._elpd.elpd:.2f} (se {self._elpd.se:.2f})")
        return self._elpd

    def coefficient_summary(self) -> pd.DataFrame:
        """Posterior summary of the model's coefficients and scale parameter."""
        self._require_fit()
        var_names = ["beta"] + (["sigma"] if "sigma" in self.trace.posterior else [])
        return az.summary(self.trace, var_names=var_names, kind="stats")

    def summarize(self) -> Dict[str, Any]:
        """Get model summary information."""
        return {
            "name": self.name,
            "formula": self.spec.formula,
            "family": self.spec.family,
            "fitted": self.is_fitted,
            "n_obs": self.model_data.n_obs if self.model_data is not None else None,
            "n_draws": self.sampler.total_draws,
            "random_seed": self.random_seed,
            "convergence": dict(self.convergence),
            "warnings": [str(w) for w in self._fit_warnings],
        }

    def _require_fit(self) -> None:
        if not self.is_fitted:
            raise ModelError(f"Model '{self.name}' has not been fitted")


def fit_model(
    spec: ModelSpec,
    data: pd.DataFrame,
    sampler_config: Optional[Dict[str, Any]] = None,
    random_seed: Optional[int] = None,
    pareto_k_threshold: float = DEFAULT_PARETO_K_THRESHOLD,
    prior_scale: float = DEFAULT_PRIOR_SCALE,
) -> BayesianGLM:
    """
    Fit a candidate model and return its fitted posterior.

    Args:
        spec: Candidate model specification
        data: Observation table
        sampler_config: Sampler and diagnostic settings
        random_seed: Seed for this model's random streams
        pareto_k_threshold: Upper bound on the Pareto k limit; fewer draws lower it (see reliable_k_limit)
        prior_scale: Multiplier on the autoscaled prior standard deviations

    Returns:
        Fitted BayesianGLM
    """
    model = BayesianGLM(
        spec,
        sampler_config=sampler_config,
        random_seed=random_seed,
        pareto_k_threshold=pareto_k_threshold,
        prior_scale=prior_scale,
    )
    return model.fit(data)
