"""
Bayesian model sampling component.

This module runs MCMC sampling and posterior predictive sampling for PyMC
models built by ``BayesianModelBuilder``.
"""
from typing import Dict, Any, Optional

import arviz as az
import numpy as np
import pymc as pm

from utils.logging_utils import logger, log_step
from model.exceptions import SamplingError
from model.constants import (
    DEFAULT_DRAWS,
    DEFAULT_TUNE,
    DEFAULT_CHAINS,
    DEFAULT_CORES,
    DEFAULT_TARGET_ACCEPT,
)

OBSERVED_VAR = "y_obs"


class BayesianSampler:
    """
    Handles sampling for candidate GLMs.

    This component is responsible for:
    - Running NUTS with an explicit random seed
    - Keeping pointwise log-likelihood for leave-one-out estimation
    - Drawing posterior predictive outcome matrices
    """

    def __init__(
        self,
        n_draws: int = DEFAULT_DRAWS,
        n_tune: int = DEFAULT_TUNE,
        n_chains: int = DEFAULT_CHAINS,
        n_cores: int = DEFAULT_CORES,
        target_accept: float = DEFAULT_TARGET_ACCEPT,
    ):
        """
        Initialize the sampler.

        Args:
            n_draws: Number of sampling draws per chain after tuning
            n_tune: Number of tuning steps
            n_chains: Number of MCMC chains to run
            n_cores: Number of chains run in parallel processes
            target_accept: Target acceptance rate for NUTS sampler
        """
        if n_draws < 1 or n_chains < 1 or n_tune < 0:
            raise SamplingError(
                "Invalid sampler settings",
                details={"n_draws": n_draws, "n_tune": n_tune, "n_chains": n_chains}
            )
        self.n_draws = n_draws
        self.n_tune = n_tune
        self.n_chains = n_chains
        self.n_cores = n_cores
        self.target_accept = target_accept

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "BayesianSampler":
        """Create a sampler from a dict holding any of the constructor arguments."""
        config = config or {}
        return cls(
            n_draws=config.get("n_draws", DEFAULT_DRAWS),
            n_tune=config.get("n_tune", DEFAULT_TUNE),
            n_chains=config.get("n_chains", DEFAULT_CHAINS),
            n_cores=config.get("n_cores", DEFAULT_CORES),
            target_accept=config.get("target_accept", DEFAULT_TARGET_ACCEPT),
        )

    @property
    def total_draws(self) -> int:
        return self.n_draws * self.n_chains

    @log_step("Running MCMC sampling")
    def sample(self, model: pm.Model, random_seed: Optional[int] = None) -> az.InferenceData:
        """
        Run MCMC sampling on the given PyMC model.

        Args:
            model: PyMC model
            random_seed: Seed for the sampler's random stream

        Returns:
            InferenceData with posterior, sample_stats and log_likelihood groups

        Raises:
            SamplingError: If sampling fails
        """
        logger.info(f"Starting MCMC sampling with parameters: draws={self.n_draws}, tune={self.n_tune}, "
                    f"chains={self.n_chains}, target_accept={self.target_accept}, seed={random_seed}")
        try:
            with model:
                trace = pm.sample(
                    draws=self.n_draws,
                    tune=self.n_tune,
                    chains=self.n_chains,
                    cores=self.n_cores,
                    target_accept=self.target_accept,
                    random_seed=random_seed,
                    idata_kwargs={"log_likelihood": True},
                    progressbar=False,
                )
        except (ValueError, RuntimeError, TypeError) as e:
            raise SamplingError(f"MCMC sampling failed: {str(e)}") from e

        logger.info(f"Completed MCMC sampling with {self.total_draws} draws")
        return trace

    def sample_posterior_predictive(
        self,
        model: pm.Model,
        trace: az.InferenceData,
        random_seed: Optional[int] = None,
        predictions: bool = False,
    ) -> np.ndarray:
        """
        Draw posterior predictive outcomes for the data currently set on the model.

        Args:
            model: PyMC model the trace was drawn from
            trace: Posterior draws
            random_seed: Seed for the predictive random stream
            predictions: Whether the model data holds new covariate rows

        Returns:
            Matrix of shape (chains * draws, n_rows)

        Raises:
            SamplingError: If predictive sampling fails
        """
        try:
            with model:
                result = pm.sample_posterior_predictive(
                    trace,
                    var_names=[OBSERVED_VAR],
                    random_seed=random_seed,
                    predictions=predictions,
                    progressbar=False,
                )
        except (ValueError, RuntimeError, TypeError) as e:
            raise SamplingError(f"Posterior predictive sampling failed: {str(e)}") from e

        group = result.predictions if predictions else result.posterior_predictive
        values = np.asarray(group[OBSERVED_VAR].values)
        # (chain, draw, obs) -> (chain * draw, obs)
        return values.reshape(-1, values.shape[-1])
