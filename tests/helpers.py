"""
Test doubles for the fitted-posterior interface.
"""
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from model.base_model import ElpdEstimate, FittedPosterior
from model.exceptions import EstimationWarning


class FakePosterior(FittedPosterior):
    """Fitted posterior backed by a fixed replicate matrix and ELPD."""

    def __init__(self, name: str, replicates: np.ndarray, elpd: float, se: float = 5.0,
                 pointwise: Optional[np.ndarray] = None, warnings: Sequence[Warning] = (),
                 fit_warnings: Sequence[Warning] = ()):
        self.name = name
        self.replicates = np.asarray(replicates)
        self.elpd = elpd
        self.se = se
        self.pointwise = pointwise
        self._warnings = list(warnings)
        self._fit_warnings = list(fit_warnings)
        self.predict_calls = 0

    @property
    def n_obs(self) -> int:
        return self.replicates.shape[1]

    @property
    def fit_warnings(self) -> List[Warning]:
        return list(self._fit_warnings)

    def predict_samples(self, covariates: Optional[pd.DataFrame] = None) -> np.ndarray:
        self.predict_calls += 1
        return self.replicates

    def estimate_elpd(self) -> ElpdEstimate:
        return ElpdEstimate(
            elpd=self.elpd,
            se=self.se,
            pointwise=self.pointwise,
            p_loo=2.0,
            n_high_pareto_k=len(self._warnings),
            warnings=list(self._warnings),
        )


def make_posterior(name: str, elpd: float, n_obs: int = 20, n_draws: int = 200,
                   seed: int = 0, **kwargs) -> FakePosterior:
    """FakePosterior with standard-normal replicates."""
    rng = np.random.default_rng(seed)
    return FakePosterior(name, rng.normal(size=(n_draws, n_obs)), elpd, **kwargs)


class FakeFitter:
    """
    Stand-in for ``fit_model`` that records its calls.

    Replicates are the observed response plus noise seeded by ``random_seed``.
    """

    def __init__(self, elpds: Dict[str, float], n_draws: int = 200,
                 elpd_warnings: Optional[Dict[str, List[Warning]]] = None,
                 fit_warnings: Optional[Dict[str, List[Warning]]] = None):
        self.elpds = elpds
        self.n_draws = n_draws
        self.elpd_warnings = elpd_warnings or {}
        self.fit_warnings = fit_warnings or {}
        self.calls = []

    def __call__(self, spec, data, sampler_config=None, random_seed=None, **kwargs):
        self.calls.append({"spec": spec, "random_seed": random_seed,
                           "sampler_config": sampler_config, **kwargs})
        rng = np.random.default_rng(random_seed)
        y = data[spec.response].to_numpy(dtype=float)
        replicates = y + rng.normal(0.0, np.std(y) * 0.1 + 1e-6, size=(self.n_draws, len(y)))
        return FakePosterior(
            spec.name, replicates, self.elpds[spec.name],
            warnings=self.elpd_warnings.get(spec.name, ()),
            fit_warnings=self.fit_warnings.get(spec.name, ()),
        )


def pareto_warning(name: str) -> EstimationWarning:
    return EstimationWarning(f"{name}: 3 of 20 observations have Pareto k > 0.7")
