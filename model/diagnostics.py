"""
Convergence diagnostics for fitted candidate models.

Poor mixing never aborts the pipeline: it is turned into
``FitConvergenceWarning`` objects that travel with the fitted model into the
report.
"""
import warnings
from typing import Dict, Any, List, Optional

import arviz as az
import pandas as pd

from utils.logging_utils import logger
from model.exceptions import FitConvergenceWarning
from model.constants import DEFAULT_RHAT_THRESHOLD, DEFAULT_MIN_ESS


class BayesianDiagnostics:
    """
    Provides convergence diagnostics for MCMC traces.

    Responsibilities:
    - Computing R-hat, bulk ESS and divergence counts
    - Turning threshold breaches into FitConvergenceWarning objects
    """

    def __init__(
        self,
        rhat_threshold: float = DEFAULT_RHAT_THRESHOLD,
        min_ess: float = DEFAULT_MIN_ESS
    ):
        """
        Initialize the diagnostics component.

        Args:
            rhat_threshold: Largest acceptable R-hat
            min_ess: Smallest acceptable bulk effective sample size
        """
        self.rhat_threshold = rhat_threshold
        self.min_ess = min_ess

    def compute_diagnostics(self, trace: az.InferenceData,
                            var_names: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Compute diagnostic metrics for the trace.

        Args:
            trace: InferenceData with posterior samples
            var_names: Variables to check (defaults to all posterior variables)

        Returns:
            Dictionary with rhat_max, ess_bulk_min, n_divergent and n_parameters
        """
        summary = az.summary(trace, var_names=var_names, kind="diagnostics")

        n_divergent = 0
        if hasattr(trace, "sample_stats") and "diverging" in trace.sample_stats:
            n_divergent = int(trace.sample_stats["diverging"].sum().item())

        diagnostics = {
            "rhat_max": float(summary["r_hat"].max()) if "r_hat" in summary else float("nan"),
            "ess_bulk_min": float(summary["ess_bulk"].min()),
            "n_divergent": n_divergent,
            "n_parameters": len(summary),
        }

        logger.info(f"Computed diagnostics: max Rhat = {diagnostics['rhat_max']:.3f}, "
                    f"min ESS = {diagnostics['ess_bulk_min']:.1f}, "
                    f"n_divergent = {diagnostics['n_divergent']}")
        return diagnostics

    def assess_convergence(self, diagnostics: Dict[str, Any], model_name: str = "") -> List[FitConvergenceWarning]:
        """
        Turn diagnostic metrics into convergence warnings.

        Args:
            diagnostics: Output of ``compute_diagnostics``
            model_name: Model identifier used in the messages

        Returns:
            List of FitConvergenceWarning, empty when the chains look converged
        """
        prefix = f"{model_name}: " if model_name else ""
        issues = []

        rhat_max = diagnostics.get("rhat_max")
        # R-hat is undefined for a single chain
        if rhat_max is not None and pd.notna(rhat_max) and rhat_max > self.rhat_threshold:
            issues.append(FitConvergenceWarning(
                f"{prefix}max R-hat {rhat_max:.3f} exceeds {self.rhat_threshold}"))

        ess_min = diagnostics.get("ess_bulk_min")
        if ess_min is not None and pd.notna(ess_min) and ess_min < self.min_ess:
            issues.append(FitConvergenceWarning(
                f"{prefix}min bulk ESS {ess_min:.0f} is below {self.min_ess}"))

        n_divergent = diagnostics.get("n_divergent", 0)
        if n_divergent:
            issues.append(FitConvergenceWarning(
                f"{prefix}{n_divergent} divergent transitions after tuning"))

        for issue in issues:
            logger.warning(str(issue))
            warnings.warn(issue, stacklevel=2)

        if not issues:
            logger.info(f"{prefix}MCMC chains have converged successfully")

        return issues
