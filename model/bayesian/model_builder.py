"""
Bayesian GLM builder for candidate regression models.

This module turns a ``ModelSpec`` and an observation table into a design
matrix (via patsy) and a PyMC model graph with weakly informative,
autoscaled priors.
"""

from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd
import patsy
import pymc as pm

from utils.logging_utils import logger
from model.base_model import ModelSpec
from model.constants import (
    FAMILY_GAUSSIAN,
    FAMILY_LOGNORMAL,
    FAMILY_BERNOULLI,
    DEFAULT_PRIOR_SCALE,
)
from model.exceptions import DataFormatError, ModelBuildError

# Namespace available to formulas besides the data columns
FORMULA_NAMESPACE = {"np": np}


@dataclass
class ModelData:
    """
    Container for a prepared design.

    ASSUMPTIONS:
    - X holds the patsy design with non-intercept columns centered
    - y is on the observation scale (positive for lognormal, 0/1 for bernoulli)
    - column_means holds the centering applied to each design column
      (0 for the intercept) so new covariates get the same transform
    """
    X: np.ndarray
    y: np.ndarray
    column_names: List[str]
    column_means: np.ndarray
    design_info: patsy.DesignInfo
    family: str

    @property
    def n_obs(self) -> int:
        return int(self.X.shape[0])

    @property
    def n_params(self) -> int:
        # bernoulli has no residual scale
        return int(self.X.shape[1]) + (0 if self.family == FAMILY_BERNOULLI else 1)


class BayesianModelBuilder:
    """
    Builds PyMC model graphs for candidate GLMs.

    ASSUMPTIONS:
    - Linear predictor is X @ beta on the link scale
    - gaussian: identity link, Normal likelihood
    - lognormal: Normal on log(y), so ELPD stays on the scale of y
    - bernoulli: logit link

    MODELING CHOICES:
    - Intercept prior Normal(mean(y*), s * sd(y*)) on centered predictors
    - Slope priors Normal(0, s * sd(y*) / sd(x_j))
    - Residual scale prior Exponential(1 / sd(y*))
    where y* is the response on the link scale (sd(y*) = 1 for bernoulli)
    and s is ``prior_scale``.
    """

    def __init__(self, prior_scale: float = DEFAULT_PRIOR_SCALE):
        """
        Initialize the model builder.

        Args:
            prior_scale: Multiplier on the autoscaled prior standard deviations
        """
        if prior_scale <= 0:
            raise ModelBuildError(f"prior_scale must be positive, got {prior_scale}")
        self.prior_scale = prior_scale

    def prepare_model_data(self, spec: ModelSpec, data: pd.DataFrame) -> ModelData:
        """
        Build the response vector and design matrix for a model.

        Args:
            spec: Candidate model specification
            data: Observation table

        Returns:
            ModelData ready for ``build_model``

        Raises:
            DataFormatError: If columns are missing, a categorical factor has
                fewer than two levels, the response is invalid for the family,
                or there are not more observations than parameters
        """
        frame = self._coerce_response(spec, data)

        try:
            y_df, X_df = patsy.dmatrices(
                spec.formula,
                frame,
                eval_env=patsy.EvalEnvironment([FORMULA_NAMESPACE]),
                NA_action="raise",
                return_type="dataframe",
            )
        except patsy.PatsyError as e:
            raise DataFormatError(
                f"Cannot build design matrix for model '{spec.name}'",
                details=str(e).splitlines()[0]
            ) from e

        if y_df.shape[1] != 1:
            raise DataFormatError(
                f"Response of model '{spec.name}' must be a single numeric column",
                details={"columns": list(y_df.columns)}
            )

        self._check_categorical_levels(spec, X_df.design_info)

        y = y_df.iloc[:, 0].to_numpy(dtype=float)
        self._check_response(spec, y)
        if spec.family == FAMILY_BERNOULLI:
            y = y.astype("int64")

        X = X_df.to_numpy(dtype=float)
        column_means = X.mean(axis=0)
        column_means[self._intercept_mask(X_df.design_info)] = 0.0

        model_data = ModelData(
            X=X - column_means,
            y=y,
            column_names=list(X_df.columns),
            column_means=column_means,
            design_info=X_df.design_info,
            family=spec.family,
        )

        if model_data.n_obs <= model_data.n_params:
            raise DataFormatError(
                f"Model '{spec.name}' needs more observations than parameters",
                details={"n_obs": model_data.n_obs, "n_params": model_data.n_params}
            )

        logger.info(f"Prepared design for '{spec.name}': {model_data.n_obs} observations, "
                    f"columns {model_data.column_names}")
        return model_data

    def design_for(self, model_data: ModelData, covariates: pd.DataFrame) -> np.ndarray:
        """
        Apply a fitted design to new covariate rows.

        Args:
            model_data: Design prepared for the fitted model
            covariates: Rows holding the predictor columns

        Returns:
            Centered design matrix for the new rows

        Raises:
            DataFormatError: If the covariates do not fit the design
        """
        try:
            (X_new,) = patsy.build_design_matrices(
                [model_data.design_info], covariates, NA_action="raise", return_type="matrix"
            )
        except patsy.PatsyError as e:
            raise DataFormatError(
                "Covariates do not match the fitted design",
                details=str(e).splitlines()[0]
            ) from e
        return np.asarray(X_new, dtype=float) - model_data.column_means

    def build_model(self, model_data: ModelData) -> pm.Model:
        """
        Build the PyMC model graph.

        Args:
            model_data: Prepared design

        Returns:
            PyMC model with mutable data containers ``X`` and ``y`` and an
            observed variable ``y_obs``

        Raises:
            ModelBuildError: If the graph cannot be constructed
        """
        family = model_data.family
        y_link = self._link_scale_response(model_data)
        sd_y = float(np.std(y_link)) if family != FAMILY_BERNOULLI else 1.0
        if not np.isfinite(sd_y) or sd_y <= 0:
            sd_y = 1.0
        mean_y = float(np.mean(y_link)) if family != FAMILY_BERNOULLI else 0.0

        intercept = self._intercept_mask(model_data.design_info)
        sd_x = model_data.X.std(axis=0)
        sd_x[(sd_x <= 0) | intercept] = 1.0
        prior_mu = np.where(intercept, mean_y, 0.0)
        prior_sigma = self.prior_scale * sd_y / sd_x

        try:
            with pm.Model(coords={"coef": model_data.column_names}) as model:
                X_data = pm.Data("X", model_data.X)
                y_data = pm.Data("y", model_data.y)

                beta = pm.Normal("beta", mu=prior_mu, sigma=prior_sigma, dims="coef")
                mu = pm.math.dot(X_data, beta)

                if family == FAMILY_BERNOULLI:
                    pm.Bernoulli("y_obs", logit_p=mu, observed=y_data, shape=X_data.shape[0])
                else:
                    sigma = pm.Exponential("sigma", lam=1.0 / sd_y)
                    if family == FAMILY_GAUSSIAN:
                        pm.Normal("y_obs", mu=mu, sigma=sigma, observed=y_data, shape=X_data.shape[0])
                    else:
                        pm.LogNormal("y_obs", mu=mu, sigma=sigma, observed=y_data, shape=X_data.shape[0])
        except (ValueError, TypeError) as e:
            raise ModelBuildError(f"Error building {family} model: {str(e)}") from e

        logger.debug(f"Built {family} model with prior sigmas {np.round(prior_sigma, 3).tolist()}")
        return model

    @staticmethod
    def _coerce_response(spec: ModelSpec, data: pd.DataFrame) -> pd.DataFrame:
        """Turn a boolean response column into 0/1 so patsy keeps it numeric."""
        response = spec.response
        if response in data.columns and data[response].dtype == bool:
            return data.assign(**{response: data[response].astype("int64")})
        return data

    @staticmethod
    def _check_categorical_levels(spec: ModelSpec, design_info: patsy.DesignInfo) -> None:
        for factor, info in design_info.factor_infos.items():
            if info.type == "categorical" and len(info.categories) < 2:
                raise DataFormatError(
                    f"Categorical predictor '{factor.name()}' in model '{spec.name}' "
                    f"needs at least 2 levels",
                    details={"levels": list(info.categories)}
                )

    @staticmethod
    def _check_response(spec: ModelSpec, y: np.ndarray) -> None:
        if not np.all(np.isfinite(y)):
            raise DataFormatError(f"Response of model '{spec.name}' has non-finite values")
        if spec.family == FAMILY_LOGNORMAL and np.any(y <= 0):
            raise DataFormatError(f"Response of lognormal model '{spec.name}' must be positive")
        if spec.family == FAMILY_BERNOULLI and not np.all(np.isin(y, (0.0, 1.0))):
            raise DataFormatError(f"Response of bernoulli model '{spec.name}' must be 0/1")

    @staticmethod
    def _intercept_mask(design_info: patsy.DesignInfo) -> np.ndarray:
        return np.array([name == "Intercept" for name in design_info.column_names])

    @staticmethod
    def _link_scale_response(model_data: ModelData) -> np.ndarray:
        if model_data.family == FAMILY_LOGNORMAL:
            return np.log(model_data.y)
        return model_data.y
