"""
Posterior predictive checks.

Two kinds of check are supported:

- Density overlay: a random subsample of posterior predictive outcome vectors
  packaged with the observed outcome vector, optionally stratified by groups
  of observations (``check_outcome``).
- Test statistic: a scalar summary applied to the observed outcome vector and
  to every replicate (``check_statistic``).

Both functions only read the replicate matrix; every array they return is a
read-only copy.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from utils.logging_utils import logger
from model.base_model import FittedPosterior
from model.constants import DEFAULT_OVERLAY_DRAWS
from model.exceptions import DataFormatError, ModelEvaluationError

RandomSource = Union[None, int, np.random.Generator]


def _read_only(values, dtype=None) -> np.ndarray:
    out = np.array(values, dtype=dtype, copy=True)
    out.setflags(write=False)
    return out


@dataclass(frozen=True)
class Group:
    """A labelled subset of observation indices."""
    label: str
    indices: np.ndarray

    def __len__(self) -> int:
        return len(self.indices)


@dataclass(frozen=True)
class OverlayData:
    """
    Data behind one density overlay panel.

    Attributes
    ----------
    model : str
        Model the replicates came from.
    label : str
        Group label, ``"all"`` when ungrouped.
    observed : numpy.ndarray
        Observed outcomes of the group, shape ``(n_group,)``.
    replicates : numpy.ndarray
        Subsampled replicate outcomes of the group, shape ``(k, n_group)``.
    draw_indices : numpy.ndarray
        Rows of the full replicate matrix that were selected, shape ``(k,)``.
    obs_indices : numpy.ndarray
        Observation indices belonging to the group, shape ``(n_group,)``.
    """
    model: str
    label: str
    observed: np.ndarray
    replicates: np.ndarray
    draw_indices: np.ndarray
    obs_indices: np.ndarray

    @property
    def n_draws(self) -> int:
        return self.replicates.shape[0]

    @property
    def n_obs(self) -> int:
        return len(self.observed)


@dataclass(frozen=True)
class StatCheckData:
    """
    Result of a test statistic check.

    ``p_value`` is the posterior predictive p-value, the share of replicates
    whose statistic is at least the observed one.
    """
    model: str
    statistic: str
    observed_value: float
    replicated_values: np.ndarray
    p_value: float

    @property
    def n_replicates(self) -> int:
        return len(self.replicated_values)


class Statistic:
    """Named scalar summary of an outcome vector."""

    def __init__(self, name: str, func: Callable[[np.ndarray], float]):
        self.name = name
        self.func = func

    def __call__(self, values: np.ndarray) -> float:
        return float(self.func(np.asarray(values)))

    def __repr__(self) -> str:
        return f"Statistic({self.name!r})"


def count_above(threshold: float) -> Statistic:
    return Statistic(f"count(y > {threshold:g})", lambda y: np.sum(y > threshold))


def count_below(threshold: float) -> Statistic:
    return Statistic(f"count(y < {threshold:g})", lambda y: np.sum(y < threshold))


def proportion_above(threshold: float) -> Statistic:
    return Statistic(f"mean(y > {threshold:g})", lambda y: np.mean(y > threshold))


def proportion_below(threshold: float) -> Statistic:
    return Statistic(f"mean(y < {threshold:g})", lambda y: np.mean(y < threshold))


def proportion_outside(low: float, high: float) -> Statistic:
    """Share of outcomes below ``low`` or above ``high``."""
    if low >= high:
        raise ModelEvaluationError(f"proportion_outside needs low < high, got ({low}, {high})")
    return Statistic(f"mean(y < {low:g} or y > {high:g})",
                     lambda y: np.mean((y < low) | (y > high)))


def _as_statistic(statistic: Callable, name: Optional[str]) -> Statistic:
    if isinstance(statistic, Statistic):
        return statistic if name is None else Statistic(name, statistic.func)
    return Statistic(name or getattr(statistic, "__name__", "statistic"), statistic)


def bin_groups(covariate: Sequence[float], cut_points: Sequence[float],
               labels: Optional[Sequence[str]] = None) -> List[Group]:
    """
    Group observations by binning a continuous covariate.

    Bins are right-closed, ``(c[i], c[i+1]]``, except the first, which also
    includes its lower edge. Every observation falls in exactly one group.

    Parameters
    ----------
    covariate : sequence of float
        Covariate value per observation.
    cut_points : sequence of float
        Strictly increasing bin edges, at least two.
    labels : sequence of str, optional
        One label per bin. Defaults to interval notation.

    Returns
    -------
    list of Group
        One group per bin in edge order, empty bins included.

    Raises
    ------
    DataFormatError
        If the edges are invalid or a value lies outside them.
    """
    cuts = np.asarray(cut_points, dtype=float)
    if cuts.ndim != 1 or len(cuts) < 2 or np.any(np.diff(cuts) <= 0):
        raise DataFormatError("Cut points must be at least two strictly increasing values",
                              details={"cut_points": list(cut_points)})

    n_bins = len(cuts) - 1
    if labels is None:
        labels = [f"[{cuts[0]:g}, {cuts[1]:g}]"] + [
            f"({cuts[i]:g}, {cuts[i + 1]:g}]" for i in range(1, n_bins)]
    elif len(labels) != n_bins:
        raise DataFormatError(f"Expected {n_bins} bin labels, got {len(labels)}")

    values = np.asarray(covariate, dtype=float)
    outside = ~np.isfinite(values) | (values < cuts[0]) | (values > cuts[-1])
    if outside.any():
        raise DataFormatError(
            f"{int(outside.sum())} covariate values fall outside [{cuts[0]:g}, {cuts[-1]:g}]")

    codes = pd.cut(values, bins=cuts, right=True, include_lowest=True, labels=False)
    return [Group(str(label), _read_only(np.flatnonzero(codes == i)))
            for i, label in enumerate(labels)]


def category_groups(values: Sequence) -> List[Group]:
    """
    Group observations by the label of a categorical covariate.

    Groups follow the category order of a pandas Categorical (sorted labels
    unless ``values`` is already categorical).
    """
    categorical = pd.Categorical(values)
    if (categorical.codes < 0).any():
        raise DataFormatError("Categorical grouping values contain missing labels")
    return [Group(str(label), _read_only(np.flatnonzero(categorical.codes == i)))
            for i, label in enumerate(categorical.categories)]


def _check_shapes(replicates: np.ndarray, observed: np.ndarray) -> None:
    if replicates.ndim != 2:
        raise ModelEvaluationError(f"Replicate matrix must be 2-D, got shape {replicates.shape}")
    if observed.ndim != 1 or len(observed) != replicates.shape[1]:
        raise ModelEvaluationError(
            "Observed outcomes do not match the replicate matrix",
            details={"observed": observed.shape, "replicates": replicates.shape}
        )


def check_outcome(
    replicates: np.ndarray,
    observed: Sequence[float],
    n_draws: int = DEFAULT_OVERLAY_DRAWS,
    rng: RandomSource = None,
    groups: Optional[Sequence[Group]] = None,
    model_name: str = "",
) -> List[OverlayData]:
    """
    Subsample replicates for a density overlay.

    Parameters
    ----------
    replicates : numpy.ndarray
        Posterior predictive matrix, shape ``(total_draws, n_obs)``.
    observed : sequence of float
        Observed outcome vector, length ``n_obs``.
    n_draws : int
        Number of distinct replicate rows to select.
    rng : numpy.random.Generator or int, optional
        Random source or seed for the row selection.
    groups : sequence of Group, optional
        Observation groups; one overlay per non-empty group. All groups share
        the same selected rows.
    model_name : str
        Model identifier carried into the results.

    Returns
    -------
    list of OverlayData

    Raises
    ------
    ModelEvaluationError
        If shapes disagree or ``n_draws`` is not in ``[1, total_draws]``.
    """
    replicates = np.asarray(replicates)
    observed = np.asarray(observed)
    _check_shapes(replicates, observed)

    total_draws, n_obs = replicates.shape
    if not 1 <= n_draws <= total_draws:
        raise ModelEvaluationError(
            f"Cannot select {n_draws} replicates from {total_draws} posterior draws")

    generator = np.random.default_rng(rng)
    draw_indices = _read_only(generator.choice(total_draws, size=n_draws, replace=False))

    if groups is None:
        groups = [Group("all", np.arange(n_obs))]

    overlays = []
    for group in groups:
        idx = np.asarray(group.indices, dtype=int)
        if len(idx) and (idx.min() < 0 or idx.max() >= n_obs):
            raise ModelEvaluationError(f"Group '{group.label}' has indices outside [0, {n_obs})")
        if len(idx) == 0:
            logger.debug(f"{model_name}: skipping empty group '{group.label}'")
            continue
        overlays.append(OverlayData(
            model=model_name,
            label=group.label,
            observed=_read_only(observed[idx]),
            replicates=_read_only(replicates[np.ix_(draw_indices, idx)]),
            draw_indices=draw_indices,
            obs_indices=_read_only(idx),
        ))

    logger.info(f"{model_name or 'model'}: prepared {len(overlays)} overlay panel(s) "
                f"with {n_draws} of {total_draws} replicates")
    return overlays


def check_model_outcome(
    model: FittedPosterior,
    observed: Sequence[float],
    n_draws: int = DEFAULT_OVERLAY_DRAWS,
    rng: RandomSource = None,
    groups: Optional[Sequence[Group]] = None,
) -> List[OverlayData]:
    """Draw a model's replicates on its fitting data and run ``check_outcome``."""
    return check_outcome(model.predict_samples(), observed, n_draws=n_draws, rng=rng,
                         groups=groups, model_name=model.name)


def check_statistic(
    replicates: np.ndarray,
    observed: Sequence[float],
    statistic: Callable[[np.ndarray], float],
    name: Optional[str] = None,
    model_name: str = "",
) -> StatCheckData:
    """
    Compare a test statistic on the observed outcomes with its replicated distribution.

    Parameters
    ----------
    replicates : numpy.ndarray
        Posterior predictive matrix, shape ``(R, n_obs)``.
    observed : sequence of float
        Observed outcome vector.
    statistic : callable
        Maps an outcome vector to a scalar. A ``Statistic`` carries its own name.
    name : str, optional
        Display name overriding the statistic's own.
    model_name : str
        Model identifier carried into the result.

    Returns
    -------
    StatCheckData
        Observed value, R replicated values and the posterior predictive p-value.
    """
    replicates = np.asarray(replicates)
    observed = np.asarray(observed)
    _check_shapes(replicates, observed)
    stat = _as_statistic(statistic, name)

    observed_value = stat(observed.copy())
    replicated = np.array([stat(row.copy()) for row in replicates], dtype=float)
    p_value = float(np.mean(replicated >= observed_value))

    logger.info(f"{model_name or 'model'}: {stat.name} observed = {observed_value:g}, "
                f"replicated mean = {replicated.mean():g}, p = {p_value:.3f}")
    return StatCheckData(
        model=model_name,
        statistic=stat.name,
        observed_value=observed_value,
        replicated_values=_read_only(replicated),
        p_value=p_value,
    )


def check_model_statistic(
    model: FittedPosterior,
    observed: Sequence[float],
    statistic: Callable[[np.ndarray], float],
    name: Optional[str] = None,
) -> StatCheckData:
    """Draw a model's replicates on its fitting data and run ``check_statistic``."""
    return check_statistic(model.predict_samples(), observed, statistic, name=name,
                           model_name=model.name)
