"""
Leave-one-out ELPD comparison of candidate models.

Candidates are ranked by descending ELPD. Differences are reported against
the best candidate together with their standard error; whether a difference
is within noise is surfaced for the reader but never used to drop or
reorder candidates.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from utils.logging_utils import logger, log_step
from model.base_model import ElpdEstimate, FittedPosterior
from model.constants import DEFAULT_NOISE_FACTOR
from model.exceptions import ModelEvaluationError

Candidates = Union[Mapping[str, FittedPosterior], Iterable[Tuple[str, FittedPosterior]],
                   Iterable[FittedPosterior]]


@dataclass(frozen=True)
class ComparisonRow:
    rank: int
    model: str
    elpd: float
    se: float
    elpd_diff: float
    se_diff: float
    within_noise: bool
    p_loo: float = float("nan")
    n_high_pareto_k: int = 0
    warnings: Tuple[Warning, ...] = field(default_factory=tuple)

    @property
    def warning(self) -> str:
        return "; ".join(str(w) for w in self.warnings)


class ComparisonTable:
    """
    Ranked ELPD comparison, one row per candidate.

    Attributes
    ----------
    rows : tuple of ComparisonRow
        Rows ordered by non-increasing ELPD.
    candidate_order : tuple of str
        Model names in the order they were supplied.
    noise_factor : float
        Multiple of ``se_diff`` under which a difference counts as noise.
    """

    COLUMNS = ("rank", "model", "elpd", "se", "elpd_diff", "se_diff", "within_noise", "warning")

    def __init__(self, rows: Sequence[ComparisonRow], candidate_order: Sequence[str],
                 noise_factor: float = DEFAULT_NOISE_FACTOR):
        self.rows = tuple(rows)
        self.candidate_order = tuple(candidate_order)
        self.noise_factor = noise_factor

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def __getitem__(self, index: int) -> ComparisonRow:
        return self.rows[index]

    @property
    def best(self) -> ComparisonRow:
        return self.rows[0]

    @property
    def models(self) -> List[str]:
        """Model names in ranked order."""
        return [row.model for row in self.rows]

    @property
    def warnings(self) -> List[Warning]:
        return [w for row in self.rows for w in row.warnings]

    def row_for(self, model: str) -> ComparisonRow:
        for row in self.rows:
            if row.model == model:
                return row
        raise KeyError(model)

    def to_frame(self) -> pd.DataFrame:
        """Table as a DataFrame with the columns in ``COLUMNS``."""
        records = [{col: getattr(row, col) for col in self.COLUMNS} for row in self.rows]
        return pd.DataFrame.from_records(records, columns=list(self.COLUMNS))

    def format(self, precision: int = 1, show_warnings: bool = True) -> str:
        """Human-readable table, with estimation warnings listed underneath unless disabled."""
        frame = self.to_frame().drop(columns="warning")
        lines = [frame.to_string(index=False, float_format=lambda x: f"{x:.{precision}f}")]
        noisy = [row.model for row in self.rows[1:] if row.within_noise]
        if noisy:
            lines.append(f"Within {self.noise_factor:g} SE of the best model: {', '.join(noisy)}")
        if show_warnings:
            for row in self.rows:
                for w in row.warnings:
                    lines.append(f"WARNING [{row.model}] {w}")
        return "\n".join(lines)


def _normalize_candidates(models: Candidates) -> List[Tuple[str, FittedPosterior]]:
    if isinstance(models, Mapping):
        pairs = list(models.items())
    else:
        pairs = []
        for item in models:
            if isinstance(item, FittedPosterior):
                pairs.append((item.name, item))
            else:
                name, model = item
                pairs.append((name, model))

    names = [name for name, _ in pairs]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ModelEvaluationError("Candidate model names must be unique", details={"duplicates": duplicates})
    return pairs


def difference_se(estimate: ElpdEstimate, best: ElpdEstimate) -> float:
    """
    Standard error of ``estimate.elpd - best.elpd``.

    Uses the paired pointwise differences when both estimates carry them,
    otherwise treats the two estimates as independent.
    """
    if estimate.pointwise is not None and best.pointwise is not None:
        diff = np.asarray(estimate.pointwise) - np.asarray(best.pointwise)
        return float(np.sqrt(len(diff) * np.var(diff)))
    return float(np.sqrt(estimate.se ** 2 + best.se ** 2))


@log_step("Comparing candidate models")
def compare(models: Candidates, noise_factor: float = DEFAULT_NOISE_FACTOR) -> ComparisonTable:
    """
    Rank fitted candidate models by leave-one-out ELPD.

    Parameters
    ----------
    models : mapping or iterable
        ``{name: model}``, ``(name, model)`` pairs, or fitted models
        identified by their ``name``.
    noise_factor : float
        A difference with ``|elpd_diff| < noise_factor * se_diff`` is flagged
        as within noise.

    Returns
    -------
    ComparisonTable
        One row per candidate; the best has ``elpd_diff == 0``.

    Raises
    ------
    ModelEvaluationError
        If no candidates are given or they were fit on different numbers of
        observations.
    """
    pairs = _normalize_candidates(models)
    if not pairs:
        raise ModelEvaluationError("At least one candidate model is required for comparison")

    n_obs = {name: model.n_obs for name, model in pairs}
    if len(set(n_obs.values())) > 1:
        raise ModelEvaluationError("Candidate models were fit on different numbers of observations",
                                   details=n_obs)

    estimates = {}
    for name, model in pairs:
        estimate = model.estimate_elpd()
        if estimate.pointwise is not None and len(estimate.pointwise) != n_obs[name]:
            raise ModelEvaluationError(
                f"Model '{name}' has {len(estimate.pointwise)} pointwise ELPD values for {n_obs[name]} observations")
        estimates[name] = estimate

    candidate_order = [name for name, _ in pairs]
    # sorted() is stable, so tied candidates keep the supplied order
    ranked = sorted(candidate_order, key=lambda name: -estimates[name].elpd)
    best = estimates[ranked[0]]

    rows = []
    for rank, name in enumerate(ranked, start=1):
        est = estimates[name]
        if rank == 1:
            elpd_diff, se_diff, within_noise = 0.0, 0.0, False
        else:
            elpd_diff = float(est.elpd - best.elpd)
            se_diff = difference_se(est, best)
            within_noise = bool(abs(elpd_diff) < noise_factor * se_diff)
        rows.append(ComparisonRow(
            rank=rank,
            model=name,
            elpd=float(est.elpd),
            se=float(est.se),
            elpd_diff=elpd_diff,
            se_diff=se_diff,
            within_noise=within_noise,
            p_loo=float("nan") if est.p_loo is None else float(est.p_loo),
            n_high_pareto_k=int(est.n_high_pareto_k),
            warnings=tuple(est.warnings),
        ))

    table = ComparisonTable(rows, candidate_order, noise_factor=noise_factor)
    logger.info(f"ELPD comparison:\n{table.format()}")
    return table
