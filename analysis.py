#!/usr/bin/env python3
"""
Model Evaluation Pipeline Functions Library

This module chains the evaluation steps for one example dataset:
load -> fit candidates -> compare by ELPD -> posterior predictive checks
-> report -> plots. Each step is a function over explicit inputs so it can be
run and tested on its own.
"""
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from utils.logging_utils import get_logger, LoggingManager, log_step
from utils.decorators import timed
from utils.file_utils import save_json
from config.config_manager import AppConfig
from config.default_config import ExampleDefinition, get_example
from data.data_loader import DataLoader
from data.generate_data import generate_example_data
from model.base_model import FittedPosterior, ModelSpec
from model.bayesian_model import fit_model
from model.exceptions import DataFormatError
from evaluation.comparison import ComparisonTable, compare
from evaluation.ppc import (
    Group,
    OverlayData,
    StatCheckData,
    bin_groups,
    category_groups,
    check_outcome,
    check_statistic,
)
from evaluation.report import EvaluationReport

# Get logger for this module
logger = get_logger()

Fitter = Callable[..., FittedPosterior]


@dataclass
class EvaluationResult:
    """Structured container for one dataset's evaluation."""
    example: str
    models: Dict[str, FittedPosterior]
    report: EvaluationReport
    results_dir: Optional[str] = None
    artefacts: Dict[str, Any] = field(default_factory=dict)

    @property
    def comparison(self) -> ComparisonTable:
        return self.report.comparison


def spawn_seeds(random_seed: Optional[int], n: int) -> List[int]:
    """
    Derive ``n`` independent integer seeds from one run seed.

    The same run seed always yields the same seeds.
    """
    children = np.random.SeedSequence(random_seed).spawn(n)
    return [int(child.generate_state(1)[0]) for child in children]


@log_step("Loading example data")
def load_example_data(example: ExampleDefinition, data_path: Optional[str] = None,
                      generate: bool = False, random_seed: Optional[int] = None) -> pd.DataFrame:
    """
    Load an example's observation table, simulating it first if asked.

    Args:
        example: Example definition
        data_path: Data file; defaults to the example's bundled path
        generate: Simulate the dataset when the file does not exist
        random_seed: Seed for the simulation

    Returns:
        Validated observation table with derived indicators

    Raises:
        DataFormatError: If the file is missing or invalid
    """
    data_path = data_path or example.default_data_path
    if generate and not os.path.exists(data_path):
        logger.info(f"Data file {data_path} not found; simulating '{example.name}' data")
        generate_example_data(example.name, data_path, seed=random_seed, **example.simulation)

    return DataLoader(data_path, example.schema).load_data()


@log_step("Fitting candidate models")
def fit_candidates(
    specs: Sequence[ModelSpec],
    data: pd.DataFrame,
    sampler_config: Optional[Dict[str, Any]] = None,
    random_seed: Optional[int] = None,
    pareto_k_threshold: Optional[float] = None,
    fitter: Fitter = fit_model,
) -> Dict[str, FittedPosterior]:
    """
    Fit every candidate model, each with its own seed.

    Args:
        specs: Candidate model specifications, in report order
        data: Observation table
        sampler_config: Sampler and diagnostic settings
        random_seed: Run seed the per-model seeds are spawned from
        pareto_k_threshold: Pareto k above which LOO is flagged unreliable
        fitter: Callable with the signature of ``fit_model``

    Returns:
        Fitted models keyed by name, in the order of ``specs``
    """
    seeds = spawn_seeds(random_seed, len(specs))
    kwargs = {} if pareto_k_threshold is None else {"pareto_k_threshold": pareto_k_threshold}

    models = {}
    for spec, seed in zip(specs, seeds):
        models[spec.name] = fitter(spec, data, sampler_config=sampler_config, random_seed=seed, **kwargs)
        for warning in models[spec.name].fit_warnings:
            logger.warning(f"Fit warning for {spec.name}: {warning}")
    return models


def build_groups(example: ExampleDefinition, data: pd.DataFrame) -> Optional[List[Group]]:
    """Observation groups for the density overlays, or None when ungrouped."""
    if example.group_by is None:
        return None
    if example.group_by not in data.columns:
        raise DataFormatError(f"Grouping column '{example.group_by}' not in data")

    if example.cut_points is not None:
        return bin_groups(data[example.group_by].to_numpy(), example.cut_points, example.group_labels)
    return category_groups(data[example.group_by])


@log_step("Running posterior predictive checks")
def run_checks(
    models: Dict[str, FittedPosterior],
    observed: np.ndarray,
    statistics: Sequence[Callable] = (),
    groups: Optional[Sequence[Group]] = None,
    n_draws: int = 100,
    rng: Optional[np.random.Generator] = None,
):
    """
    Run density overlay and test statistic checks for every model.

    Returns:
        Tuple of (overlays, statistic_checks), both in model order
    """
    rng = np.random.default_rng(rng)
    overlays: List[OverlayData] = []
    checks: List[StatCheckData] = []

    for name, model in models.items():
        replicates = model.predict_samples()
        draws = min(n_draws, replicates.shape[0])
        if draws < n_draws:
            logger.warning(f"{name}: only {replicates.shape[0]} posterior draws; overlaying {draws}")

        # ungrouped panel first; one subsample shared by every panel of the model
        panels = [Group("all", np.arange(len(observed)))] + list(groups or [])
        overlays.extend(check_outcome(replicates, observed, n_draws=draws, rng=rng,
                                      groups=panels, model_name=name))

        for statistic in statistics:
            checks.append(check_statistic(replicates, observed, statistic, model_name=name))

    return overlays, checks


@timed("Model evaluation")
def run_evaluation(
    example: ExampleDefinition,
    data: pd.DataFrame,
    config: AppConfig,
    fitter: Fitter = fit_model,
    results_dir: Optional[str] = None,
) -> EvaluationResult:
    """
    Evaluate an example's candidate models on a loaded dataset.

    Args:
        example: Example definition
        data: Observation table
        config: Application configuration
        fitter: Model fitting callable (``fit_model`` or a test double)
        results_dir: Dataset output directory; None skips writing artefacts

    Returns:
        EvaluationResult holding the fitted models and the report
    """
    LoggingManager.log_step_start(logger, f"Evaluating '{example.name}'")
    LoggingManager.log_dict(logger, "Candidate models",
                            {spec.name: f"{spec.formula} ({spec.family})" for spec in example.models})

    model_seed, check_seed = spawn_seeds(config.random_seed, 2)
    models = fit_candidates(
        example.models,
        data,
        sampler_config=config.sampler_config(),
        random_seed=model_seed,
        pareto_k_threshold=config.pareto_k_threshold,
        fitter=fitter,
    )

    table = compare(models, noise_factor=config.noise_factor)

    observed = data[example.schema.response].to_numpy(dtype=float)
    overlays, checks = run_checks(
        models,
        observed,
        statistics=example.statistics,
        groups=build_groups(example, data),
        n_draws=config.ppc_overlay_draws,
        rng=np.random.default_rng(check_seed),
    )

    report = EvaluationReport(
        dataset=example.name,
        comparison=table,
        overlays=overlays,
        statistic_checks=checks,
        fit_warnings={name: model.fit_warnings for name, model in models.items()},
        model_order=list(models),
    )

    result = EvaluationResult(example=example.name, models=models, report=report, results_dir=results_dir)
    if results_dir is not None:
        result.artefacts = save_outputs(result, config, xlabel=example.outcome_label)

    LoggingManager.log_step_end(logger, f"Evaluating '{example.name}'")
    return result


@log_step("Saving evaluation outputs")
def save_outputs(result: EvaluationResult, config: AppConfig, xlabel: str = "y") -> Dict[str, Any]:
    """
    Write the report, model summaries and (optionally) plots.

    Returns:
        Mapping of artefact name to path(s)
    """
    artefacts: Dict[str, Any] = dict(result.report.save(result.results_dir))

    summaries = {name: model.summarize() for name, model in result.models.items()
                 if callable(getattr(model, "summarize", None))}
    if summaries:
        models_path = os.path.join(result.results_dir, "models.json")
        save_json(summaries, models_path)
        artefacts["models"] = models_path

    if config.create_plots:
        # Imported here so runs without plots never load matplotlib
        from evaluation.visualization import EvaluationPlotter
        plotter = EvaluationPlotter(result.results_dir)
        artefacts["plots"] = [str(p) for p in plotter.plot_all(
            result.report.comparison, result.report.overlays, result.report.statistic_checks, xlabel=xlabel)]

    return artefacts


def run_example(config: AppConfig, generate_data: bool = False,
                fitter: Fitter = fit_model) -> EvaluationResult:
    """
    Run the full pipeline for the example named in ``config.example``.

    Outputs are written to ``<results_dir>/<example>/``.

    Raises:
        ConfigurationError: If the example is unknown
        DataFormatError: If the data are missing or invalid
        SamplingError: If a model fails to sample
    """
    example = get_example(config.example)
    logger.info(f"Running example '{example.name}': {example.description}")

    data = load_example_data(example, data_path=config.data_path or None,
                             generate=generate_data, random_seed=config.random_seed)
    results_dir = os.path.join(config.results_dir, example.name)
    return run_evaluation(example, data, config, fitter=fitter, results_dir=results_dir)
