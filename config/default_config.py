#!/usr/bin/env python3
"""
Default configuration for the model evaluation examples.

This module declares the two bundled examples: the dataset schema, the
candidate models compared for each, how observations are grouped for the
density overlays and which test statistics are checked.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from data.data_loader import DatasetSchema, IndicatorSpec
from model.base_model import ModelSpec
from model.constants import FAMILY_GAUSSIAN, FAMILY_LOGNORMAL
from model.exceptions import ConfigurationError
from evaluation.ppc import (
    Statistic,
    count_above,
    proportion_above,
    proportion_below,
    proportion_outside,
)

# Define the base directory for the project (1 level up from this file)
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
DEFAULT_DATA_DIR = os.path.join(BASE_DIR, "data")


@dataclass(frozen=True)
class ExampleDefinition:
    """
    Everything the pipeline needs to evaluate one example dataset.

    Grouping is either by binning ``group_by`` at ``cut_points`` or, when no
    cut points are given, by the labels of a categorical ``group_by`` column.
    """
    name: str
    description: str
    schema: DatasetSchema
    models: Tuple[ModelSpec, ...]
    data_file: str
    outcome_label: str
    statistics: Tuple[Statistic, ...] = ()
    group_by: Optional[str] = None
    cut_points: Optional[Sequence[float]] = None
    group_labels: Optional[Sequence[str]] = None
    simulation: Dict[str, float] = field(default_factory=dict)

    @property
    def default_data_path(self) -> str:
        return os.path.join(DEFAULT_DATA_DIR, self.data_file)


CONGRESS_SCHEMA = DatasetSchema(
    name="congress",
    response="vote",
    predictors=("past_vote", "incumbent_party"),
    categorical={"incumbent_party": ("democrat", "republican")},
    bounds={"vote": (0.0, 1.0), "past_vote": (0.0, 1.0)},
    indicators=(
        IndicatorSpec("uncontested", "vote", below=0.1, above=0.9),
        IndicatorSpec("landslide", "vote", above=0.75),
    ),
)

BIRTHWEIGHT_SCHEMA = DatasetSchema(
    name="birthweight",
    response="weight",
    predictors=("gestation", "sex"),
    categorical={"sex": ("female", "male")},
    bounds={"gestation": (20.0, 45.0)},
    positive=("weight",),
    indicators=(
        IndicatorSpec("low_birthweight", "weight", below=2500),
        IndicatorSpec("preterm", "gestation", below=37),
    ),
)

EXAMPLES: Dict[str, ExampleDefinition] = {
    "congress": ExampleDefinition(
        name="congress",
        description="Democratic share of the two-party vote given the previous election",
        schema=CONGRESS_SCHEMA,
        models=(
            ModelSpec("past_vote", "vote ~ past_vote", FAMILY_GAUSSIAN),
            ModelSpec("past_vote_incumbent", "vote ~ past_vote + incumbent_party", FAMILY_GAUSSIAN),
            ModelSpec("interaction", "vote ~ past_vote * incumbent_party", FAMILY_GAUSSIAN),
        ),
        data_file="congress.csv",
        outcome_label="Democratic vote share",
        statistics=(
            count_above(0.9),
            proportion_outside(0.1, 0.9),
        ),
        group_by="past_vote",
        cut_points=(0.0, 0.33, 0.67, 1.0),
        group_labels=("past_vote <= 0.33", "0.33 < past_vote <= 0.67", "past_vote > 0.67"),
        simulation={"n_obs": 400, "uncontested_share": 0.1},
    ),
    "birthweight": ExampleDefinition(
        name="birthweight",
        description="Infant birthweight in grams given gestational age and sex",
        schema=BIRTHWEIGHT_SCHEMA,
        models=(
            ModelSpec("gestation", "weight ~ gestation", FAMILY_GAUSSIAN),
            ModelSpec("gestation_sex", "weight ~ gestation + sex", FAMILY_GAUSSIAN),
            ModelSpec("log_gestation_sex", "weight ~ gestation + sex", FAMILY_LOGNORMAL),
        ),
        data_file="birthweight.csv",
        outcome_label="Birthweight (g)",
        statistics=(
            proportion_below(2500),
            proportion_above(4000),
        ),
        group_by="sex",
        simulation={"n_obs": 500, "preterm_share": 0.1},
    ),
}


def get_example(name: str) -> ExampleDefinition:
    """
    Look up an example definition by name.

    Raises:
        ConfigurationError: If no example has that name
    """
    try:
        return EXAMPLES[name]
    except KeyError:
        raise ConfigurationError(f"Unknown example '{name}'", details={"available": sorted(EXAMPLES)}) from None
