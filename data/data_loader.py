#!/usr/bin/env python3
"""
Dataset loader for the model evaluation examples.

PURPOSE:
- Read a delimited text observation table once per run
- Validate it against a declared schema before any model sees it
- Derive boolean indicator columns by thresholding continuous columns

ASSUMPTIONS:
- The whole table fits in memory
- Categorical predictors take a fixed, declared set of labels
- Modelled columns never hold missing values

EDGE CASES:
- Missing file, unsupported suffix, missing columns, missing values, unknown
  labels, out-of-range values and empty tables all raise DataFormatError
- Indicator derivation never mutates its input
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from utils.logging_utils import logger, LoggingManager
from model.exceptions import DataFormatError

SUPPORTED_SUFFIXES = {'.csv': ',', '.tsv': '\t', '.txt': None}


@dataclass(frozen=True)
class IndicatorSpec:
    """
    Boolean column derived from a continuous one.

    The indicator is true where ``column < below`` or ``column > above``;
    either bound may be omitted but not both.
    """
    name: str
    column: str
    below: Optional[float] = None
    above: Optional[float] = None

    def __post_init__(self):
        if self.below is None and self.above is None:
            raise DataFormatError(f"Indicator '{self.name}' needs a 'below' or an 'above' threshold")

    def evaluate(self, values: pd.Series) -> pd.Series:
        mask = pd.Series(False, index=values.index)
        if self.below is not None:
            mask |= values < self.below
        if self.above is not None:
            mask |= values > self.above
        return mask.rename(self.name)


@dataclass(frozen=True)
class DatasetSchema:
    """
    Required structure of an observation table.

    Attributes
    ----------
    name : str
        Dataset identifier.
    response : str
        Outcome column.
    predictors : tuple of str
        Predictor columns used by any candidate model.
    categorical : dict
        Categorical column -> allowed labels.
    bounds : dict
        Column -> (low, high) inclusive range, e.g. proportions in [0, 1].
    positive : tuple of str
        Columns that must be strictly positive (log-scaled responses).
    indicators : tuple of IndicatorSpec
        Derived boolean columns.
    """
    name: str
    response: str
    predictors: Tuple[str, ...]
    categorical: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    bounds: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    positive: Tuple[str, ...] = ()
    indicators: Tuple[IndicatorSpec, ...] = ()

    @property
    def required_columns(self) -> List[str]:
        return [self.response] + [c for c in self.predictors if c != self.response]


def derive_indicators(data: pd.DataFrame, indicators: Sequence[IndicatorSpec]) -> pd.DataFrame:
    """
    Add boolean indicator columns to a copy of the table.

    Parameters
    ----------
    data : pandas.DataFrame
        Observation table.
    indicators : sequence of IndicatorSpec
        Indicators to derive.

    Returns
    -------
    pandas.DataFrame
        New table with one extra column per indicator.

    Raises
    ------
    DataFormatError
        If an indicator's source column is missing.
    """
    missing = sorted({ind.column for ind in indicators} - set(data.columns))
    if missing:
        raise DataFormatError("Indicator source columns missing", details={"missing": missing})

    derived = {ind.name: ind.evaluate(data[ind.column]) for ind in indicators}
    return data.assign(**derived)


class DataLoader:
    """
    Loader for a single delimited text observation table.

    Parameters
    ----------
    data_path : str or Path
        Path to a ``.csv``, ``.tsv`` or whitespace/comma ``.txt`` file.
    schema : DatasetSchema
        Structure the table must satisfy.
    """

    def __init__(self, data_path: Union[str, Path], schema: DatasetSchema):
        """Initialize the DataLoader and check the file is readable."""
        self.data_path = Path(data_path)
        self.schema = schema

        if not self.data_path.exists():
            raise DataFormatError(f"Data file not found: {self.data_path}")

        if self.data_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise DataFormatError(
                f"Unsupported file format: {self.data_path.suffix}",
                details={"supported": sorted(SUPPORTED_SUFFIXES)}
            )

        logger.info(f"Initialized DataLoader for '{schema.name}' with data path: {self.data_path}")

    def read_table(self) -> pd.DataFrame:
        """Read the raw table without validation."""
        sep = SUPPORTED_SUFFIXES[self.data_path.suffix.lower()]
        try:
            if sep is None:
                return pd.read_csv(self.data_path, sep=None, engine='python')
            return pd.read_csv(self.data_path, sep=sep)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise DataFormatError(f"Cannot parse {self.data_path}: {str(e)}") from e

    def load_data(self) -> pd.DataFrame:
        """
        Load, validate and extend the observation table.

        Returns
        -------
        pandas.DataFrame
            Validated table with derived indicator columns.

        Raises
        ------
        DataFormatError
            If the table violates the schema.
        """
        data = self.read_table()
        validate_table(data, self.schema)
        data = derive_indicators(data, self.schema.indicators)

        LoggingManager.log_dataset_summary(logger, self.schema.name, data)
        return data


def validate_table(data: pd.DataFrame, schema: DatasetSchema) -> None:
    """
    Check an observation table against a schema.

    Raises
    ------
    DataFormatError
        On the first violated requirement.
    """
    if data.empty:
        raise DataFormatError(f"Dataset '{schema.name}' is empty")

    missing_cols = [col for col in schema.required_columns if col not in data.columns]
    if missing_cols:
        raise DataFormatError(
            f"Dataset '{schema.name}' is missing required columns",
            details={"missing": missing_cols, "available": list(data.columns)}
        )

    na_counts = data[schema.required_columns].isna().sum()
    if na_counts.sum() > 0:
        raise DataFormatError(
            f"Dataset '{schema.name}' has missing values in modelled columns",
            details=na_counts[na_counts > 0].to_dict()
        )

    for col, labels in schema.categorical.items():
        unknown = sorted(set(data[col].astype(str)) - set(labels))
        if unknown:
            raise DataFormatError(
                f"Column '{col}' has unexpected labels",
                details={"unexpected": unknown, "allowed": list(labels)}
            )

    numeric_cols = set(schema.bounds) | set(schema.positive)
    for col in numeric_cols:
        if not pd.api.types.is_numeric_dtype(data[col]):
            raise DataFormatError(f"Column '{col}' must be numeric, found {data[col].dtype}")

    for col, (low, high) in schema.bounds.items():
        out_of_range = int(((data[col] < low) | (data[col] > high)).sum())
        if out_of_range:
            raise DataFormatError(
                f"Column '{col}' has {out_of_range} values outside [{low}, {high}]")

    for col in schema.positive:
        n_bad = int(np.sum(data[col].to_numpy() <= 0))
        if n_bad:
            raise DataFormatError(f"Column '{col}' has {n_bad} non-positive values")
