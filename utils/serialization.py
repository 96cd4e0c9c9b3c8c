#!/usr/bin/env python3
"""
Serialization utilities for evaluation results.

Converts numpy/pandas values and result dataclasses into JSON-friendly types.
"""

import dataclasses
import math

import numpy as np
import pandas as pd
from typing import Any

from utils.logging_utils import logger


def to_serializable(obj: Any) -> Any:
    """
    Convert object to JSON-serializable format.

    Args:
        obj: Object to convert

    Returns:
        JSON-serializable representation of object
    """
    if isinstance(obj, (bool, np.bool_)):
        return bool(obj)
    elif isinstance(obj, (np.integer, int)):
        return int(obj)
    elif isinstance(obj, (np.floating, float)):
        value = float(obj)
        # JSON has no NaN/inf
        return value if math.isfinite(value) else None
    elif isinstance(obj, (np.ndarray, list, tuple)):
        return [to_serializable(x) for x in obj]
    elif isinstance(obj, dict):
        return {str(k): to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, pd.DataFrame):
        return to_serializable(obj.to_dict(orient='records'))
    elif isinstance(obj, pd.Series):
        return to_serializable(obj.to_dict())
    elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_serializable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    elif isinstance(obj, Warning):
        return f"{type(obj).__name__}: {obj}"
    elif obj is None or isinstance(obj, str):
        return obj
    else:
        logger.debug(f"Serializing object of type {type(obj).__name__} as string")
        return str(obj)
