#!/usr/bin/env python3
"""
Logging utilities for the Bayesian model evaluation workflow.

Every module logs through one shared application logger. ``main`` configures
it once from the run configuration; library use gets a stdout handler at INFO.
"""
import logging
import os
import sys
import functools
import time
from typing import Dict, Any, Optional, Callable, TypeVar

import pandas as pd

F = TypeVar('F', bound=Callable[..., Any])

LOGGER_NAME = 'Model_Evaluation'
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
BANNER_WIDTH = 20


class LoggerProvider:
    """Holds the shared application logger."""
    _logger = None

    @classmethod
    def get_logger(cls) -> logging.Logger:
        if cls._logger is None:
            log = logging.getLogger(LOGGER_NAME)
            if not log.handlers:
                handler = logging.StreamHandler(sys.stdout)
                handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
                log.addHandler(handler)
                log.setLevel(logging.INFO)
            cls._logger = log
        return cls._logger


def get_logger() -> logging.Logger:
    """Get the application logger."""
    return LoggerProvider.get_logger()


logger = get_logger()


def log_step(step_name: str = None) -> Callable[[F], F]:
    """
    Log entry, exit and duration of a pipeline step.

    Usable bare (``@log_step``, the function name labels the step) or with a
    label (``@log_step("Fitting candidate models")``). Exceptions are logged
    and re-raised unchanged.
    """
    def decorator(func: F) -> F:
        name = step_name if isinstance(step_name, str) else func.__name__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger.info(f"Starting step: {name}")
            started = time.perf_counter()
            ok = False
            try:
                result = func(*args, **kwargs)
                ok = True
            except Exception as e:
                logger.error(f"Error in step {name}: {str(e)}")
                raise
            finally:
                outcome = "completed successfully" if ok else "failed"
                logger.info(f"Step {name} {outcome} in {time.perf_counter() - started:.2f} seconds")
            return result

        return wrapper

    if callable(step_name):
        return decorator(step_name)
    return decorator


class LoggingManager:
    """
    Logging configuration plus a few structured log helpers.

    The helpers take the logger explicitly so callers (and tests) can pass a
    different one.
    """

    @staticmethod
    def setup_logging(
        logger_name: str = LOGGER_NAME,
        log_level: Any = logging.INFO,
        log_file: Optional[str] = None,
        log_format: str = DEFAULT_LOG_FORMAT
    ) -> logging.Logger:
        """
        Configure the application logger and make it the shared instance.

        Args:
            logger_name: Name of the logger
            log_level: Level as an int or a name such as "DEBUG"
            log_file: Optional file that receives a copy of the console output
            log_format: Format string for log records

        Returns:
            Configured logger
        """
        if isinstance(log_level, str):
            log_level = logging.getLevelName(log_level.upper())

        log = logging.getLogger(logger_name)
        log.setLevel(log_level)
        log.handlers.clear()

        formatter = logging.Formatter(log_format)
        handlers = [logging.StreamHandler(sys.stdout)]
        if log_file:
            os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        for handler in handlers:
            handler.setFormatter(formatter)
            log.addHandler(handler)

        LoggerProvider._logger = log
        return log

    @staticmethod
    def log_step_start(log: logging.Logger, step_name: str) -> None:
        log.info(f"{'=' * BANNER_WIDTH} {step_name} {'=' * BANNER_WIDTH}")

    @staticmethod
    def log_step_end(log: logging.Logger, step_name: str) -> None:
        log.info(f"{'=' * BANNER_WIDTH} done: {step_name} {'=' * BANNER_WIDTH}")

    @staticmethod
    def log_dataset_summary(log: logging.Logger, name: str, df: pd.DataFrame) -> None:
        """
        Log the size of an observation table and a one-line profile per column.

        Numeric columns report their range, categorical and boolean columns
        their level counts. Missing values are reported when present.
        """
        log.info(f"Dataset '{name}': {len(df)} rows, {df.shape[1]} columns")
        for column in df.columns:
            values = df[column]
            if pd.api.types.is_bool_dtype(values) or not pd.api.types.is_numeric_dtype(values):
                counts = values.value_counts(dropna=False).sort_index()
                profile = ", ".join(f"{level}={count}" for level, count in counts.items())
            else:
                profile = f"range [{values.min():.4g}, {values.max():.4g}], mean {values.mean():.4g}"
            n_missing = int(values.isna().sum())
            if n_missing:
                profile += f", {n_missing} missing"
            log.info(f"  {column}: {profile}")

    @staticmethod
    def log_dict(
        log: logging.Logger,
        title: str,
        data: Dict[str, Any],
        level: str = 'info'
    ) -> None:
        """Log a mapping under a title, one ``key: value`` per line."""
        lines = "\n".join(f"  {key}: {value}" for key, value in data.items())
        getattr(log, level.lower())(f"{title}:\n{lines}")
