"""
Utility package for the Bayesian model evaluation workflow.

This package provides logging, decorators, file and serialization helpers.
"""

from utils.logging_utils import logger, LoggingManager, log_step
from utils.file_utils import ensure_dir_exists, save_json, save_text
from utils.decorators import timed, log_errors
from utils.serialization import to_serializable

__all__ = [
    'logger', 'LoggingManager', 'ensure_dir_exists', 'save_json', 'save_text',
    'log_step', 'timed', 'log_errors', 'to_serializable'
]
