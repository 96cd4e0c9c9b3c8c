#!/usr/bin/env python3
"""
File helpers for writing run artefacts.
"""

import os
import json
from typing import Any, Union
from pathlib import Path

from utils.logging_utils import logger
from utils.serialization import to_serializable


def ensure_dir_exists(directory: Union[str, Path]) -> None:
    """Create ``directory`` (and parents) if it does not exist. Empty paths are ignored."""
    if directory:
        os.makedirs(directory, exist_ok=True)
        logger.debug(f"Ensuring directory exists: {directory}")


def save_json(data: Any, filepath: Union[str, Path]) -> None:
    """
    Write ``data`` as indented JSON, creating the parent directory.

    Numpy and pandas values are converted with ``to_serializable`` first.
    """
    ensure_dir_exists(os.path.dirname(str(filepath)))
    with open(filepath, 'w') as f:
        json.dump(to_serializable(data), f, indent=2)
    logger.debug(f"Saved JSON data to {filepath}")


def save_text(text: str, filepath: Union[str, Path]) -> None:
    """Write ``text`` to ``filepath``, creating the parent directory."""
    ensure_dir_exists(os.path.dirname(str(filepath)))
    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(text)
    logger.debug(f"Saved text to {filepath}")
