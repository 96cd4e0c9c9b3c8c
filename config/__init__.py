"""
Configuration package for the Bayesian model evaluation examples.

This package provides configuration management and the definitions of the
bundled examples.
"""

from config.config_manager import AppConfig, ConfigManager
from config.default_config import EXAMPLES, ExampleDefinition, get_example

__all__ = ['AppConfig', 'ConfigManager', 'EXAMPLES', 'ExampleDefinition', 'get_example']
