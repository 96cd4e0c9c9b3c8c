"""
Configuration manager for the Bayesian model evaluation examples.

This module provides a centralized configuration management system with
structured configuration classes using dataclasses. Values come from the
dataclass defaults, then an optional JSON file, then ``MODEL_EVAL_*``
environment variables, then explicit CLI overrides.
"""
import json
import os
from typing import Dict, Any, Optional, Union
from pathlib import Path
from dataclasses import dataclass, asdict, fields

from utils.logging_utils import get_logger
from utils.file_utils import save_json
from utils.decorators import log_errors
from model.exceptions import ConfigurationError, EvaluationError
from model import constants

logger = get_logger()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class AppConfig:
    """Run settings for one evaluation. Sampler fields carry a ``model_`` prefix."""
    # App settings
    results_dir: str = "results"
    create_plots: bool = True
    log_level: str = "INFO"
    log_file: str = ""

    # Example selection
    example: str = "congress"
    data_path: str = ""

    # Sampler settings (with model_ prefix)
    model_n_draws: int = constants.DEFAULT_DRAWS
    model_n_tune: int = constants.DEFAULT_TUNE
    model_n_chains: int = constants.DEFAULT_CHAINS
    model_n_cores: int = constants.DEFAULT_CORES
    model_target_accept: float = constants.DEFAULT_TARGET_ACCEPT
    random_seed: int = constants.DEFAULT_RANDOM_SEED

    # Diagnostic thresholds
    rhat_threshold: float = constants.DEFAULT_RHAT_THRESHOLD
    min_ess: float = constants.DEFAULT_MIN_ESS
    pareto_k_threshold: float = constants.DEFAULT_PARETO_K_THRESHOLD

    # Posterior predictive checks and comparison
    ppc_overlay_draws: int = constants.DEFAULT_OVERLAY_DRAWS
    noise_factor: float = constants.DEFAULT_NOISE_FACTOR

    def sampler_config(self) -> Dict[str, Any]:
        """Sampler and diagnostic settings in the form ``BayesianGLM`` takes."""
        return {
            "n_draws": self.model_n_draws,
            "n_tune": self.model_n_tune,
            "n_chains": self.model_n_chains,
            "n_cores": self.model_n_cores,
            "target_accept": self.model_target_accept,
            "rhat_threshold": self.rhat_threshold,
            "min_ess": self.min_ess,
        }


class ConfigManager:
    """
    Unified configuration manager with typed configuration objects.
    """

    # Environment variable prefix for overrides
    ENV_PREFIX = "MODEL_EVAL_"

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to a JSON configuration file.

        Raises:
            ConfigurationError: If the file is unreadable or a value is invalid
        """
        # Create configuration object with defaults
        self.app_config = AppConfig()

        # Load configuration from file if provided
        if config_path:
            self.load_config(config_path)

        # Apply environment variable overrides
        self._apply_env_overrides()

        # Validate configuration
        self.validate()

    def load_config(self, config_path: Union[str, Path]) -> None:
        """
        Load configuration from a JSON file.

        Unknown keys are ignored with a warning.

        Args:
            config_path: Path to a JSON configuration file.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            logger.warning(f"Configuration file not found: {config_path}")
            return

        try:
            with open(config_path, 'r') as f:
                config_dict = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Error loading configuration from {config_path}: {str(e)}") from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration file {config_path} must hold a JSON object")

        self.update(config_dict)
        logger.info(f"Loaded configuration from {config_path}")

    def update(self, values: Dict[str, Any]) -> None:
        """
        Apply overrides to the current configuration.

        ``None`` values are skipped so unset CLI arguments keep earlier values.
        """
        app_fields = {f.name for f in fields(AppConfig)}
        for key, value in values.items():
            if key not in app_fields:
                logger.warning(f"Ignoring unknown configuration key: {key}")
                continue
            if value is not None:
                setattr(self.app_config, key, value)

    def _apply_env_overrides(self) -> None:
        """Apply configuration overrides from environment variables."""
        for field_info in fields(AppConfig):
            field_name = field_info.name
            env_name = f"{self.ENV_PREFIX}{field_name.upper()}"
            if env_name not in os.environ:
                continue

            field_type = type(getattr(self.app_config, field_name))
            raw = os.environ[env_name]
            try:
                # Convert value to appropriate type
                if field_type == bool:
                    value = raw.lower() in ('true', 'yes', '1')
                else:
                    value = field_type(raw)
            except (ValueError, TypeError) as e:
                raise ConfigurationError(f"Invalid value for {env_name}: {raw!r}") from e

            setattr(self.app_config, field_name, value)
            logger.debug(f"Applied env override for {field_name}: {value}")

    @log_errors(expected_exceptions=OSError, msg="Error saving configuration", wrap_as=EvaluationError)
    def save_config(self, filepath: Union[str, Path]) -> None:
        """
        Save the current configuration to a JSON file.

        Args:
            filepath: Path to save the configuration to.

        Raises:
            EvaluationError: If the file cannot be written
        """
        save_json(asdict(self.app_config), filepath)

        logger.info(f"Saved configuration to {filepath}")

    def validate(self) -> bool:
        """
        Validate the current configuration and fix common issues.

        Returns:
            True if configuration is valid

        Raises:
            ConfigurationError: If a value cannot be repaired
        """
        cfg = self.app_config

        if not cfg.results_dir:
            logger.warning("No results directory specified. Using default 'results'.")
            cfg.results_dir = "results"

        if cfg.data_path and not Path(cfg.data_path).exists():
            # Do not raise here; the loader fails with a precise error later
            logger.warning(f"Data file not found: {cfg.data_path}")

        problems = {}
        if str(cfg.log_level).upper() not in LOG_LEVELS:
            problems["log_level"] = cfg.log_level
        if cfg.model_n_draws < 1:
            problems["model_n_draws"] = cfg.model_n_draws
        if cfg.model_n_tune < 0:
            problems["model_n_tune"] = cfg.model_n_tune
        if cfg.model_n_chains < 1:
            problems["model_n_chains"] = cfg.model_n_chains
        if cfg.model_n_cores < 1:
            problems["model_n_cores"] = cfg.model_n_cores
        if not 0 < cfg.model_target_accept < 1:
            problems["model_target_accept"] = cfg.model_target_accept
        if cfg.ppc_overlay_draws < 1:
            problems["ppc_overlay_draws"] = cfg.ppc_overlay_draws
        if cfg.noise_factor <= 0:
            problems["noise_factor"] = cfg.noise_factor
        if cfg.pareto_k_threshold <= 0:
            problems["pareto_k_threshold"] = cfg.pareto_k_threshold

        if problems:
            raise ConfigurationError("Invalid configuration values", details=problems)

        total_draws = cfg.model_n_draws * cfg.model_n_chains
        if cfg.ppc_overlay_draws > total_draws:
            logger.warning(f"ppc_overlay_draws ({cfg.ppc_overlay_draws}) exceeds total posterior "
                           f"draws ({total_draws}). Using {total_draws}.")
            cfg.ppc_overlay_draws = total_draws

        return True
