#!/usr/bin/env python3
"""
Main entry point for the Bayesian model evaluation examples.

This script fits the candidate models of one example dataset, compares them
by leave-one-out ELPD and runs posterior predictive checks.

Usage:
    model-evaluation --example congress --generate-data
    model-evaluation --example birthweight --data-path data/birthweight.csv --draws 500
    model-evaluation --example congress --config run.json --no-plots
"""
import sys
import argparse
from pathlib import Path

from analysis import run_example
from config.config_manager import ConfigManager
from config.default_config import EXAMPLES
from utils.logging_utils import get_logger, LoggingManager
from model.exceptions import EvaluationError, ConfigurationError

# Get logger for this module
logger = get_logger()


def main(argv=None):
    """Main entry point for the model evaluation CLI."""
    # Parse command line arguments first
    args = parse_arguments(argv)

    # Console logging until the configuration is known
    setup_logging(args.log_level or "INFO")

    try:
        config_manager = setup_config(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {str(e)}")
        return 2

    config = config_manager.app_config
    setup_logging(config.log_level, config.log_file or None)

    try:
        # Save configuration for reference
        config_manager.save_config(Path(config.results_dir) / config.example / "config.json")
        result = run_example(config, generate_data=args.generate_data)
    except EvaluationError as e:
        logger.error(f"Evaluation of '{config.example}' failed: {str(e)}")
        return 1

    print(result.report.render_text())
    logger.info(f"Results written to {result.results_dir}")
    return 0


def setup_logging(log_level: str, log_file: str = None):
    """Configure the application logger."""
    return LoggingManager.setup_logging(log_level=log_level, log_file=log_file)


def setup_config(args):
    """
    Set up and validate configuration.

    Precedence, lowest first: defaults, config file, environment, command line.

    Args:
        args: Command line arguments

    Returns:
        ConfigManager instance

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    config_manager = ConfigManager(args.config)

    # Override with command line arguments
    config_manager.update({
        "example": args.example,
        "data_path": args.data_path,
        "results_dir": args.results_dir,
        "model_n_draws": args.draws,
        "model_n_tune": args.tune,
        "model_n_chains": args.chains,
        "model_target_accept": args.target_accept,
        "random_seed": args.seed,
        "ppc_overlay_draws": args.overlay_draws,
        "log_level": args.log_level,
    })
    if args.no_plots:
        config_manager.app_config.create_plots = False

    config_manager.validate()
    return config_manager


def parse_arguments(argv=None):
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Bayesian regression model evaluation")

    # General options
    parser.add_argument("--example", choices=sorted(EXAMPLES), required=True,
                        help="Example dataset to evaluate")
    parser.add_argument("--config", type=str, help="Path to configuration file")
    parser.add_argument("--results-dir", type=str,
                        help="Directory to store results")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level (default: INFO, or the configured value)")

    # Data options
    parser.add_argument("--data-path", type=str,
                        help="Path to data file (default: the example's bundled file)")
    parser.add_argument("--generate-data", action="store_true",
                        help="Simulate the example dataset if the data file does not exist")

    # MCMC options
    parser.add_argument("--draws", type=int, help="Number of posterior draws per chain")
    parser.add_argument("--tune", type=int, help="Number of tuning steps per chain")
    parser.add_argument("--chains", type=int, help="Number of chains")
    parser.add_argument("--target-accept", type=float, help="Target acceptance rate for NUTS")
    parser.add_argument("--seed", type=int, help="Run seed; per-model seeds are derived from it")

    # Check options
    parser.add_argument("--overlay-draws", type=int,
                        help="Number of replicated datasets per density overlay")
    parser.add_argument("--no-plots", action="store_true",
                        help="Skip writing PNG plots")

    return parser.parse_args(argv)


if __name__ == "__main__":
    sys.exit(main())
