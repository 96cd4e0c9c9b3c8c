#!/usr/bin/env python3
"""
Synthetic data for the model evaluation examples.

PURPOSE:
- Provide reproducible stand-ins for the congressional election and
  birthweight datasets so the examples run without external downloads
- Build in the features the posterior predictive checks are meant to reveal

DATA GENERATION MODELS:
    congress:    vote = 0.12 + 0.72 * past_vote + 0.06 * [democrat incumbent] + noise,
                 with a share of uncontested races where vote is exactly 0 or 1
    birthweight: log(weight) = log(3400) + 0.07 * (gestation - 39.5)
                 + 0.035 * [male] + noise

EDGE CASES:
- Uncontested races put mass at the [0, 1] boundary, which a Gaussian model
  cannot reproduce; the landslide count check exposes this
- Birthweight noise is multiplicative, so the Gaussian models understate
  the right tail
"""

import os
import argparse
from typing import Callable, Dict, Optional

import numpy as np
import pandas as pd

from utils.logging_utils import logger, LoggingManager
from utils.file_utils import ensure_dir_exists


def simulate_congress(n_obs: int = 400, uncontested_share: float = 0.1,
                      seed: Optional[int] = None) -> pd.DataFrame:
    """
    Simulate district-level two-party vote shares.

    Args:
        n_obs: Number of districts
        uncontested_share: Share of districts where only one party ran
        seed: Random seed

    Returns:
        DataFrame with columns vote, past_vote, incumbent_party
    """
    rng = np.random.default_rng(seed)

    past_vote = rng.beta(4.0, 4.0, size=n_obs)
    p_democrat = 1.0 / (1.0 + np.exp(-12.0 * (past_vote - 0.5)))
    democrat = rng.random(n_obs) < p_democrat

    vote = 0.12 + 0.72 * past_vote + 0.06 * democrat + rng.normal(0.0, 0.06, size=n_obs)
    vote = np.clip(vote, 0.02, 0.98)

    uncontested = rng.random(n_obs) < uncontested_share
    vote[uncontested] = np.where(democrat[uncontested], 1.0, 0.0)

    logger.info(f"Simulated {n_obs} congressional districts ({int(uncontested.sum())} uncontested)")
    return pd.DataFrame({
        "vote": np.round(vote, 4),
        "past_vote": np.round(past_vote, 4),
        "incumbent_party": np.where(democrat, "democrat", "republican"),
    })


def simulate_birthweight(n_obs: int = 500, preterm_share: float = 0.1,
                         seed: Optional[int] = None) -> pd.DataFrame:
    """
    Simulate infant birthweights.

    Args:
        n_obs: Number of births
        preterm_share: Share of births drawn from the preterm range
        seed: Random seed

    Returns:
        DataFrame with columns weight (grams), gestation (weeks), sex
    """
    rng = np.random.default_rng(seed)

    preterm = rng.random(n_obs) < preterm_share
    gestation = np.where(preterm,
                         rng.uniform(26.0, 37.0, size=n_obs),
                         rng.normal(39.5, 1.2, size=n_obs))
    gestation = np.clip(gestation, 22.0, 44.0)
    male = rng.random(n_obs) < 0.51

    log_weight = np.log(3400.0) + 0.07 * (gestation - 39.5) + 0.035 * male + rng.normal(0.0, 0.12, size=n_obs)

    logger.info(f"Simulated {n_obs} births ({int(preterm.sum())} preterm)")
    return pd.DataFrame({
        "weight": np.round(np.exp(log_weight)),
        "gestation": np.round(gestation, 1),
        "sex": np.where(male, "male", "female"),
    })


GENERATORS: Dict[str, Callable[..., pd.DataFrame]] = {
    "congress": simulate_congress,
    "birthweight": simulate_birthweight,
}


def generate_example_data(example: str, output_file: str, seed: Optional[int] = None,
                          **params) -> pd.DataFrame:
    """
    Simulate an example dataset and write it as CSV.

    Args:
        example: Example name, a key of GENERATORS
        output_file: Destination CSV path
        seed: Random seed
        **params: Generator parameters such as n_obs

    Returns:
        The simulated DataFrame
    """
    if example not in GENERATORS:
        raise ValueError(f"No data generator for example '{example}'. Available: {sorted(GENERATORS)}")

    data = GENERATORS[example](seed=seed, **params)
    ensure_dir_exists(os.path.dirname(os.path.abspath(output_file)))
    data.to_csv(output_file, index=False)
    logger.info(f"Saved {len(data)} rows of '{example}' data to {output_file}")
    return data


def main():
    """
    Main entry point for the data generation script.
    Parses command-line arguments and writes a synthetic example dataset.
    """
    parser = argparse.ArgumentParser(
        description='Generate synthetic data for the model evaluation examples.',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('--example', choices=sorted(GENERATORS), required=True,
                        help='Example dataset to simulate')
    parser.add_argument('--output-file', type=str, default=None,
                        help='CSV path (default: data/<example>.csv)')
    parser.add_argument('--n-obs', type=int, default=None,
                        help='Number of rows to simulate')
    parser.add_argument('--seed', type=int, default=42,
                        help='Random seed')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args()

    LoggingManager.setup_logging(log_level="DEBUG" if args.debug else "INFO")

    output_file = args.output_file or os.path.join(os.path.dirname(os.path.abspath(__file__)),
                                                   f"{args.example}.csv")
    params = {"n_obs": args.n_obs} if args.n_obs else {}
    generate_example_data(args.example, output_file, seed=args.seed, **params)


if __name__ == "__main__":
    main()
