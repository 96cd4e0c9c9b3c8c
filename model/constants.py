"""
Constants for the Bayesian model evaluation workflow.

This module centralizes default values used throughout the codebase so that
sampler settings, diagnostic thresholds and plot settings live in one place.
"""

# =======================================================
# Model families
# =======================================================

FAMILY_GAUSSIAN = "gaussian"
FAMILY_LOGNORMAL = "lognormal"
FAMILY_BERNOULLI = "bernoulli"
SUPPORTED_FAMILIES = (FAMILY_GAUSSIAN, FAMILY_LOGNORMAL, FAMILY_BERNOULLI)

# Autoscaled weakly informative priors (scale multiplier on sd(y) / sd(x))
DEFAULT_PRIOR_SCALE = 2.5

# =======================================================
# MCMC sampling parameters
# =======================================================

DEFAULT_DRAWS = 1000
DEFAULT_TUNE = 1000
DEFAULT_CHAINS = 2
DEFAULT_CORES = 1
DEFAULT_TARGET_ACCEPT = 0.9
DEFAULT_RANDOM_SEED = 42

# =======================================================
# Diagnostic thresholds
# =======================================================

DEFAULT_RHAT_THRESHOLD = 1.01
DEFAULT_MIN_ESS = 400
DEFAULT_PARETO_K_THRESHOLD = 0.7

# =======================================================
# Posterior predictive checks and comparison
# =======================================================

DEFAULT_OVERLAY_DRAWS = 100
DEFAULT_NOISE_FACTOR = 2.0

# =======================================================
# Visualization parameters
# =======================================================

DEFAULT_FIGURE_SIZE = (10, 6)
DEFAULT_DPI = 100
OBSERVED_COLOR = "black"
REPLICATE_COLOR = "steelblue"
REPLICATE_ALPHA = 0.1
