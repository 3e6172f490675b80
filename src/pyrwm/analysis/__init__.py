"""Analysis tools for random-walk Metropolis output.

This module provides estimators of the normalizing constant (marginal
likelihood) of the kernel that generated a chain, and convergence
diagnostics:

- Modified harmonic mean (Gelfand-Dey)
- Bridge sampling with a Gaussian bridge density or between two kernels
- Muller's method
- Chib-Jeliazkov
- Newey-West numerical standard errors and the separated partial means test
"""

from .bridge import (
    bridge_estimate,
    bridge_estimate_from_log_ratios,
    bridge_estimate_from_metropolis,
    bridge_estimate_gaussian,
    bridge_estimate_power_family,
)
from .chib_jeliazkov import marginal_likelihood_cj
from .convergence import newey_west, numerical_standard_error, separated_partial_means
from .mhm import mhm_estimate, mhm_function, mhm_function_from_chain
from .muller import marginal_likelihood_muller

__all__ = [
    "bridge_estimate",
    "bridge_estimate_from_log_ratios",
    "bridge_estimate_from_metropolis",
    "bridge_estimate_gaussian",
    "bridge_estimate_power_family",
    "marginal_likelihood_cj",
    "marginal_likelihood_muller",
    "mhm_estimate",
    "mhm_function",
    "mhm_function_from_chain",
    "newey_west",
    "numerical_standard_error",
    "separated_partial_means",
]
