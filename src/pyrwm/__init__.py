"""pyrwm: random-walk Metropolis sampling and marginal-likelihood estimation.

pyrwm draws from unnormalized densities with the random-walk Metropolis
algorithm and estimates their normalizing constants. The package provides:

- Random-walk Metropolis sampling with Gaussian or Student-t proposals,
  optionally cycling over blocks of the parameter vector
- Marginal-likelihood estimation by the modified harmonic mean, bridge
  sampling, Muller's method and Chib-Jeliazkov
- Newey-West standard errors and Geweke's separated partial means test

Examples
--------
Sample from an unnormalized standard normal and estimate its normalizing
constant:

    >>> import numpy as np
    >>> from pyrwm.samplers import run_random_walk_metropolis
    >>> from pyrwm.analysis import bridge_estimate_gaussian
    >>> log_kernel = lambda x: -0.5 * x @ x
    >>> chain = run_random_walk_metropolis(
    ...     log_kernel, start=[0.0], step_size=1.0, n_draws=10000,
    ...     burn_in=1000, retain_values=True, seed=1
    ... )
    >>> log_c = bridge_estimate_gaussian(
    ...     chain, log_kernel, mean=[0.0], cov=[[1.0]], n=2000, seed=2
    ... )  # close to log(sqrt(2 pi))
"""
