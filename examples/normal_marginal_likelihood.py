"""Estimate the normalizing constant of a truncated bivariate normal kernel.

The kernel exp(-x'x/2) restricted to x[0] > 0 has normalizing constant pi,
which every estimator should recover from the same random-walk chain.
"""

import numpy as np

from pyrwm.analysis import (
    bridge_estimate_gaussian,
    marginal_likelihood_cj,
    marginal_likelihood_muller,
    mhm_estimate,
    numerical_standard_error,
    separated_partial_means,
)
from pyrwm.samplers import acceptance_rate, run_random_walk_metropolis
from pyrwm.utils.gaussian import chain_mean_and_covariance


def log_kernel(x):
    return -0.5 * x @ x


def in_bounds(x):
    return x[0] > 0


if __name__ == "__main__":
    step = 1.2
    params, log_values = run_random_walk_metropolis(
        log_kernel,
        start=[1.0, 0.0],
        step_size=step,
        n_draws=40000,
        in_bounds=in_bounds,
        retain_values=True,
        burn_in=1000,
        seed=42,
        progress=True,
    )
    mean, cov = chain_mean_and_covariance(params)
    chain = (params, log_values)

    print(f"Acceptance rate: {acceptance_rate(params):.3f}")
    for i in range(params.shape[1]):
        nse = numerical_standard_error(params[:, i], 50)
        p_value = separated_partial_means(params[:, i], 4, 50)
        print(f"x[{i}]: mean {mean[i]:.3f}, NSE {nse:.4f}, SPM p-value {p_value:.3f}")

    print(f"True log normalizing constant: {np.log(np.pi):.4f}")
    # the MHM ellipsoid crosses x[0] = 0, so this estimate is biased upwards
    print(f"MHM:        {mhm_estimate(chain, log_scale=True):.4f}")
    # bridge draws are truncated to the bounds, so this estimates log(pi) - log P(x[0] > 0)
    print(
        "Bridge:     "
        f"{bridge_estimate_gaussian(chain, log_kernel, mean, cov, 10000, in_bounds=in_bounds, seed=1):.4f}"
    )
    print(
        "Muller:     "
        f"{marginal_likelihood_muller(chain, log_kernel, mean, cov, 10000, in_bounds=in_bounds, seed=2):.4f}"
    )
    print(
        "Chib-Jeliazkov: "
        f"{marginal_likelihood_cj(chain, log_kernel, step**2 * np.eye(2), [0.5, 0.0], 10000, in_bounds=in_bounds, seed=3):.4f}"
    )
