"""Chib-Jeliazkov estimate of the log marginal likelihood from Metropolis output."""

import logging

import numpy as np
import numpy.typing as npt
from scipy.special import logsumexp

from ..utils.exceptions import InputError
from ..utils.gaussian import GaussianWeighting
from ..utils.types import BoundsPredicate, Density
from ._utils import log_kernel_on_draws, unpack_chain

logger = logging.getLogger(__name__)


def marginal_likelihood_cj(
    chain,
    log_kernel: Density,
    cov: npt.ArrayLike,
    x_star: npt.ArrayLike,
    n: int,
    log_values: npt.ArrayLike | None = None,
    in_bounds: BoundsPredicate | None = None,
    log_scale: bool = True,
    seed=None,
) -> float:
    """
    Log marginal likelihood by the method of Chib and Jeliazkov.

    Parameters
    ----------
    chain : MetropolisChain, tuple or array_like
        Random-walk Metropolis output, see `pyrwm.analysis._utils.unpack_chain`.
    log_kernel : Density
        The posterior kernel, in logs unless `log_scale` is False.
    cov : array_like
        Covariance of the Gaussian random-walk proposal used to build the chain.
    x_star : array_like
        Point at which the posterior ordinate is estimated, ideally a
        high-density point.
    n : int
        Number of draws from the proposal centred at `x_star`.
    log_values : array_like, optional
        Kernel values of the chain if not contained in `chain`.
    in_bounds : BoundsPredicate, optional
        Function returning True for points inside the parameter space. Draws
        outside it have zero acceptance probability and are never passed to
        the kernel.
    log_scale : bool, optional
        Whether the kernel and the chain values are logs. Default is True.
    seed : int or numpy.random.Generator, optional
        Seed for the proposal draws.

    Returns
    -------
    float
        ``f(x*) - log(numerator / denominator)``, where the numerator is the
        chain average of ``alpha(x_i, x*) q(x_i, x*)`` and the denominator the
        average of ``alpha(x*, y_j)`` over proposal draws y_j.

    References
    ----------
    Chib, S. & Jeliazkov, I. (2001). Marginal likelihood from the
    Metropolis-Hastings output. Journal of the American Statistical
    Association, 96, 270-281.
    """
    if not isinstance(n, (int, np.integer)) or n <= 0:
        raise InputError(msg="Number of proposal draws must be a positive integer.")
    rng = np.random.default_rng(seed)
    params, values = unpack_chain(chain, log_values, log_scale=log_scale)
    x_star = np.atleast_1d(np.asarray(x_star, dtype=float))
    proposal = GaussianWeighting(x_star, cov)
    if proposal.n_dims != params.shape[1]:
        raise InputError(
            msg=f"x_star has dimension {proposal.n_dims} but the chain has dimension {params.shape[1]}."
        )

    value_star = log_kernel_on_draws(x_star[np.newaxis, :], log_kernel, None, log_scale)[0]
    draws = proposal.draw(n, rng)
    values_on_draws = log_kernel_on_draws(
        draws, log_kernel, in_bounds, log_scale, out_of_bounds_value=-np.inf
    )

    log_num = logsumexp(np.minimum(0.0, value_star - values) + proposal(params))
    log_den = logsumexp(np.minimum(0.0, values_on_draws - value_star))
    log_ordinate = (log_num - np.log(len(values))) - (log_den - np.log(n))
    logger.debug("Chib-Jeliazkov log posterior ordinate at %s: %g", x_star, log_ordinate)
    return float(value_star - log_ordinate)
