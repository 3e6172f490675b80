"""Muller's method for the log marginal likelihood."""

import logging
import warnings
from collections.abc import Callable

import numpy as np
import numpy.typing as npt
from scipy.optimize import brentq

from ..utils.exceptions import BracketWarning, InputError
from ..utils.gaussian import GaussianWeighting
from ..utils.types import BoundsPredicate, Density
from ._utils import log_kernel_on_draws, unpack_chain

logger = logging.getLogger(__name__)


def muller_list_sum(shift: float, sorted_list: npt.ArrayLike) -> float:
    """Average of ``1 - exp(t)`` over the negative ``t = sorted_list + shift``.

    The list holds logs sorted in ascending order, so the sum stops at the
    first non-negative term. The sum is divided by the full list length.
    """
    t = np.asarray(sorted_list, dtype=float) + shift
    stop = np.searchsorted(t, 0.0, side="left")
    return float(np.sum(-np.expm1(t[:stop])) / len(t))


def muller_function(rf: npt.ArrayLike, rg: npt.ArrayLike) -> Callable[[float], float]:
    """Return ``M(x) = S(-x, rg) - S(x, rf)`` for sorted log ratios rf and rg."""
    rf = np.asarray(rf, dtype=float)
    rg = np.asarray(rg, dtype=float)

    def fun(x: float) -> float:
        return muller_list_sum(-x, rg) - muller_list_sum(x, rf)

    return fun


def marginal_likelihood_muller(
    chain,
    log_kernel: Density,
    mean: npt.ArrayLike,
    cov: npt.ArrayLike,
    n: int,
    log_values: npt.ArrayLike | None = None,
    in_bounds: BoundsPredicate | None = None,
    log_scale: bool = True,
    seed=None,
    **brentq_kwargs,
) -> float:
    """Log marginal likelihood by Ulrich K. Muller's method.

    Parameters
    ----------
    chain : MetropolisChain, tuple or array_like
        MCMC output from the kernel, see `pyrwm.analysis._utils.unpack_chain`.
    log_kernel : Density
        The posterior kernel, in logs unless `log_scale` is False.
    mean, cov : array_like
        Mean and covariance of the Gaussian weighting distribution.
    n : int
        Number of draws from the weighting distribution. Since these draws are
        independent, n can be substantially smaller than the chain length.
    log_values : array_like, optional
        Kernel values of the chain if not contained in `chain`.
    in_bounds : BoundsPredicate, optional
        Function returning True for points inside the parameter space.
        Weighting draws outside it are given a log-kernel of minus the
        largest machine float.
    log_scale : bool, optional
        Whether the kernel and the chain values are logs. Default is True.
    seed : int or numpy.random.Generator, optional
        Seed for the weighting draws.
    **brentq_kwargs
        Passed on to `scipy.optimize.brentq`.

    Returns
    -------
    float
        Estimate of the log marginal likelihood. If the root is not
        bracketed by ``[-max(rf), max(rg)]`` a `BracketWarning` is issued and
        the endpoint nearest the root is returned.
    """
    if not isinstance(n, (int, np.integer)) or n <= 0:
        raise InputError(msg="Number of weighting draws must be a positive integer.")
    rng = np.random.default_rng(seed)
    params, values = unpack_chain(chain, log_values, log_scale=log_scale)
    weighting = GaussianWeighting(mean, cov)
    if weighting.n_dims != params.shape[1]:
        raise InputError(
            msg=f"Weighting Gaussian has dimension {weighting.n_dims} but the chain has dimension {params.shape[1]}."
        )

    draws = weighting.draw(n, rng)
    f_on_draws = log_kernel_on_draws(draws, log_kernel, in_bounds, log_scale)
    rf = np.sort(weighting(params) - values)
    rg = np.sort(f_on_draws - weighting(draws))

    fun = muller_function(rf, rg)
    lo, hi = -rf[-1], rg[-1]
    m_lo, m_hi = fun(lo), fun(hi)
    logger.debug("Muller bracket [%g, %g] with values [%g, %g]", lo, hi, m_lo, m_hi)

    if m_lo <= 0 <= m_hi:
        if m_lo == 0:
            return float(lo)
        return float(brentq(fun, lo, hi, **brentq_kwargs))

    warnings.warn(
        f"The interval {[m_lo, m_hi]} does not contain zero. Returning the value "
        "closest to zero. Try using a larger number of draws from the weighting "
        "distribution.",
        BracketWarning,
    )
    return float(lo if m_lo > 0 else hi)
