"""Bridge sampling estimates of ratios of normalizing constants."""

import logging
import warnings
from collections.abc import Callable

import numpy as np
import numpy.typing as npt
from scipy.optimize import brentq

from ..samplers.metropolis import run_random_walk_metropolis
from ..utils.exceptions import BracketWarning, DrawCountWarning, InputError
from ..utils.gaussian import GaussianWeighting
from ..utils.types import BoundsPredicate, Density, FloatArray
from ._utils import MAX_LOG, log_kernel_on_draws, unpack_chain

logger = logging.getLogger(__name__)

MAX_BRACKET_EXPANSIONS = 60


def bridge_estimate_power_family(
    z1: npt.ArrayLike, z2: npt.ArrayLike, k: float = 1.0, A: float = 1.0
) -> float:
    """Closed-form power-family bridge estimate.

    Parameters
    ----------
    z1, z2 : array_like
        Log differences ``log f1 - log f2`` on draws from distribution 1 and
        ``log f2 - log f1`` on draws from distribution 2.
    k, A : float, optional
        Power-family parameters. Default is k = 1, A = 1.

    Returns
    -------
    float
        ``log( mean((t + exp(z1/k))**-k) / mean((1 + t*exp(z2/k))**-k) )``
        with ``t = A**(1/k)``.

    References
    ----------
    Meng, X.-L. & Wong, W.H. (1996). Simulating ratios of normalizing
    constants via a simple identity: a theoretical exploration. Statistica
    Sinica, 6, 831-860.
    """
    z1 = np.asarray(z1, dtype=float)
    z2 = np.asarray(z2, dtype=float)
    t = A ** (1.0 / k)
    with np.errstate(over="ignore", divide="ignore"):
        num = np.mean((t + np.exp(z1 / k)) ** (-k))
        den = np.mean((1.0 + t * np.exp(z2 / k)) ** (-k))
        return float(np.log(num / den))


def bridge_function(
    z1: npt.ArrayLike, z2: npt.ArrayLike, psi: float = 1.0
) -> Callable[[float], float]:
    """Return the function whose root defines the bridge estimate.

    The function is
    ``mean_z2(1 / (psi + exp(z2 - x))) - mean_z1(1 / (1 + psi * exp(z1 + x)))``,
    which increases with x. Terms whose exponent is at least the log of the
    largest machine float contribute zero.
    """
    z1 = np.asarray(z1, dtype=float)
    z2 = np.asarray(z2, dtype=float)

    def fun(x: float) -> float:
        a2 = z2 - x
        a1 = z1 + x
        with np.errstate(over="ignore"):
            t2 = np.where(a2 < MAX_LOG, 1.0 / (psi + np.exp(np.minimum(a2, MAX_LOG))), 0.0)
            t1 = np.where(
                a1 < MAX_LOG, 1.0 / (1.0 + psi * np.exp(np.minimum(a1, MAX_LOG))), 0.0
            )
        return float(np.mean(t2) - np.mean(t1))

    return fun


def _bracket_root(fun: Callable[[float], float], x0: float) -> tuple[float, float, float, float]:
    """Grow an interval around x0 until an increasing function changes sign."""
    width = 1.0
    lo, hi = x0 - width, x0 + width
    f_lo, f_hi = fun(lo), fun(hi)
    for _ in range(MAX_BRACKET_EXPANSIONS):
        if f_lo <= 0 <= f_hi:
            break
        width *= 2
        if f_lo > 0:
            lo -= width
            f_lo = fun(lo)
        if f_hi < 0:
            hi += width
            f_hi = fun(hi)
    return lo, hi, f_lo, f_hi


def bridge_estimate_from_log_ratios(
    z1: npt.ArrayLike, z2: npt.ArrayLike, psi: float = 1.0, **brentq_kwargs
) -> float:
    """Iterative bridge estimate of ``log(c1/c2)`` from log differences.

    Parameters
    ----------
    z1 : array_like
        ``log f1(x) - log f2(x)`` for draws x from distribution 1.
    z2 : array_like
        ``log f2(x) - log f1(x)`` for draws x from distribution 2.
    psi : float, optional
        Number of "independent" draws in the first sample relative to the
        second. When in doubt, use 1 (default).
    **brentq_kwargs
        Passed on to `scipy.optimize.brentq` (e.g. ``xtol``, ``maxiter``).

    Returns
    -------
    float
        Estimate of ``log(c1/c2)``. If zero cannot be bracketed a
        `BracketWarning` is issued and the bracket end closest to zero is
        used.

    References
    ----------
    Meng, X.-L. & Wong, W.H. (1996). Simulating ratios of normalizing
    constants via a simple identity: a theoretical exploration. Statistica
    Sinica, 6, 831-860.
    """
    z1 = np.asarray(z1, dtype=float).ravel()
    z2 = np.asarray(z2, dtype=float).ravel()
    if z1.size == 0 or z2.size == 0:
        raise InputError(msg="Both samples of log differences must be non-empty.")
    if psi <= 0:
        raise InputError(msg=f"psi must be positive. Provided: {psi}")

    fun = bridge_function(z1, z2, psi)
    x0 = bridge_estimate_power_family(z1, z2)
    if not np.isfinite(x0):
        logger.debug("Power-family starting value %s is not finite, using 0", x0)
        x0 = 0.0

    lo, hi, f_lo, f_hi = _bracket_root(fun, x0)
    logger.debug("Bridge root bracket [%g, %g], starting value %g", lo, hi, x0)
    if f_lo <= 0 <= f_hi:
        root = brentq(fun, lo, hi, **brentq_kwargs)
    else:
        warnings.warn(
            f"The interval {[f_lo, f_hi]} does not contain zero. Returning the value "
            "closest to zero. Try using a larger number of draws from the weighting "
            "distribution.",
            BracketWarning,
        )
        root = lo if abs(f_lo) < abs(f_hi) else hi
    return float(-root)


def bridge_estimate(
    log_f1: Density,
    log_f2: Density,
    draws1: npt.ArrayLike,
    draws2: npt.ArrayLike,
    psi: float = 1.0,
    **brentq_kwargs,
) -> float:
    """Bridge estimate of ``log(c1/c2)`` for the kernels ``exp(log_f1)`` and ``exp(log_f2)``.

    Parameters
    ----------
    log_f1, log_f2 : Density
        Log-kernels of the two distributions.
    draws1, draws2 : array_like
        Draws from each distribution, one draw per row.
    psi : float, optional
        Relative number of independent draws in `draws1`. Default is 1.

    Returns
    -------
    float
        Estimate of ``log(c1/c2)``. Swapping the two distributions negates
        the estimate when psi is 1.
    """
    z1 = np.array([log_f1(x) - log_f2(x) for x in draws1], dtype=float)
    z2 = np.array([log_f2(x) - log_f1(x) for x in draws2], dtype=float)
    return bridge_estimate_from_log_ratios(z1, z2, psi, **brentq_kwargs)


def _draw_weighting_sample(
    weighting: GaussianWeighting,
    n: int,
    in_bounds: BoundsPredicate | None,
    force_draws: bool,
    rng: np.random.Generator,
    max_draws_factor: int = 1000,
) -> FloatArray:
    """Draw the auxiliary sample, optionally forcing n in-bounds draws."""
    if in_bounds is None:
        return weighting.draw(n, rng)

    if not force_draws:
        draws = weighting.draw(n, rng)
        return draws[[bool(in_bounds(x)) for x in draws]]

    kept = []
    n_drawn = 0
    while len(kept) < n:
        if n_drawn >= max_draws_factor * n:
            raise InputError(
                msg=f"Only {len(kept)} of {n_drawn} draws from the weighting distribution are in bounds."
            )
        batch = weighting.draw(n - len(kept), rng)
        n_drawn += len(batch)
        kept.extend(x for x in batch if in_bounds(x))
    return np.array(kept).reshape(n, weighting.n_dims)


def bridge_estimate_gaussian(
    chain,
    log_kernel: Density,
    mean: npt.ArrayLike,
    cov: npt.ArrayLike,
    n: int,
    psi: float = 1.0,
    log_values: npt.ArrayLike | None = None,
    in_bounds: BoundsPredicate | None = None,
    log_scale: bool = True,
    force_draws: bool = True,
    seed=None,
    **brentq_kwargs,
) -> float | None:
    """Bridge estimate of the log marginal likelihood using a Gaussian bridge density.

    Parameters
    ----------
    chain : MetropolisChain, tuple or array_like
        MCMC output from the kernel, see `pyrwm.analysis._utils.unpack_chain`.
    log_kernel : Density
        The posterior kernel, in logs unless `log_scale` is False.
    mean, cov : array_like
        Mean and covariance of the Gaussian weighting distribution.
    n : int
        Number of draws from the weighting distribution.
    psi : float, optional
        Relative number of independent draws in the chain. Default is 1.
    log_values : array_like, optional
        Kernel values of the chain if not contained in `chain`.
    in_bounds : BoundsPredicate, optional
        Function returning True for points inside the parameter space.
    log_scale : bool, optional
        Whether the kernel and the chain values are logs. Default is True.
    force_draws : bool, optional
        If True (default), keep drawing until n in-bounds draws are
        obtained. Otherwise out-of-bounds draws are dropped, the realized
        number is reported with a `DrawCountWarning`, and None is returned if
        no draw is in bounds.
    seed : int or numpy.random.Generator, optional
        Seed for the weighting draws.

    Returns
    -------
    float or None
        Estimate of the log normalizing constant of the kernel.

    Notes
    -----
    With `in_bounds` given, the weighting draws come from N(mean, cov)
    restricted to the bounds while z2 uses the untruncated Gaussian
    log-density. The result then estimates ``log c - log P(in bounds)``,
    with P the mass of N(mean, cov) inside the bounds, in both the forced
    and the unforced mode.
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

    draws = _draw_weighting_sample(weighting, n, in_bounds, force_draws, rng)
    if not force_draws:
        if len(draws) == 0:
            warnings.warn(
                "There are no draws from test distribution in bounds.", DrawCountWarning
            )
            return None
        warnings.warn(
            f"There are {len(draws)} draws from test distribution in bounds.",
            DrawCountWarning,
        )

    f_on_draws = log_kernel_on_draws(draws, log_kernel, in_bounds, log_scale)
    z1 = values - weighting(params)
    z2 = weighting(draws) - f_on_draws
    return bridge_estimate_from_log_ratios(z1, z2, psi, **brentq_kwargs)


def bridge_estimate_from_metropolis(
    log_kernel: Density,
    start,
    step_size,
    n_steps: int,
    mean: npt.ArrayLike,
    cov: npt.ArrayLike,
    n: int,
    psi: float = 1.0,
    in_bounds: BoundsPredicate | None = None,
    force_draws: bool = True,
    seed=None,
    **sampler_kwargs,
) -> float | None:
    """Run the random-walk Metropolis sampler and bridge-estimate the log marginal likelihood.

    Parameters
    ----------
    log_kernel : Density
        Log posterior kernel.
    start, step_size, n_steps
        Passed to `pyrwm.samplers.run_random_walk_metropolis`.
    mean, cov, n, psi, in_bounds, force_draws
        Passed to `bridge_estimate_gaussian`.
    seed : int or numpy.random.Generator, optional
        Seed shared by the sampler and the weighting draws.
    **sampler_kwargs
        Further options for the sampler, e.g. ``thinning`` or ``burn_in``.
    """
    rng = np.random.default_rng(seed)
    chain = run_random_walk_metropolis(
        log_kernel,
        start,
        step_size,
        n_steps,
        log_scale=True,
        in_bounds=in_bounds,
        retain_values=True,
        seed=rng,
        **sampler_kwargs,
    )
    return bridge_estimate_gaussian(
        chain,
        log_kernel,
        mean,
        cov,
        n,
        psi=psi,
        in_bounds=in_bounds,
        log_scale=True,
        force_draws=force_draws,
        seed=rng,
    )
