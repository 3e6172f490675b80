"""Convergence diagnostics for MCMC output.

This module implements the Newey-West long-run variance, the numerical
standard error of a chain mean derived from it, and Geweke's separated
partial means test.

References
----------
Geweke, J. (2005). Contemporary Bayesian Econometrics and Statistics.
John Wiley & Sons, pp. 149-150.
"""

import logging

import numpy as np
import numpy.typing as npt
from scipy import stats

from ..utils.exceptions import InputError
from ..utils.types import FloatArray

logger = logging.getLogger(__name__)


def _as_series(data: npt.ArrayLike) -> FloatArray:
    data = np.asarray(data, dtype=float)
    if data.ndim != 1 or data.size == 0:
        raise InputError(msg=f"Data must be a non-empty 1D series. Provided shape: {data.shape}")
    return data


def _is_positive_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool) and value > 0


def newey_west(data: npt.ArrayLike, n_lags: int) -> float:
    """Newey-West estimate of the long-run variance of a series.

    Parameters
    ----------
    data : array_like
        1D series, e.g. the draws of one parameter.
    n_lags : int
        Number of lags L. The autocovariance at lag s = 1..L is weighted by
        ``2 (L - s) / L``; lag 0 has weight 1.

    Returns
    -------
    float
        Long-run variance of the series.
    """
    data = _as_series(data)
    if not _is_positive_int(n_lags):
        raise InputError(msg="Number of lags must be a positive integer.")
    n = data.shape[0]
    dev = data - np.mean(data)
    # lags at or beyond the series length have no overlapping pairs
    autocov = np.zeros(n_lags + 1)
    for s in range(min(n_lags, n - 1) + 1):
        autocov[s] = dev[s:] @ dev[: n - s] / n
    lags = np.arange(1, n_lags + 1)
    weights = np.concatenate([[1.0], 2.0 * (n_lags - lags) / n_lags])
    return float(weights @ autocov)


def numerical_standard_error(data: npt.ArrayLike, n_lags: int) -> float:
    """Numerical standard error of the mean of a series using Newey-West with L lags."""
    data = _as_series(data)
    return float(np.sqrt(newey_west(data, n_lags) / data.shape[0]))


def separated_partial_means(data: npt.ArrayLike, p: int, n_lags: int) -> float | None:
    """P-value of Geweke's separated partial means test.

    The series is split into 2p contiguous groups of equal size and every
    second group is kept. Under convergence the means of the kept groups
    agree; the test statistic of the p - 1 consecutive differences of group
    means is chi-square with p - 1 degrees of freedom, with the variance of
    each group mean estimated by Newey-West.

    Parameters
    ----------
    data : array_like
        1D series of draws.
    p : int
        Number of separated groups, greater than 1.
    n_lags : int
        Number of lags for the Newey-West variance of each group.

    Returns
    -------
    float or None
        P-value of the test, or None if the test is not computable because
        ``len(data)`` is not a multiple of ``2 p``, ``p <= 1``, or the group
        covariance is singular (e.g. every kept group is constant).
    """
    data = np.asarray(data, dtype=float)
    if (
        data.ndim != 1
        or not _is_positive_int(p)
        or not _is_positive_int(n_lags)
        or p <= 1
        or data.shape[0] == 0
        or data.shape[0] % (2 * p) != 0
    ):
        logger.debug(
            "Separated partial means not computable for %d draws, p=%s, L=%s",
            data.shape[0] if data.ndim else 0,
            p,
            n_lags,
        )
        return None

    group_size = data.shape[0] // (2 * p)
    groups = data.reshape(2 * p, group_size)[1::2]
    diffs = np.diff(groups.mean(axis=1))
    variances = np.array([newey_west(group, n_lags) for group in groups])

    main_diag = (variances[:-1] + variances[1:]) / group_size
    off_diag = -variances[1:-1] / group_size
    cov = np.diag(main_diag) + np.diag(off_diag, 1) + np.diag(off_diag, -1)

    try:
        chi_sq = float(diffs @ np.linalg.solve(cov, diffs))
    except np.linalg.LinAlgError:
        # every kept group is constant, e.g. a chain that never moved
        logger.debug("Separated partial means covariance is singular")
        return None
    logger.debug("Separated partial means statistic: %g", chi_sq)
    return float(stats.chi2.sf(chi_sq, p - 1))
