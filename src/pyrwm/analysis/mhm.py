"""Modified harmonic mean (Gelfand-Dey) estimate of the marginal likelihood."""

import logging
import warnings

import numpy as np
import numpy.typing as npt
from scipy import stats
from scipy.special import logsumexp

from ..utils.exceptions import InputError
from ..utils.gaussian import chain_mean_and_covariance
from ..utils.types import FloatArray
from ._utils import unpack_chain

logger = logging.getLogger(__name__)


class TruncatedGaussian:
    """Gaussian density truncated to the ellipsoid holding mass 1 - p.

    The density is renormalized so that it integrates to one over the
    ellipsoid ``(x - mean)' inv(cov) (x - mean) <= chi2_k.ppf(1 - p)``.
    """

    def __init__(self, mean: npt.ArrayLike, cov: npt.ArrayLike, p: float = 0.01):
        """
        Initialize the truncated Gaussian.

        Parameters
        ----------
        mean : array_like
            Mean vector of shape (n_dims,).
        cov : array_like
            Covariance matrix of shape (n_dims, n_dims).
        p : float, optional
            Tail probability cut off by the truncation. Default is 0.01.
        """
        if not 0 < p < 1:
            raise InputError(msg=f"Truncation p-value must lie in (0, 1). Provided: {p}")
        self.mean = np.atleast_1d(np.asarray(mean, dtype=float))
        self.cov = np.atleast_2d(np.asarray(cov, dtype=float))
        n_dims = self.mean.shape[0]
        if self.cov.shape != (n_dims, n_dims):
            raise InputError(
                msg=f"Covariance must have shape {(n_dims, n_dims)}. Provided shape: {self.cov.shape}"
            )
        sign, logdet = np.linalg.slogdet(self.cov)
        if sign <= 0:
            raise InputError(msg="Covariance of the chain is not positive definite.")
        self.p = p
        self.inv_cov = np.linalg.inv(self.cov)
        self.log_const = -0.5 * (n_dims * np.log(2 * np.pi) + logdet) - np.log1p(-p)
        self.threshold = stats.chi2.ppf(1 - p, n_dims)

    def log_density(self, x: npt.ArrayLike) -> FloatArray:
        """Log-density at each row of x, -inf outside the ellipsoid."""
        dev = np.asarray(x, dtype=float).reshape(-1, self.mean.shape[0]) - self.mean
        quad = np.einsum("ij,jk,ik->i", dev, self.inv_cov, dev)
        return np.where(quad <= self.threshold, self.log_const - quad / 2, -np.inf)

    def __call__(self, x: npt.ArrayLike) -> FloatArray:
        """Density at each row of x."""
        return np.exp(self.log_density(x))


def mhm_function(mean: npt.ArrayLike, cov: npt.ArrayLike, p: float = 0.01) -> TruncatedGaussian:
    """Build the truncated Gaussian test function of the Gelfand-Dey estimator."""
    return TruncatedGaussian(mean, cov, p)


def mhm_function_from_chain(params: npt.ArrayLike, p: float = 0.01) -> TruncatedGaussian:
    """Build the test function from the mean and covariance of chain draws."""
    return TruncatedGaussian(*chain_mean_and_covariance(params), p)


def mhm_estimate(
    chain,
    log_values: npt.ArrayLike | None = None,
    p: float = 0.01,
    log_scale: bool = False,
) -> float | None:
    """Gelfand-Dey modified harmonic mean estimate of the log marginal likelihood.

    Parameters
    ----------
    chain : MetropolisChain, tuple or array_like
        Chain output, see `pyrwm.analysis._utils.unpack_chain`.
    log_values : array_like, optional
        Kernel values of the draws if not contained in `chain`.
    p : float, optional
        Tail probability cut off by the truncated Gaussian. Default is 0.01.
    log_scale : bool, optional
        Whether the kernel values are logs. Default is False.

    Returns
    -------
    float or None
        Log of ``1 / mean(g(x_i) / L(x_i))`` where g is the truncated
        Gaussian fitted to the draws and L the kernel, or None if no draw
        lies inside the truncation ellipsoid.

    Notes
    -----
    The sum is formed in the log domain, so kernel values far outside the
    range of machine floats are handled.

    References
    ----------
    Geweke, J. (1999). Using simulation methods for Bayesian econometric
    models: inference, development, and communication. Econometric Reviews,
    18, 1-126.
    """
    params, values = unpack_chain(chain, log_values, log_scale=log_scale)
    test_function = mhm_function_from_chain(params, p)
    log_g = test_function.log_density(params)
    inside = np.isfinite(log_g)
    if not np.any(inside):
        warnings.warn("No draws lie inside the truncation ellipsoid.")
        return None
    # draws outside the ellipsoid contribute zero to the mean
    log_mean = logsumexp(log_g[inside] - values[inside]) - np.log(len(log_g))
    logger.debug("Gelfand-Dey log mean ratio: %g", log_mean)
    return float(-log_mean)
