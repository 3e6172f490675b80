"""Gaussian weighting densities shared by the marginal-likelihood estimators."""

import numpy as np
import numpy.typing as npt
from scipy import stats

from .exceptions import InputError
from .types import FloatArray


class GaussianWeighting:
    """Multivariate normal weighting density N(mean, cov).

    Thin wrapper around ``scipy.stats.multivariate_normal`` that always works
    with 2D arrays of points, whatever the dimension or number of points.
    """

    def __init__(self, mean: npt.ArrayLike, cov: npt.ArrayLike):
        """
        Initialize the weighting density.

        Parameters
        ----------
        mean : array_like
            Mean vector of shape (n_dims,).
        cov : array_like
            Covariance matrix of shape (n_dims, n_dims).
        """
        self.mean = np.atleast_1d(np.asarray(mean, dtype=float))
        cov = np.atleast_2d(np.asarray(cov, dtype=float))
        if self.mean.ndim != 1:
            raise InputError(msg="Mean of the weighting Gaussian must be a vector.")
        if cov.shape != (self.n_dims, self.n_dims):
            raise InputError(
                msg=f"Covariance of the weighting Gaussian must have shape "
                f"{(self.n_dims, self.n_dims)}. Provided shape: {cov.shape}"
            )
        self.cov = cov
        try:
            self.rv = stats.multivariate_normal(mean=self.mean, cov=self.cov)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise InputError(
                msg=f"Covariance of the weighting Gaussian is not valid: {e}"
            ) from e

    @property
    def n_dims(self) -> int:
        """Dimension of the weighting density."""
        return self.mean.shape[0]

    def __call__(self, x: npt.ArrayLike) -> FloatArray:
        """Evaluate the log-density at each row of x."""
        x = np.asarray(x, dtype=float).reshape(-1, self.n_dims)
        return np.atleast_1d(self.rv.logpdf(x))

    def draw(self, n: int, rng: np.random.Generator) -> FloatArray:
        """Draw n points, returned with shape (n, n_dims)."""
        return np.asarray(self.rv.rvs(size=n, random_state=rng)).reshape(
            n, self.n_dims
        )


def chain_mean_and_covariance(params: npt.ArrayLike) -> tuple[FloatArray, FloatArray]:
    """Mean and covariance of a chain of parameter draws.

    The covariance uses divisor n, i.e. the unbiased covariance scaled by
    (n - 1)/n, and is symmetrized.

    Parameters
    ----------
    params : array_like
        Parameter draws of shape (n_draws, n_dims).

    Returns
    -------
    mean : FloatArray
        Sample mean of shape (n_dims,).
    cov : FloatArray
        Covariance of shape (n_dims, n_dims).
    """
    params = as_parameter_array(params)
    mean = np.mean(params, axis=0)
    cov = np.atleast_2d(np.cov(params, rowvar=False, bias=True))
    return mean, 0.5 * (cov + cov.T)


def as_parameter_array(params: npt.ArrayLike) -> FloatArray:
    """Coerce chain output to a float array of shape (n_draws, n_dims)."""
    params = np.asarray(params, dtype=float)
    if params.ndim == 1:
        params = params[:, np.newaxis]
    if params.ndim != 2 or params.shape[0] == 0:
        raise InputError(
            msg=f"Parameter draws must have shape (n_draws, n_dims). Provided shape: {params.shape}"
        )
    return params
