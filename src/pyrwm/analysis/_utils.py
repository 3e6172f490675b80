"""Common functions for the marginal-likelihood estimators."""

import numpy as np
import numpy.typing as npt

from ..samplers.metropolis import MetropolisChain
from ..utils.exceptions import InputError
from ..utils.gaussian import as_parameter_array
from ..utils.types import BoundsPredicate, Density, FloatArray

# log of the largest machine float; exponentials of larger arguments overflow
MAX_LOG = float(np.log(np.finfo(float).max))


def unpack_chain(
    chain: MetropolisChain | npt.ArrayLike | tuple,
    log_values: npt.ArrayLike | None = None,
    log_scale: bool = True,
) -> tuple[FloatArray, FloatArray]:
    """
    Split chain output into parameter draws and log-kernel values.

    Parameters
    ----------
    chain : MetropolisChain, tuple or array_like
        A `MetropolisChain`, the ``(params, values)`` tuple returned by the
        sampler with ``retain_values=True``, or an array of parameter draws
        of shape (n_draws, n_dims) when `log_values` is given separately.
    log_values : array_like, optional
        Kernel values of each draw, shape (n_draws,).
    log_scale : bool, optional
        Whether the kernel values are logs. Ignored for a `MetropolisChain`,
        whose values are always logs. Default is True.

    Returns
    -------
    params : FloatArray
        Parameter draws of shape (n_draws, n_dims).
    log_values : FloatArray
        Log-kernel values of shape (n_draws,).
    """
    if isinstance(chain, MetropolisChain):
        return np.asarray(chain.params), np.asarray(chain.log_values)

    if log_values is None:
        if isinstance(chain, tuple) and len(chain) == 2:
            chain, log_values = chain
        else:
            raise InputError(
                msg="Kernel values of the chain are required, either in the chain or as log_values."
            )

    params = as_parameter_array(chain)
    values = np.asarray(log_values, dtype=float).ravel()
    if values.shape[0] != params.shape[0]:
        raise InputError(
            msg=f"Chain has {params.shape[0]} draws but {values.shape[0]} kernel values."
        )
    if not log_scale:
        with np.errstate(divide="ignore"):
            values = np.log(values)
    return params, values


def log_kernel_on_draws(
    draws: FloatArray,
    log_kernel: Density,
    in_bounds: BoundsPredicate | None = None,
    log_scale: bool = True,
    out_of_bounds_value: float = -np.finfo(float).max,
) -> FloatArray:
    """Evaluate the log-kernel on each draw, skipping draws out of bounds.

    Draws failing `in_bounds` are never passed to the kernel and get
    `out_of_bounds_value` instead.
    """
    values = np.full(draws.shape[0], out_of_bounds_value)
    for i, x in enumerate(draws):
        if in_bounds is None or in_bounds(x):
            values[i] = log_kernel(x)
    if not log_scale:
        inside = values != out_of_bounds_value
        with np.errstate(divide="ignore"):
            values[inside] = np.log(values[inside])
    return values
