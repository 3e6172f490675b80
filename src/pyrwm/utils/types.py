"""Custom types for pyrwm."""

from typing import Annotated, Protocol, TypeAlias

import numpy as np
import numpy.typing as npt

# These types are not actually supported by type checkers, so this is more for documentation purposes.
# Current numpy type annotations only specify the dtype, not the shape.
FloatArray: TypeAlias = npt.NDArray[np.floating]
ParameterChain: TypeAlias = Annotated[FloatArray, "(n_draws, n_dims)"]
LogValueChain: TypeAlias = Annotated[FloatArray, "(n_draws,)"]
StepSize: TypeAlias = float | npt.ArrayLike


class Density(Protocol):
    """Protocol for (unnormalized) density kernels.

    Used by the sampler and by every marginal-likelihood estimator that needs
    to evaluate the target at new points.
    """

    def __call__(self, x: FloatArray) -> float:
        """Evaluate the kernel at point x.

        Parameters
        ----------
        x : FloatArray
            Parameter vector of shape (n_dims,).

        Returns
        -------
        float
            Kernel value at x, in logs unless stated otherwise by the caller.
        """
        ...


class BoundsPredicate(Protocol):
    """Protocol for functions deciding whether a point lies in the support."""

    def __call__(self, x: FloatArray) -> bool:
        """Return True if x is inside the parameter space."""
        ...


class Proposal(Protocol):
    """Protocol for random-walk innovation generators."""

    @property
    def n_dims(self) -> int:
        """Dimension of the innovations."""
        ...

    def draw(self) -> FloatArray:
        """Draw a single innovation of shape (n_dims,)."""
        ...


def always_in_bounds(x: FloatArray) -> bool:
    """Default bounds predicate accepting every point."""
    return True
