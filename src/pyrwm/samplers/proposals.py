"""Random-walk proposal kernels.

Innovations are Gaussian or Student-t vectors scaled by the Cholesky factor of
a covariance assembled from a step-size specification. The block kernel cycles
through contiguous blocks of the parameter vector, perturbing one block per
draw.
"""

import logging
import math
from dataclasses import dataclass, field

import numpy as np
from scipy import linalg

from ..utils.exceptions import ConfigurationError
from ..utils.types import FloatArray, StepSize

logger = logging.getLogger(__name__)


def validate_df(df) -> float | int:
    """Check the degrees of freedom of the proposal distribution.

    Parameters
    ----------
    df : int, float or str
        Either a positive integer (Student-t proposal), or infinity given as
        ``numpy.inf``, ``math.inf`` or the string ``"infinite"`` (Gaussian
        proposal).

    Returns
    -------
    float or int
        ``math.inf`` or the integer degrees of freedom.

    Raises
    ------
    ConfigurationError
        If df is neither infinity nor a positive integer.
    """
    if isinstance(df, str):
        if df.lower() in ("infinite", "infinity", "inf"):
            return math.inf
        raise ConfigurationError(
            msg="Degrees of freedom must be either a positive integer or infinity."
        )
    if isinstance(df, bool):
        raise ConfigurationError(
            msg="Degrees of freedom must be either a positive integer or infinity."
        )
    if isinstance(df, (int, np.integer)) and df > 0:
        return int(df)
    if isinstance(df, (float, np.floating)) and math.isinf(df) and df > 0:
        return math.inf
    raise ConfigurationError(
        msg="Degrees of freedom must be either a positive integer or infinity."
    )


def assemble_cholesky(step_size: StepSize, n_dims: int) -> FloatArray:
    """Build the upper Cholesky factor of the proposal covariance.

    Parameters
    ----------
    step_size : float or array_like
        A scalar standard deviation (covariance ``s**2 * I``), a vector of
        per-dimension standard deviations (covariance ``diag(v**2)``), or a
        covariance matrix, which is symmetrized as ``(M + M.T) / 2``.
    n_dims : int
        Dimension of the parameter vector.

    Returns
    -------
    FloatArray
        Upper triangular U of shape (n_dims, n_dims) with ``U.T @ U`` equal
        to the covariance.

    Raises
    ------
    ConfigurationError
        If the step size has the wrong shape or the covariance is not
        positive definite.
    """
    step = np.asarray(step_size, dtype=float)
    if step.ndim == 0:
        cov = step**2 * np.eye(n_dims)
    elif step.ndim == 1:
        if step.shape[0] != n_dims:
            raise ConfigurationError(
                msg=f"Vector of step sizes must have length {n_dims}. Provided length: {step.shape[0]}"
            )
        cov = np.diag(step**2)
    elif step.ndim == 2:
        if step.shape != (n_dims, n_dims):
            raise ConfigurationError(
                msg=f"Step covariance must have shape {(n_dims, n_dims)}. Provided shape: {step.shape}"
            )
        cov = 0.5 * (step + step.T)
    else:
        raise ConfigurationError(
            msg="Step size must be a scalar, a vector or a covariance matrix."
        )

    try:
        return linalg.cholesky(cov, lower=False)
    except linalg.LinAlgError as e:
        raise ConfigurationError(
            msg="Step covariance is not positive definite."
        ) from e


class ProposalKernel:
    """Gaussian or Student-t random-walk innovations for a single block."""

    def __init__(
        self,
        step_size: StepSize,
        n_dims: int,
        df=math.inf,
        rng: np.random.Generator | None = None,
    ):
        """
        Initialize the proposal kernel.

        Parameters
        ----------
        step_size : float or array_like
            Step-size specification, see `assemble_cholesky`.
        n_dims : int
            Dimension of the innovations.
        df : int, float or str, optional
            Degrees of freedom. Default is infinity (Gaussian).
        rng : numpy.random.Generator, optional
            Source of randomness. A fresh default generator if not given.
        """
        if not isinstance(n_dims, (int, np.integer)) or n_dims <= 0:
            raise ConfigurationError(msg="Number of dimensions must be a positive integer.")
        self.df = validate_df(df)
        self.chol = assemble_cholesky(step_size, int(n_dims))
        self.rng = np.random.default_rng() if rng is None else rng

    def __repr__(self):
        """String representation of the proposal kernel."""
        return f"ProposalKernel(n_dims={self.n_dims}, df={self.df})"

    @property
    def n_dims(self) -> int:
        """Dimension of the innovations."""
        return self.chol.shape[0]

    def draw(self) -> FloatArray:
        """Draw a single innovation of shape (n_dims,)."""
        z = self.rng.standard_normal(self.n_dims)
        if not math.isinf(self.df):
            w = self.rng.standard_normal(self.df)
            z = np.sqrt(self.df / np.dot(w, w)) * z
        return z @ self.chol


@dataclass
class BlockCursor:
    """Cyclic cursor over the blocks of a block proposal.

    The first call to `advance` selects block 0.
    """

    n_blocks: int
    index: int = field(default=-1, init=False)

    def __post_init__(self):
        """Post-initialization checks."""
        if not isinstance(self.n_blocks, int) or self.n_blocks <= 0:
            raise ConfigurationError(msg="n_blocks must be a positive integer.")

    def advance(self) -> int:
        """Move to the next block and return its index."""
        self.index = (self.index + 1) % self.n_blocks
        return self.index

    def reset(self) -> None:
        """Rewind the cursor so the next block is block 0."""
        self.index = -1


class BlockProposalKernel:
    """Random-walk innovations that perturb one block of the parameters at a time.

    Each draw advances an internal cursor and returns a vector of the full
    parameter dimension that is zero outside the active block. The cursor
    belongs to this instance, so samplers that run concurrently must each
    construct their own kernel.
    """

    def __init__(
        self,
        step_sizes: list[StepSize],
        block_dims: list[int],
        df=math.inf,
        rng: np.random.Generator | None = None,
    ):
        """
        Initialize the block proposal kernel.

        Parameters
        ----------
        step_sizes : list
            One step-size specification per block.
        block_dims : list of int
            Dimension of each contiguous block.
        df : int, float or str, optional
            Degrees of freedom shared by every block. Default is infinity.
        rng : numpy.random.Generator, optional
            Source of randomness shared by every block.
        """
        if len(step_sizes) != len(block_dims):
            raise ConfigurationError(
                msg=f"Number of step sizes ({len(step_sizes)}) must match the number of blocks ({len(block_dims)})."
            )
        if len(block_dims) == 0:
            raise ConfigurationError(msg="At least one block is required.")
        self.rng = np.random.default_rng() if rng is None else rng
        self.kernels = [
            ProposalKernel(step, dim, df=df, rng=self.rng)
            for step, dim in zip(step_sizes, block_dims)
        ]
        self.block_dims = [int(dim) for dim in block_dims]
        self.offsets = np.concatenate([[0], np.cumsum(self.block_dims)[:-1]]).astype(int)
        self.cursor = BlockCursor(len(self.block_dims))

    def __repr__(self):
        """String representation of the block proposal kernel."""
        return f"BlockProposalKernel(block_dims={self.block_dims}, df={self.df})"

    @property
    def df(self):
        """Degrees of freedom of the innovations."""
        return self.kernels[0].df

    @property
    def n_blocks(self) -> int:
        """Number of blocks."""
        return len(self.block_dims)

    @property
    def n_dims(self) -> int:
        """Dimension of the full parameter vector."""
        return int(sum(self.block_dims))

    def draw(self) -> FloatArray:
        """Draw an innovation for the next block in the cycle."""
        block = self.cursor.advance()
        step = np.zeros(self.n_dims)
        start = self.offsets[block]
        step[start : start + self.block_dims[block]] = self.kernels[block].draw()
        logger.debug("Proposing a move in block %d", block)
        return step

    def reset(self) -> None:
        """Rewind the block cursor."""
        self.cursor.reset()
