"""Random-Walk Metropolis Sampling."""

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum, auto

import numpy as np
import numpy.typing as npt
from tqdm import tqdm

from ..utils.exceptions import ConfigurationError
from ..utils.types import (
    BoundsPredicate,
    Density,
    FloatArray,
    LogValueChain,
    ParameterChain,
    Proposal,
    always_in_bounds,
)
from .proposals import BlockProposalKernel, ProposalKernel, validate_df

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class State:
    """A point of the chain paired with its log-kernel value."""

    params: FloatArray
    log_value: float


class StepOutcome(StrEnum):
    """Enum for the outcome of a single Metropolis step."""

    ACCEPTED = auto()
    REJECTED = auto()
    OUT_OF_BOUNDS = auto()


def _check_counts(n_draws, thinning, burn_in) -> None:
    """Validate the draw, thinning and burn-in counts of a run."""

    def is_int(value):
        return isinstance(value, (int, np.integer)) and not isinstance(value, bool)

    if not is_int(n_draws) or n_draws <= 0:
        raise ConfigurationError(msg="Number of draws must be a positive integer.")
    if not is_int(thinning) or thinning <= 0:
        raise ConfigurationError(msg="Thinning number must be a positive integer.")
    if not is_int(burn_in) or burn_in < 0:
        raise ConfigurationError(msg="Burn-in number must be a nonnegative integer.")


@dataclass
class SamplerConfig:
    """Dataclass to hold the options of a random-walk Metropolis run."""

    n_draws: int
    thinning: int = 1
    burn_in: int = 0
    df: float | int | str = math.inf
    log_scale: bool = True
    retain_values: bool = False

    def __post_init__(self):
        """Post-initialization checks."""
        _check_counts(self.n_draws, self.thinning, self.burn_in)
        self.df = validate_df(self.df)


@dataclass
class MetropolisChain:
    """Dataclass to hold the output of a random-walk Metropolis run.

    The arrays are made read-only on construction; derive new arrays from
    them rather than modifying them in place.
    """

    params: ParameterChain
    log_values: LogValueChain
    n_proposed: int = 0
    n_accepted: int = 0
    n_out_of_bounds: int = 0

    def __repr__(self):
        """String representation of the chain."""
        return f"MetropolisChain(n_draws={self.n_draws}, n_dims={self.n_dims})"

    def __post_init__(self):
        """Post-initialization checks."""
        self.params = np.array(self.params, dtype=float)
        self.log_values = np.array(self.log_values, dtype=float)
        if self.params.ndim != 2:
            raise ValueError("Parameter chain must have shape (n_draws, n_dims).")
        if self.log_values.shape != (self.params.shape[0],):
            raise ValueError(
                "Parameter chain and log-value chain must have the same length."
            )
        if self.n_accepted + self.n_out_of_bounds > self.n_proposed:
            raise ValueError(
                "Accepted and out-of-bounds proposals cannot exceed the total proposals."
            )
        self.params.flags.writeable = False
        self.log_values.flags.writeable = False

    def __len__(self) -> int:
        """Number of retained draws."""
        return self.n_draws

    @property
    def n_draws(self) -> int:
        """Number of retained draws."""
        return self.params.shape[0]

    @property
    def n_dims(self) -> int:
        """Dimension of the parameter vector."""
        return self.params.shape[1]

    @property
    def acceptance_fraction(self) -> float:
        """Fraction of all proposals made during the run that were accepted."""
        if self.n_proposed == 0:
            return 0.0
        return self.n_accepted / self.n_proposed


class _LogOf:
    """Wrap a kernel returning plain values so that it returns logs."""

    def __init__(self, kernel: Density):
        self.kernel = kernel

    def __call__(self, x: FloatArray) -> float:
        with np.errstate(divide="ignore"):
            return float(np.log(self.kernel(x)))


class MetropolisSampler:
    """Random-walk Metropolis sampler.

    Each step adds an innovation from the proposal to the current point. A
    proposal outside the bounds is rejected without evaluating the kernel;
    otherwise it is accepted if ``log_kernel(proposal) - log_kernel(current)``
    is at least ``log(U)`` with U uniform on (0, 1).
    """

    def __init__(
        self,
        log_kernel: Density,
        proposal: Proposal,
        in_bounds: BoundsPredicate | None = None,
        log_scale: bool = True,
        rng: np.random.Generator | None = None,
    ):
        """
        Initialize the sampler.

        Parameters
        ----------
        log_kernel : Density
            Function of a single parameter vector returning the log of the
            target kernel (or the kernel itself if `log_scale` is False).
        proposal : Proposal
            Generator of random-walk innovations, e.g. `ProposalKernel` or
            `BlockProposalKernel`.
        in_bounds : BoundsPredicate, optional
            Function returning True if a point lies in the parameter space.
            Default accepts every point.
        log_scale : bool, optional
            Whether `log_kernel` returns logs. Default is True.
        rng : numpy.random.Generator, optional
            Source of the uniform deviates used in the acceptance test.
        """
        self.log_kernel = log_kernel if log_scale else _LogOf(log_kernel)
        self.proposal = proposal
        self.in_bounds = always_in_bounds if in_bounds is None else in_bounds
        self.rng = np.random.default_rng() if rng is None else rng

    @property
    def n_dims(self) -> int:
        """Dimension of the parameter vector."""
        return self.proposal.n_dims

    @property
    def n_blocks(self) -> int:
        """Number of proposal blocks making up one sweep."""
        return getattr(self.proposal, "n_blocks", 1)

    def initial_state(self, start: npt.ArrayLike) -> State:
        """Pair the starting point with its log-kernel value."""
        params = np.asarray(start, dtype=float)
        if params.shape != (self.n_dims,):
            raise ConfigurationError(
                msg=f"Starting point must have shape {(self.n_dims,)}. Provided shape: {params.shape}"
            )
        if not self.in_bounds(params):
            logger.warning("Starting point %s is out of bounds", params)
        return State(params=params, log_value=float(self.log_kernel(params)))

    def step(self, current: State) -> tuple[State, StepOutcome]:
        """Perform a single Metropolis step.

        Returns:
            State: The next state, which is the current state unless the proposal was accepted.
            StepOutcome: Whether the proposal was accepted, rejected or out of bounds.
        """
        proposed_params = current.params + self.proposal.draw()
        if not self.in_bounds(proposed_params):
            logger.debug("Proposal %s out of bounds", proposed_params)
            return current, StepOutcome.OUT_OF_BOUNDS

        proposed_value = float(self.log_kernel(proposed_params))
        with np.errstate(divide="ignore"):
            log_u = np.log(self.rng.random())
        accept = proposed_value - current.log_value >= log_u

        logger.debug(
            "%s move: current=%s, proposed=%s",
            "Accepting" if accept else "Rejecting",
            current.params,
            proposed_params,
        )

        if accept:
            return State(params=proposed_params, log_value=proposed_value), StepOutcome.ACCEPTED
        return current, StepOutcome.REJECTED

    def run(
        self,
        start: npt.ArrayLike,
        n_draws: int,
        thinning: int = 1,
        burn_in: int = 0,
        progress: bool = False,
    ) -> MetropolisChain:
        """Run the Markov chain.

        Parameters
        ----------
        start : array_like
            Starting parameter vector.
        n_draws : int
            Number of draws to retain.
        thinning : int, optional
            Keep the state after every `thinning` sweeps. Default is 1.
        burn_in : int, optional
            Number of sweeps discarded before the first retained draw.
            Default is 0.
        progress : bool, optional
            Whether to display a progress bar. Default is False.

        Returns
        -------
        MetropolisChain
            Exactly `n_draws` retained states. Neither the starting point nor
            the burn-in and intermediate thinning states are included.

        Notes
        -----
        A sweep is one step per proposal block, so for a block proposal with
        m blocks the burn-in is ``m * burn_in`` steps and ``m * thinning``
        steps separate retained draws.
        """
        _check_counts(n_draws, thinning, burn_in)
        if hasattr(self.proposal, "reset"):
            self.proposal.reset()
        state = self.initial_state(start)

        steps_per_draw = thinning * self.n_blocks
        n_burn = burn_in * self.n_blocks

        logger.info("Running random-walk Metropolis sampler")
        logger.info("Number of draws: %d", n_draws)
        logger.info("Dimension of parameter vector: %d", self.n_dims)
        logger.info("Thinning: %d, burn-in: %d", thinning, burn_in)

        counts = {outcome: 0 for outcome in StepOutcome}
        for _ in range(n_burn):
            state, outcome = self.step(state)
            counts[outcome] += 1

        params = np.empty((n_draws, self.n_dims))
        log_values = np.empty(n_draws)
        for i in tqdm(range(n_draws), disable=not progress):
            for _ in range(steps_per_draw):
                state, outcome = self.step(state)
                counts[outcome] += 1
            params[i] = state.params
            log_values[i] = state.log_value

        chain = MetropolisChain(
            params=params,
            log_values=log_values,
            n_proposed=sum(counts.values()),
            n_accepted=counts[StepOutcome.ACCEPTED],
            n_out_of_bounds=counts[StepOutcome.OUT_OF_BOUNDS],
        )
        logger.info("Acceptance fraction: %.3f", chain.acceptance_fraction)
        return chain


def _is_block_start(start) -> bool:
    """Whether the starting values are given as a list of blocks."""
    if isinstance(start, np.ndarray):
        return False
    return isinstance(start, Sequence) and any(np.ndim(block) > 0 for block in start)


def run_random_walk_metropolis(
    log_kernel: Density | Callable[[FloatArray], float],
    start,
    step_size,
    n_draws: int,
    *,
    log_scale: bool = True,
    in_bounds: BoundsPredicate | None = None,
    retain_values: bool = False,
    thinning: int = 1,
    burn_in: int = 0,
    df=math.inf,
    seed=None,
    progress: bool = False,
) -> ParameterChain | tuple[ParameterChain, LogValueChain]:
    """Draw from an unnormalized density with the random-walk Metropolis algorithm.

    Parameters
    ----------
    log_kernel : callable
        Function of a single parameter vector returning the log of the target
        kernel, or the kernel itself if `log_scale` is False.
    start : array_like or list of array_like
        Starting parameter vector. If given as a list of vectors, the
        parameter vector is partitioned into these blocks and the block
        version of the algorithm is used, which perturbs one block per step.
    step_size : float, array_like or list
        Scalar or per-dimension standard deviations, or a covariance matrix.
        For the block version, a list with one such specification per block.
    n_draws : int
        Number of draws to return.
    log_scale : bool, optional
        Whether `log_kernel` returns logs. Default is True.
    in_bounds : BoundsPredicate, optional
        Function returning True if a proposal lies in the parameter space.
        The kernel is never evaluated at points outside. Default accepts all.
    retain_values : bool, optional
        Whether to also return the log-kernel values. Default is False.
    thinning : int, optional
        Return every `thinning`-th sweep. Default is 1.
    burn_in : int, optional
        Number of initial sweeps to discard. Default is 0.
    df : int, float or str, optional
        Degrees of freedom of the proposal, infinity for Gaussian (default)
        or a positive integer for Student-t.
    seed : int or numpy.random.Generator, optional
        Seed for reproducible results.
    progress : bool, optional
        Whether to display a progress bar. Default is False.

    Returns
    -------
    ParameterChain or tuple
        Draws of shape (n_draws, n_dims), or a tuple of the draws and their
        log-kernel values of shape (n_draws,) when `retain_values` is True.

    Raises
    ------
    ConfigurationError
        If any option is invalid. Nothing is sampled in that case.

    Examples
    --------
    >>> draws = run_random_walk_metropolis(
    ...     lambda x: -0.5 * x @ x,
    ...     start=[0.0],
    ...     step_size=1.0,
    ...     n_draws=10000,
    ...     burn_in=1000,
    ...     seed=42,
    ... )
    """
    config = SamplerConfig(
        n_draws=n_draws,
        thinning=thinning,
        burn_in=burn_in,
        df=df,
        log_scale=log_scale,
        retain_values=retain_values,
    )
    rng = np.random.default_rng(seed)

    if _is_block_start(start):
        blocks = [np.atleast_1d(np.asarray(block, dtype=float)) for block in start]
        if any(block.ndim != 1 for block in blocks):
            raise ConfigurationError(msg="Each block of starting values must be a vector.")
        if not isinstance(step_size, Sequence) or len(step_size) != len(blocks):
            raise ConfigurationError(
                msg="Block sampling requires one step size per block of starting values."
            )
        proposal = BlockProposalKernel(
            list(step_size), [len(block) for block in blocks], df=config.df, rng=rng
        )
        start = np.concatenate(blocks)
    else:
        start = np.atleast_1d(np.asarray(start, dtype=float))
        if start.ndim != 1:
            raise ConfigurationError(msg="Starting values must be a vector.")
        proposal = ProposalKernel(step_size, len(start), df=config.df, rng=rng)

    sampler = MetropolisSampler(
        log_kernel, proposal, in_bounds=in_bounds, log_scale=config.log_scale, rng=rng
    )
    chain = sampler.run(
        start,
        config.n_draws,
        thinning=config.thinning,
        burn_in=config.burn_in,
        progress=progress,
    )

    if config.retain_values:
        return chain.params, chain.log_values
    return chain.params


def acceptance_rate(chain: MetropolisChain | npt.ArrayLike) -> float:
    """Post-hoc acceptance rate of a chain.

    Computed as the number of runs of identical consecutive rows divided by
    the number of rows, so a chain in which every row differs from the
    previous one has rate 1.

    Parameters
    ----------
    chain : MetropolisChain or array_like
        Chain output of shape (n_draws, n_dims) or (n_draws,).

    Returns
    -------
    float
        Acceptance rate in (0, 1].
    """
    params = chain.params if isinstance(chain, MetropolisChain) else np.asarray(chain)
    if len(params) == 0:
        raise ValueError("Cannot compute the acceptance rate of an empty chain.")
    rows = params.reshape(len(params), -1)
    changes = np.count_nonzero(np.any(rows[1:] != rows[:-1], axis=1))
    return (changes + 1) / len(rows)
