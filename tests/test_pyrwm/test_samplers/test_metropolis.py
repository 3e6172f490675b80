"""Tests for the random-walk Metropolis sampler."""

import warnings

import numpy as np
import pytest

from pyrwm.samplers import (
    MetropolisChain,
    MetropolisSampler,
    ProposalKernel,
    SamplerConfig,
    acceptance_rate,
    run_random_walk_metropolis,
)
from pyrwm.samplers.metropolis import State, StepOutcome
from pyrwm.samplers.proposals import BlockProposalKernel
from pyrwm.utils.exceptions import ConfigurationError


def standard_normal_log_kernel(x):
    """Log of an unnormalized standard normal density."""
    return -0.5 * np.sum(x**2)


class CountingKernel:
    """Log-kernel stub recording every point it is evaluated at."""

    def __init__(self, log_kernel=standard_normal_log_kernel):
        self.log_kernel = log_kernel
        self.calls = []

    def __call__(self, x):
        self.calls.append(np.array(x))
        return self.log_kernel(x)


def test_end_to_end_standard_normal():
    """Test the moments of a chain targeting an unnormalized standard normal."""
    draws = run_random_walk_metropolis(
        lambda x: np.log(np.exp(-x[0] ** 2 / 2)),
        start=[0.0],
        step_size=1.0,
        n_draws=10000,
        burn_in=1000,
        thinning=1,
        seed=20240611,
    )
    assert draws.shape == (10000, 1)
    assert abs(np.mean(draws)) < 0.05
    assert abs(np.var(draws) - 1.0) < 0.1


def test_non_log_kernel():
    """Test that a kernel in plain values is wrapped in a log."""
    draws = run_random_walk_metropolis(
        lambda x: np.exp(-0.5 * np.sum(x**2)),
        start=[0.0, 0.0],
        step_size=[1.0, 1.0],
        n_draws=40000,
        burn_in=1000,
        log_scale=False,
        seed=5,
    )
    np.testing.assert_allclose(np.mean(draws, axis=0), 0.0, atol=0.1)
    np.testing.assert_allclose(np.var(draws, axis=0), 1.0, atol=0.15)


def test_student_t_proposal_targets_normal():
    """Test that a Student-t proposal still targets the kernel."""
    draws = run_random_walk_metropolis(
        standard_normal_log_kernel,
        start=[0.0],
        step_size=1.5,
        n_draws=40000,
        burn_in=1000,
        df=3,
        seed=11,
    )
    assert abs(np.mean(draws)) < 0.1
    assert abs(np.var(draws) - 1.0) < 0.15


def test_retain_values_pairs_draws_and_log_values():
    """Test that retained log values equal the kernel at each draw."""
    draws, log_values = run_random_walk_metropolis(
        standard_normal_log_kernel,
        start=[0.5, -0.5],
        step_size=0.5,
        n_draws=200,
        retain_values=True,
        seed=0,
    )
    assert draws.shape == (200, 2)
    assert log_values.shape == (200,)
    expected = np.array([standard_normal_log_kernel(x) for x in draws])
    np.testing.assert_array_equal(log_values, expected)


def test_output_is_read_only():
    """Test that the chain cannot be modified after the run."""
    draws = run_random_walk_metropolis(
        standard_normal_log_kernel, [0.0], 1.0, 10, seed=0
    )
    with pytest.raises(ValueError):
        draws[0, 0] = 1.0


def test_thinning_and_burn_in_step_counts():
    """Test that thinning and burn-in control the number of steps taken."""
    rng = np.random.default_rng(0)
    sampler = MetropolisSampler(
        standard_normal_log_kernel, ProposalKernel(1.0, 1, rng=rng), rng=rng
    )
    chain = sampler.run([0.0], n_draws=50, thinning=3, burn_in=20)
    assert isinstance(chain, MetropolisChain)
    assert chain.n_draws == 50
    assert chain.n_proposed == 20 + 50 * 3


def test_thinning_retains_every_nth_state():
    """Test that a thinned chain equals every n-th state of an unthinned chain."""
    full = run_random_walk_metropolis(
        standard_normal_log_kernel, [0.0], 1.0, 60, seed=42
    )
    thinned = run_random_walk_metropolis(
        standard_normal_log_kernel, [0.0], 1.0, 20, thinning=3, seed=42
    )
    np.testing.assert_array_equal(thinned, full[2::3])


def test_burn_in_discards_initial_states():
    """Test that burn-in discards the first states of the chain."""
    full = run_random_walk_metropolis(
        standard_normal_log_kernel, [0.0], 1.0, 30, seed=42
    )
    burned = run_random_walk_metropolis(
        standard_normal_log_kernel, [0.0], 1.0, 20, burn_in=10, seed=42
    )
    np.testing.assert_array_equal(burned, full[10:])


def test_block_sweeps_count_every_block():
    """Test that thinning and burn-in count full sweeps over the blocks."""
    rng = np.random.default_rng(0)
    proposal = BlockProposalKernel([1.0, 1.0, 1.0], [1, 2, 1], rng=rng)
    sampler = MetropolisSampler(standard_normal_log_kernel, proposal, rng=rng)
    chain = sampler.run(np.zeros(4), n_draws=10, thinning=2, burn_in=5)
    assert chain.n_proposed == 3 * (5 + 10 * 2)


def test_single_block_matches_one_block_sampler():
    """Test that a one-block block sampler reproduces the single-block sampler exactly."""
    single = run_random_walk_metropolis(
        standard_normal_log_kernel,
        [0.3, -0.2],
        0.8,
        500,
        burn_in=10,
        thinning=2,
        retain_values=True,
        seed=123,
    )
    block = run_random_walk_metropolis(
        standard_normal_log_kernel,
        [[0.3, -0.2]],
        [0.8],
        500,
        burn_in=10,
        thinning=2,
        retain_values=True,
        seed=123,
    )
    np.testing.assert_array_equal(single[0], block[0])
    np.testing.assert_array_equal(single[1], block[1])


def test_single_block_matches_one_block_sampler_student_t():
    """Test the bit-identical one-block equivalence with a Student-t proposal."""
    single = run_random_walk_metropolis(
        standard_normal_log_kernel, [0.0], 1.0, 300, df=4, seed=9
    )
    block = run_random_walk_metropolis(
        standard_normal_log_kernel, [[0.0]], [1.0], 300, df=4, seed=9
    )
    np.testing.assert_array_equal(single, block)


def test_block_sampler_targets_kernel():
    """Test that the block sampler reaches the correct moments."""
    draws = run_random_walk_metropolis(
        standard_normal_log_kernel,
        [[0.0], [0.0, 0.0]],
        [1.0, [1.0, 1.0]],
        20000,
        burn_in=500,
        seed=77,
    )
    assert draws.shape == (20000, 3)
    np.testing.assert_allclose(np.mean(draws, axis=0), 0.0, atol=0.1)
    np.testing.assert_allclose(np.var(draws, axis=0), 1.0, atol=0.15)


def test_out_of_bounds_proposals_never_evaluated():
    """Test that the kernel is never evaluated at a point out of bounds."""
    kernel = CountingKernel()
    rng = np.random.default_rng(1)
    sampler = MetropolisSampler(
        kernel,
        ProposalKernel(2.0, 1, rng=rng),
        in_bounds=lambda x: x[0] > 0,
        rng=rng,
    )
    chain = sampler.run([1.0], n_draws=500)
    assert chain.n_out_of_bounds > 0
    # one evaluation at the starting point plus one per in-bounds proposal
    assert len(kernel.calls) == 1 + chain.n_proposed - chain.n_out_of_bounds
    assert all(x[0] > 0 for x in kernel.calls)
    assert np.all(chain.params > 0)


def test_always_out_of_bounds_keeps_start():
    """Test that a predicate that always fails leaves the chain at the start."""
    kernel = CountingKernel()
    draws = run_random_walk_metropolis(
        kernel, [0.5], 1.0, 100, in_bounds=lambda x: False, seed=0
    )
    assert len(kernel.calls) == 1
    assert np.all(draws == 0.5)
    assert acceptance_rate(draws) == pytest.approx(0.01)


def test_step_outcomes():
    """Test the outcome reported by a single step."""
    rng = np.random.default_rng(0)
    state = State(params=np.array([0.0]), log_value=0.0)

    accepting = MetropolisSampler(lambda x: 0.0, ProposalKernel(1.0, 1, rng=rng), rng=rng)
    new_state, outcome = accepting.step(state)
    assert outcome == StepOutcome.ACCEPTED
    assert new_state.params[0] != 0.0

    rejecting = MetropolisSampler(lambda x: -np.inf, ProposalKernel(1.0, 1, rng=rng), rng=rng)
    new_state, outcome = rejecting.step(state)
    assert outcome == StepOutcome.REJECTED
    assert new_state is state

    outside = MetropolisSampler(
        lambda x: 0.0, ProposalKernel(1.0, 1, rng=rng), in_bounds=lambda x: False, rng=rng
    )
    new_state, outcome = outside.step(state)
    assert outcome == StepOutcome.OUT_OF_BOUNDS
    assert new_state is state


class ZeroUniform:
    """Generator stub whose uniform deviates are exactly zero."""

    def random(self):
        return 0.0


def test_step_with_zero_uniform_deviate():
    """Test that a uniform deviate of zero accepts without a divide warning."""
    sampler = MetropolisSampler(
        standard_normal_log_kernel,
        ProposalKernel(1.0, 1, rng=np.random.default_rng(4)),
        rng=ZeroUniform(),
    )
    state = State(params=np.array([0.0]), log_value=0.0)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        new_state, outcome = sampler.step(state)
    assert outcome == StepOutcome.ACCEPTED
    assert new_state.params[0] != 0.0


def test_constant_kernel_acceptance_rate_is_one():
    """Test that every proposal is accepted for a constant kernel."""
    rng = np.random.default_rng(2)
    sampler = MetropolisSampler(lambda x: 0.0, ProposalKernel(1.0, 2, rng=rng), rng=rng)
    chain = sampler.run([0.0, 0.0], n_draws=1000)
    assert acceptance_rate(chain) == 1.0
    assert chain.acceptance_fraction == 1.0


def test_acceptance_rate_in_unit_interval():
    """Test the acceptance rate of a typical chain."""
    draws = run_random_walk_metropolis(
        standard_normal_log_kernel, [0.0], 5.0, 2000, seed=3
    )
    rate = acceptance_rate(draws)
    assert 0.0 < rate < 1.0


def test_acceptance_rate_counts_runs():
    """Test the acceptance rate on a hand-made chain."""
    chain = np.array([[0.0], [0.0], [1.0], [1.0], [1.0], [2.0], [0.0], [0.0]])
    assert acceptance_rate(chain) == pytest.approx(4 / 8)
    assert acceptance_rate(np.array([1.0, 2.0, 2.0, 3.0])) == pytest.approx(3 / 4)


def test_acceptance_rate_empty_chain():
    """Test that an empty chain has no acceptance rate."""
    with pytest.raises(ValueError):
        acceptance_rate(np.empty((0, 2)))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_draws": 0},
        {"n_draws": -5},
        {"n_draws": 2.0},
        {"thinning": 0},
        {"thinning": 1.5},
        {"burn_in": -1},
        {"df": 0},
        {"df": 2.5},
    ],
)
def test_configuration_errors_abort_before_sampling(kwargs):
    """Test that invalid options raise before the kernel is ever evaluated."""
    kernel = CountingKernel()
    options = {"n_draws": 10} | kwargs
    n_draws = options.pop("n_draws")
    with pytest.raises(ConfigurationError):
        run_random_walk_metropolis(kernel, [0.0], 1.0, n_draws, **options)
    assert kernel.calls == []


@pytest.mark.parametrize(
    "start, step_size",
    [
        ([0.0, 0.0], [1.0, 2.0, 3.0]),
        ([0.0, 0.0], np.array([[1.0, 2.0], [2.0, 1.0]])),
        ([[0.0], [0.0, 0.0]], [1.0]),
        ([[0.0], [0.0, 0.0]], 1.0),
        ([[0.0], [0.0, 0.0]], [1.0, [1.0, 1.0, 1.0]]),
    ],
)
def test_step_size_errors_abort_before_sampling(start, step_size):
    """Test that mismatched or invalid step sizes raise before sampling."""
    kernel = CountingKernel()
    with pytest.raises(ConfigurationError):
        run_random_walk_metropolis(kernel, start, step_size, 10)
    assert kernel.calls == []


def test_start_dimension_mismatch():
    """Test that the starting point must match the proposal dimension."""
    kernel = CountingKernel()
    sampler = MetropolisSampler(kernel, ProposalKernel(1.0, 2))
    with pytest.raises(ConfigurationError):
        sampler.run([0.0, 0.0, 0.0], n_draws=10)
    assert kernel.calls == []


def test_sampler_config_defaults():
    """Test the defaults and validation of the sampler configuration."""
    config = SamplerConfig(n_draws=5, df="infinite")
    assert config.thinning == 1
    assert config.burn_in == 0
    assert np.isinf(config.df)
    assert config.log_scale
    assert not config.retain_values
    with pytest.raises(ConfigurationError):
        SamplerConfig(n_draws=5, burn_in=-3)


def test_chain_consistent_lengths():
    """Test that the parameter and log-value chains must have the same length."""
    with pytest.raises(
        ValueError, match="Parameter chain and log-value chain must have the same length."
    ):
        MetropolisChain(params=np.zeros((3, 1)), log_values=np.zeros(2))
