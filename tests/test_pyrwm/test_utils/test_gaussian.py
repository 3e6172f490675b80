"""Tests for the Gaussian weighting helpers."""

import numpy as np
import pytest
from scipy import stats

from pyrwm.utils.exceptions import InputError
from pyrwm.utils.gaussian import (
    GaussianWeighting,
    as_parameter_array,
    chain_mean_and_covariance,
)


@pytest.fixture
def weighting():
    """Bivariate weighting Gaussian with correlated components."""
    return GaussianWeighting([1.0, -1.0], [[2.0, 0.5], [0.5, 1.0]])


def test_log_density_matches_scipy(weighting):
    """Test the log-density of every row."""
    x = np.array([[0.0, 0.0], [1.0, -1.0], [3.0, 2.0]])
    expected = stats.multivariate_normal([1.0, -1.0], [[2.0, 0.5], [0.5, 1.0]]).logpdf(x)
    np.testing.assert_allclose(weighting(x), expected)


def test_log_density_single_point(weighting):
    """Test that a single point gives a length-one array."""
    assert weighting([1.0, -1.0]).shape == (1,)


def test_draw_shape_and_moments(weighting):
    """Test the shape and moments of the draws."""
    draws = weighting.draw(50000, np.random.default_rng(7))
    assert draws.shape == (50000, 2)
    np.testing.assert_allclose(draws.mean(axis=0), [1.0, -1.0], atol=0.05)
    np.testing.assert_allclose(
        np.cov(draws, rowvar=False), [[2.0, 0.5], [0.5, 1.0]], atol=0.05
    )


def test_draw_one_dimension():
    """Test that one-dimensional draws keep a column axis."""
    draws = GaussianWeighting([0.0], [[1.0]]).draw(3, np.random.default_rng(0))
    assert draws.shape == (3, 1)


def test_draws_are_reproducible(weighting):
    """Test that equal seeds give equal draws."""
    first = weighting.draw(10, np.random.default_rng(3))
    second = weighting.draw(10, np.random.default_rng(3))
    np.testing.assert_array_equal(first, second)


@pytest.mark.parametrize(
    "mean, cov",
    [
        ([0.0, 0.0], [[1.0]]),
        ([0.0], [[1.0, 0.0], [0.0, 1.0]]),
        ([[0.0, 0.0]], np.eye(2)),
        ([0.0, 0.0], [[1.0, 2.0], [2.0, 1.0]]),
    ],
)
def test_invalid_weighting(mean, cov):
    """Test that inconsistent or indefinite parameters raise InputError."""
    with pytest.raises(InputError):
        GaussianWeighting(mean, cov)


def test_chain_mean_and_covariance():
    """Test the chain moments with divisor n."""
    params = np.array([[0.0, 1.0], [2.0, 1.0], [1.0, 4.0]])
    mean, cov = chain_mean_and_covariance(params)
    np.testing.assert_allclose(mean, [1.0, 2.0])
    np.testing.assert_allclose(cov, [[2 / 3, 0.0], [0.0, 2.0]])
    np.testing.assert_array_equal(cov, cov.T)


def test_chain_mean_and_covariance_one_dimension():
    """Test that a 1D chain gives a 1x1 covariance."""
    mean, cov = chain_mean_and_covariance([1.0, 3.0])
    assert mean.shape == (1,)
    np.testing.assert_allclose(cov, [[1.0]])


def test_as_parameter_array():
    """Test the coercion of chain output to a 2D array."""
    assert as_parameter_array([1.0, 2.0, 3.0]).shape == (3, 1)
    assert as_parameter_array(np.zeros((4, 2))).shape == (4, 2)


@pytest.mark.parametrize("params", [[], np.zeros((2, 2, 2))])
def test_as_parameter_array_invalid(params):
    """Test that empty or higher-dimensional input raises InputError."""
    with pytest.raises(InputError):
        as_parameter_array(params)
