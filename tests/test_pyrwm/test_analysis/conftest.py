"""Shared fixtures for the estimator tests."""

import numpy as np
import pytest


def standard_normal_log_kernel(x):
    """Log of exp(-x'x/2), whose normalizing constant is (2 pi)^(k/2)."""
    x = np.asarray(x)
    return -0.5 * np.sum(x**2)


@pytest.fixture
def log_kernel():
    """Unnormalized standard normal log-kernel."""
    return standard_normal_log_kernel


@pytest.fixture
def gaussian_chain():
    """Independent draws from a bivariate standard normal with their log-kernel values."""
    rng = np.random.default_rng(1234)
    params = rng.standard_normal((20000, 2))
    log_values = -0.5 * np.sum(params**2, axis=1)
    return params, log_values


@pytest.fixture
def log_normalizing_constant():
    """Log normalizing constant of the bivariate kernel."""
    return np.log(2 * np.pi)
